"""
Tests for the classifier and composite scorers.
"""

import pytest

from signalpro.schemas.indicators import AnalysisProfile, VolumeTrend
from signalpro.schemas.scoring import (
    MarketRegime,
    OscillatorSignal,
    SetupQuality,
    TrendDirection,
    VolatilityRating,
    VolumeQuality,
)
from signalpro.services.base import ValidationError
from signalpro.services.scoring import IntradayScorer, SwingScorer, get_scorer
from signalpro.services.scoring.classifier import (
    market_regime,
    rsi_signal,
    setup_quality,
    stochastic_signal,
    trend_direction,
    volatility_rating,
    volume_quality,
)

from conftest import make_series, wave_series


class TestClassifier:
    def test_trend_needs_history(self):
        assert trend_direction(110, 100, 90, 10, 10, candle_count=30) == TrendDirection.SIDEWAYS

    def test_high_volatility_is_transitioning(self):
        assert trend_direction(110, 100, 90, 10, 55, candle_count=200) == TrendDirection.TRANSITIONING

    def test_bullish_and_bearish(self):
        assert trend_direction(110, 100, 90, 6, 20, candle_count=200) == TrendDirection.BULLISH
        assert trend_direction(80, 90, 100, -6, 20, candle_count=200) == TrendDirection.BEARISH

    def test_ordered_averages_without_momentum_is_sideways(self):
        assert trend_direction(110, 100, 90, 2, 20, candle_count=200) == TrendDirection.SIDEWAYS

    def test_setup_quality_is_monotonic(self):
        order = [SetupQuality.POOR, SetupQuality.FAIR, SetupQuality.GOOD, SetupQuality.EXCELLENT]
        ranks = [order.index(setup_quality(s / 10)) for s in range(0, 101)]
        assert ranks == sorted(ranks)
        assert setup_quality(8) == SetupQuality.EXCELLENT
        assert setup_quality(7.9) == SetupQuality.GOOD
        assert setup_quality(3.9) == SetupQuality.POOR

    @pytest.mark.parametrize(
        "value,expected",
        [
            (25, OscillatorSignal.OVERSOLD),
            (40, OscillatorSignal.BEARISH),
            (50, OscillatorSignal.NEUTRAL),
            (60, OscillatorSignal.BULLISH),
            (75, OscillatorSignal.OVERBOUGHT),
        ],
    )
    def test_rsi_signal(self, value, expected):
        assert rsi_signal(value) == expected

    def test_stochastic_signal(self):
        assert stochastic_signal(10) == OscillatorSignal.OVERSOLD
        assert stochastic_signal(90) == OscillatorSignal.OVERBOUGHT

    def test_volume_quality(self):
        assert volume_quality(VolumeTrend.DECREASING, True) == VolumeQuality.EXCELLENT
        assert volume_quality(VolumeTrend.INCREASING, False) == VolumeQuality.GOOD
        assert volume_quality(VolumeTrend.STABLE, False) == VolumeQuality.AVERAGE
        assert volume_quality(VolumeTrend.INSUFFICIENT_DATA, False) == VolumeQuality.POOR

    def test_volatility_rating(self):
        assert volatility_rating(90) == VolatilityRating.VERY_HIGH
        assert volatility_rating(50) == VolatilityRating.MODERATE
        assert volatility_rating(10) == VolatilityRating.VERY_LOW

    def test_market_regime(self):
        assert market_regime(TrendDirection.BULLISH) == MarketRegime.BULL_MARKET
        assert market_regime(TrendDirection.TRANSITIONING) == MarketRegime.VOLATILE
        assert market_regime(TrendDirection.SIDEWAYS) == MarketRegime.SIDEWAYS


class TestIntradayScorer:
    def test_rising_series_with_volume_surge(self, intraday_score):
        assert intraday_score.volume_spike is True
        assert "bullish" in intraday_score.trend_alignment.value
        assert intraday_score.score >= 6
        assert intraday_score.breakout_count == 3

    def test_components(self, intraday_score):
        # RSI pinned at 100: no RSI points and not a clean setup
        assert intraday_score.components == {
            "trend_alignment": 3.0,
            "volume_spike": 2.0,
            "breakouts": 2.0,
        }
        assert intraday_score.score == 7.0
        assert intraday_score.clean_setup is False
        assert intraday_score.setup_quality == SetupQuality.GOOD

    def test_clean_setup(self, intraday_snapshot):
        calmer = intraday_snapshot.model_copy(update={"rsi_14": 60.0})
        result = IntradayScorer().score(calmer)
        assert result.clean_setup is True
        assert result.score == 10.0

    def test_requires_intraday_block(self, swing_snapshot):
        with pytest.raises(ValidationError):
            IntradayScorer().score(swing_snapshot)

    def test_pure(self, intraday_snapshot):
        scorer = get_scorer(AnalysisProfile.INTRADAY)
        assert scorer.score(intraday_snapshot) == scorer.score(intraday_snapshot)


class TestSwingScorer:
    def test_score_bounds(self, indicator_service):
        scorer = SwingScorer()
        for drift in (-1.0, 0.0, 1.0):
            snapshot = indicator_service.build_snapshot(wave_series(drift=drift))
            result = scorer.score(snapshot)
            assert 0 <= result.score <= 10
            assert result.components["base"] == 5.0

    def test_everything_aligned_is_capped_at_ten(self, swing_snapshot):
        ma = swing_snapshot.moving_averages.model_copy(update={"sma_50": 90.0, "sma_200": 80.0})
        volume = swing_snapshot.volume.model_copy(update={"breakout": True})
        macd = swing_snapshot.macd.model_copy(update={"histogram": 0.5})
        levels = swing_snapshot.levels.model_copy(update={"support_distance_percent": 1.0})
        snapshot = swing_snapshot.model_copy(
            update={
                "price": 100.0,
                "moving_averages": ma,
                "change_50_percent": 12.0,
                "annualized_volatility": 20.0,
                "volatility_percentile": 90.0,
                "rsi_14": 55.0,
                "macd": macd,
                "volume": volume,
                "levels": levels,
            }
        )
        result = SwingScorer().score(snapshot)

        assert result.trend_direction == TrendDirection.BULLISH
        assert sum(result.components.values()) == pytest.approx(12.0)
        assert result.score == 10.0
        assert result.setup_quality == SetupQuality.EXCELLENT

    def test_short_series_scores_base_plus_neutral_rsi(self, indicator_service):
        snapshot = indicator_service.build_snapshot(make_series([100.0, 100.5, 101.0]))
        result = SwingScorer().score(snapshot)
        assert result.trend_direction == TrendDirection.SIDEWAYS
        # base 5 + RSI 50 (1.5) + fallback levels within 5% (0.5)
        assert result.score == pytest.approx(7.0)
