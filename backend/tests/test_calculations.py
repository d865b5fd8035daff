"""
Tests for the indicator library.
"""

import numpy as np
import pytest

from signalpro.schemas.indicators import BollingerPosition, VolumeTrend
from signalpro.services.indicators.calculations import (
    accumulation_distribution,
    annualized_volatility,
    atr,
    bollinger_bands,
    bollinger_position,
    change_percent,
    ema,
    ema_series,
    macd,
    price_range,
    rsi,
    sma,
    stochastic,
    true_range,
    volatility_percentile,
    volume_metrics,
    volume_spike,
    vwap,
    weekly_pivot,
)


class TestMovingAverages:
    def test_sma_uses_last_period(self):
        assert sma(np.array([1, 2, 3, 4, 5]), 3) == pytest.approx(4.0)

    def test_sma_short_input_averages_everything(self):
        assert sma(np.array([2, 4]), 20) == pytest.approx(3.0)

    def test_sma_empty(self):
        assert sma(np.array([]), 20) == 0.0

    def test_ema_constant_series(self):
        assert ema(np.full(30, 7.0), 9) == pytest.approx(7.0)

    def test_ema_single_value(self):
        assert ema(np.array([42.0]), 9) == 42.0

    def test_ema_seeded_with_sma(self):
        data = np.array([1.0, 2.0, 3.0, 4.0])
        # seed = mean(1,2,3) = 2, then (4 - 2) * 0.5 + 2
        assert ema(data, 3) == pytest.approx(3.0)

    def test_ema_series_matches_prefix_ema(self):
        data = np.linspace(10, 30, 40) + np.sin(np.arange(40))
        series = ema_series(data, 12)
        assert np.isnan(series[10])
        for i in (11, 20, 39):
            assert series[i] == pytest.approx(ema(data[: i + 1], 12))


class TestRSI:
    def test_short_input_is_neutral(self):
        assert rsi(np.arange(10, dtype=float), 14) == 50.0

    def test_only_gains_is_100(self):
        assert rsi(np.arange(1, 40, dtype=float), 14) == 100.0

    def test_only_losses_is_0(self):
        assert rsi(np.arange(40, 1, -1, dtype=float), 14) == pytest.approx(0.0)

    def test_bounded(self):
        rng = np.random.default_rng(7)
        closes = 100 + np.cumsum(rng.normal(0, 1, 300))
        assert 0.0 <= rsi(closes, 14) <= 100.0


class TestMACD:
    def test_short_input_is_zero(self):
        assert macd(np.arange(30, dtype=float)) == (0.0, 0.0, 0.0)

    def test_rising_series_is_positive(self):
        line, signal, histogram = macd(np.linspace(100, 150, 120))
        assert line > 0
        assert signal > 0
        assert histogram == pytest.approx(round(line - signal, 4), abs=1e-4)

    def test_falling_series_is_negative(self):
        line, _, _ = macd(np.linspace(150, 100, 120))
        assert line < 0


class TestStochastic:
    def test_short_input_is_neutral(self):
        assert stochastic(np.ones(10), np.ones(10), np.ones(10)) == 50.0

    def test_flat_range_is_neutral(self):
        flat = np.full(30, 5.0)
        assert stochastic(flat, flat, flat) == 50.0

    def test_close_at_high_is_100(self):
        closes = np.linspace(10, 40, 40)
        assert stochastic(closes, closes - 1, closes) == 100.0

    def test_bounded(self):
        rng = np.random.default_rng(3)
        closes = 100 + np.cumsum(rng.normal(0, 1, 200))
        value = stochastic(closes + 0.5, closes - 0.5, closes)
        assert 0.0 <= value <= 100.0


class TestATR:
    def test_single_candle_is_zero(self):
        result = atr(np.array([10.0]), np.array([9.0]), np.array([9.5]))
        assert result.atr == 0.0
        assert result.scaled_stop_loss == 0.0

    def test_true_range_uses_previous_close(self):
        highs = np.array([10.0, 12.0])
        lows = np.array([9.0, 11.5])
        closes = np.array([9.5, 12.0])
        assert true_range(highs, lows, closes).tolist() == [2.5]

    def test_short_series_uses_mean_of_available_ranges(self):
        highs = np.array([10.0, 11.0, 12.0])
        lows = np.array([9.0, 10.0, 11.0])
        closes = np.array([9.5, 10.5, 11.5])
        # TR = [1.5, 1.5]
        assert atr(highs, lows, closes, period=14).atr == pytest.approx(1.5)

    def test_multipliers(self):
        highs = np.full(30, 11.0)
        lows = np.full(30, 9.0)
        closes = np.full(30, 10.0)
        result = atr(highs, lows, closes, period=14, stop_loss_multiplier=2.0, take_profit_multiplier=1.5)
        assert result.atr == pytest.approx(2.0)
        assert result.scaled_stop_loss == pytest.approx(4.0)
        assert result.scaled_take_profit == pytest.approx(3.0)


class TestBollinger:
    def test_short_input_collapses_to_last_close(self):
        assert bollinger_bands(np.array([1.0, 2.0, 3.0])) == (3.0, 3.0, 3.0)

    def test_band_ordering(self):
        rng = np.random.default_rng(11)
        closes = 100 + np.cumsum(rng.normal(0, 1, 60))
        upper, middle, lower = bollinger_bands(closes)
        assert upper >= middle >= lower

    def test_constant_series_has_zero_width(self):
        upper, middle, lower = bollinger_bands(np.full(25, 50.0))
        assert upper == middle == lower == 50.0

    @pytest.mark.parametrize(
        "price,expected",
        [
            (111, BollingerPosition.ABOVE_UPPER),
            (89, BollingerPosition.BELOW_LOWER),
            (105, BollingerPosition.UPPER_HALF),
            (95, BollingerPosition.LOWER_HALF),
            (100, BollingerPosition.MIDDLE),
        ],
    )
    def test_position(self, price, expected):
        assert bollinger_position(price, 110, 100, 90) == expected


class TestVolatility:
    def test_constant_series_is_zero(self):
        assert volatility_percentile(np.full(50, 100.0)) == 0.0
        assert annualized_volatility(np.full(50, 100.0)) == 0.0

    def test_short_input(self):
        assert volatility_percentile(np.array([100.0])) == 0.0
        assert annualized_volatility(np.array([100.0, 101.0])) == 0.0

    def test_wild_series_clamps_to_100(self):
        closes = np.array([100.0, 120.0] * 30)
        assert volatility_percentile(closes) == 100.0

    def test_percentile_bounded(self):
        rng = np.random.default_rng(5)
        closes = 100 * np.exp(np.cumsum(rng.normal(0, 0.02, 200)))
        assert 0.0 <= volatility_percentile(closes) <= 100.0


class TestVolume:
    def test_short_input(self):
        stats = volume_metrics(np.array([100.0, 200.0]))
        assert stats.trend == VolumeTrend.INSUFFICIENT_DATA
        assert stats.ratio == 0.0
        assert stats.breakout is False
        assert stats.current == 200.0

    def test_ratio_is_a_multiple(self):
        volumes = np.array([100.0] * 19 + [300.0])
        stats = volume_metrics(volumes)
        assert stats.average_20 == pytest.approx(110.0)
        assert stats.ratio == pytest.approx(300.0 / 110.0)
        assert stats.breakout is True

    def test_trend(self):
        assert volume_metrics(np.array([100.0] * 10 + [200.0] * 10)).trend == VolumeTrend.INCREASING
        assert volume_metrics(np.array([200.0] * 10 + [100.0] * 10)).trend == VolumeTrend.DECREASING
        assert volume_metrics(np.full(20, 100.0)).trend == VolumeTrend.STABLE

    def test_zero_first_half(self):
        volumes = np.array([0.0] * 10 + [50.0] * 10)
        assert volume_metrics(volumes).trend == VolumeTrend.INCREASING

    def test_all_zero_volume(self):
        stats = volume_metrics(np.zeros(25))
        assert stats.ratio == 0.0
        assert stats.trend == VolumeTrend.STABLE

    def test_vwap(self):
        highs = np.array([11.0, 21.0])
        lows = np.array([9.0, 19.0])
        closes = np.array([10.0, 20.0])
        volumes = np.array([1.0, 3.0])
        assert vwap(highs, lows, closes, volumes) == pytest.approx(17.5)

    def test_vwap_zero_volume(self):
        assert vwap(np.ones(3), np.ones(3), np.ones(3), np.zeros(3)) == 0.0

    def test_volume_spike_needs_history(self):
        assert volume_spike(np.array([1.0] * 10 + [100.0])) is False

    def test_volume_spike(self):
        assert volume_spike(np.array([100.0] * 30 + [250.0])) is True
        assert volume_spike(np.array([100.0] * 30 + [150.0])) is False

    def test_sustained_surge_still_spikes(self):
        volumes = np.array([100.0] * 180 + [300.0] * 20)
        assert volume_spike(volumes) is True

    def test_accumulation_distribution_skips_flat_candles(self):
        highs = np.array([10.0, 12.0])
        lows = np.array([10.0, 10.0])
        closes = np.array([10.0, 12.0])
        volumes = np.array([500.0, 100.0])
        assert accumulation_distribution(highs, lows, closes, volumes) == pytest.approx(100.0)

    def test_accumulation_distribution_all_flat(self):
        flat = np.full(5, 10.0)
        assert accumulation_distribution(flat, flat, flat, np.ones(5)) == 0.0


class TestPriceLevels:
    def test_price_range(self):
        highs = np.array([5.0, 9.0, 7.0, 6.0])
        lows = np.array([1.0, 4.0, 3.0, 2.0])
        assert price_range(highs, lows, 3) == (9.0, 2.0)
        assert price_range(highs, lows, 10) == (0.0, 0.0)

    def test_weekly_pivot(self):
        highs = np.array([10.0, 11, 12, 13, 14])
        lows = np.array([5.0, 6, 7, 8, 9])
        closes = np.array([8.0, 9, 10, 11, 12])
        assert weekly_pivot(highs, lows, closes) == pytest.approx((14 + 5 + 12) / 3)
        assert weekly_pivot(highs[:4], lows[:4], closes[:4]) == 0.0

    def test_change_percent(self):
        closes = np.linspace(100, 110, 50)
        assert change_percent(closes, 50) == pytest.approx(10.0)
        assert change_percent(closes, 60) == 0.0
