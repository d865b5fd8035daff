"""
Composite Scorers

Swing and intraday scoring strategies over a frozen IndicatorSnapshot.
Both produce a 0-10 score plus the same categorical labels.
"""

from abc import ABC, abstractmethod

from signalpro.schemas.indicators import AnalysisProfile, IndicatorSnapshot
from signalpro.schemas.scoring import (
    ScoreResult,
    TrendDirection,
    TrendStrength,
    VolumeQuality,
)
from signalpro.services.base import ValidationError
from signalpro.services.scoring.classifier import (
    classify_trend,
    market_regime,
    rsi_signal,
    setup_quality,
    stochastic_signal,
    trend_strength,
    volatility_rating,
    volume_quality,
)


MAX_SCORE = 10.0


class CompositeScorer(ABC):
    """Scoring strategy for one analysis profile."""

    profile: AnalysisProfile

    @abstractmethod
    def score(self, snapshot: IndicatorSnapshot) -> ScoreResult:
        pass

    def _labels(self, snapshot: IndicatorSnapshot) -> dict:
        direction = classify_trend(snapshot)
        return {
            "trend_direction": direction,
            "trend_strength": trend_strength(snapshot.volatility_percentile),
            "volume_quality": volume_quality(snapshot.volume.trend, snapshot.volume.breakout),
            "volatility_rating": volatility_rating(snapshot.volatility_percentile),
            "rsi_signal": rsi_signal(snapshot.rsi_14),
            "stochastic_signal": stochastic_signal(snapshot.stochastic),
            "market_regime": market_regime(direction),
        }


class SwingScorer(CompositeScorer):
    """
    Base 5, plus trend, RSI, MACD, volume and key-level points.

    Bearish setups still earn points because they are tradable short.
    """

    profile = AnalysisProfile.SWING

    def score(self, snapshot: IndicatorSnapshot) -> ScoreResult:
        labels = self._labels(snapshot)
        components = {"base": 5.0}

        strong = labels["trend_strength"] == TrendStrength.STRONG
        if labels["trend_direction"] == TrendDirection.BULLISH and strong:
            components["trend"] = 2.0
        elif labels["trend_direction"] == TrendDirection.BEARISH and strong:
            components["trend"] = 1.0

        rsi = snapshot.rsi_14
        if 30 < rsi < 70:
            components["rsi"] = 1.5
        elif rsi < 30 or rsi > 70:
            components["rsi"] = 0.5

        histogram = snapshot.macd.histogram
        if histogram > 0:
            components["macd"] = 1.5
        elif histogram < 0:
            components["macd"] = 1.0

        if labels["volume_quality"] == VolumeQuality.EXCELLENT:
            components["volume"] = 1.5
        elif labels["volume_quality"] == VolumeQuality.GOOD:
            components["volume"] = 1.0

        levels = snapshot.levels
        if levels.support_distance_percent < 5 or levels.resistance_distance_percent < 5:
            components["levels"] = 0.5

        total = min(max(sum(components.values()), 0.0), MAX_SCORE)

        return ScoreResult(
            profile=self.profile,
            score=total,
            setup_quality=setup_quality(total),
            components=components,
            **labels,
        )


class IntradayScorer(CompositeScorer):
    """
    Starts from 0: trend alignment (3), RSI (2), volume spike (2),
    breakouts (2), clean setup (1).
    """

    profile = AnalysisProfile.INTRADAY

    @staticmethod
    def is_clean_setup(snapshot: IndicatorSnapshot) -> bool:
        """Aligned trend, RSI away from extremes, price not pinned to EMA(9)."""
        alignment = snapshot.intraday.trend_alignment.value
        rsi = snapshot.rsi_14
        distance = abs(snapshot.price - snapshot.moving_averages.ema_9)
        return "aligned" in alignment and 25 < rsi < 75 and distance > snapshot.atr.value * 0.1

    def score(self, snapshot: IndicatorSnapshot) -> ScoreResult:
        if snapshot.intraday is None:
            raise ValidationError(
                "IntradayScorer", "Snapshot has no intraday block",
                {"symbol": snapshot.symbol, "profile": snapshot.profile.value},
            )

        intraday = snapshot.intraday
        labels = self._labels(snapshot)
        components: dict[str, float] = {}

        alignment = intraday.trend_alignment.value
        if alignment.endswith("_aligned"):
            components["trend_alignment"] = 3.0
        elif alignment.endswith("_partial"):
            components["trend_alignment"] = 1.5

        rsi = snapshot.rsi_14
        if 30 < rsi < 70:
            components["rsi"] = 2.0
        elif 20 < rsi < 80:
            components["rsi"] = 1.0

        if intraday.volume_spike:
            components["volume_spike"] = 2.0

        breakout_count = intraday.breakout_count
        if breakout_count:
            components["breakouts"] = min(breakout_count * 0.7, 2.0)

        clean = self.is_clean_setup(snapshot)
        if clean:
            components["clean_setup"] = 1.0

        total = min(round(sum(components.values()), 1), MAX_SCORE)

        return ScoreResult(
            profile=self.profile,
            score=total,
            setup_quality=setup_quality(total),
            components=components,
            trend_alignment=intraday.trend_alignment,
            clean_setup=clean,
            volume_spike=intraday.volume_spike,
            breakout_count=breakout_count,
            **labels,
        )


_SCORERS: dict[AnalysisProfile, CompositeScorer] = {
    AnalysisProfile.SWING: SwingScorer(),
    AnalysisProfile.INTRADAY: IntradayScorer(),
}


def get_scorer(profile: AnalysisProfile) -> CompositeScorer:
    """Scorer for an analysis profile."""
    return _SCORERS[profile]
