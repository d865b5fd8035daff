"""
Regime and Quality Classifier

Maps raw indicator values onto categorical labels. Pure functions.
"""

from signalpro.schemas.indicators import IndicatorSnapshot, VolumeTrend
from signalpro.schemas.scoring import (
    MarketRegime,
    OscillatorSignal,
    SetupQuality,
    TrendDirection,
    TrendStrength,
    VolatilityRating,
    VolumeQuality,
)


REGIME_MIN_CANDLES = 50
TRANSITIONING_VOLATILITY = 40.0
TREND_CHANGE_PERCENT = 5.0


def trend_direction(
    price: float,
    sma_50: float,
    sma_200: float,
    change_50_percent: float,
    annualized_vol: float,
    candle_count: int,
) -> TrendDirection:
    """Moving-average order plus 50-candle change, gated by volatility."""
    if candle_count < REGIME_MIN_CANDLES:
        return TrendDirection.SIDEWAYS
    if annualized_vol > TRANSITIONING_VOLATILITY:
        return TrendDirection.TRANSITIONING
    if price > sma_50 > sma_200 and change_50_percent > TREND_CHANGE_PERCENT:
        return TrendDirection.BULLISH
    if price < sma_50 < sma_200 and change_50_percent < -TREND_CHANGE_PERCENT:
        return TrendDirection.BEARISH
    return TrendDirection.SIDEWAYS


def trend_strength(volatility_percentile: float) -> TrendStrength:
    if volatility_percentile > 80:
        return TrendStrength.STRONG
    if volatility_percentile > 40:
        return TrendStrength.MODERATE
    return TrendStrength.WEAK


def _oscillator_band(value: float, bands: tuple[float, float, float, float]) -> OscillatorSignal:
    oversold, bearish, bullish, overbought = bands
    if value < oversold:
        return OscillatorSignal.OVERSOLD
    if value < bearish:
        return OscillatorSignal.BEARISH
    if value > overbought:
        return OscillatorSignal.OVERBOUGHT
    if value > bullish:
        return OscillatorSignal.BULLISH
    return OscillatorSignal.NEUTRAL


def rsi_signal(value: float) -> OscillatorSignal:
    return _oscillator_band(value, (30, 45, 55, 70))


def stochastic_signal(value: float) -> OscillatorSignal:
    return _oscillator_band(value, (20, 40, 60, 80))


def volume_quality(trend: VolumeTrend, breakout: bool) -> VolumeQuality:
    if breakout:
        return VolumeQuality.EXCELLENT
    if trend == VolumeTrend.INCREASING:
        return VolumeQuality.GOOD
    if trend == VolumeTrend.STABLE:
        return VolumeQuality.AVERAGE
    return VolumeQuality.POOR


def volatility_rating(volatility_percentile: float) -> VolatilityRating:
    if volatility_percentile > 85:
        return VolatilityRating.VERY_HIGH
    if volatility_percentile > 65:
        return VolatilityRating.HIGH
    if volatility_percentile > 45:
        return VolatilityRating.MODERATE
    if volatility_percentile > 25:
        return VolatilityRating.LOW
    return VolatilityRating.VERY_LOW


def market_regime(direction: TrendDirection) -> MarketRegime:
    return {
        TrendDirection.BULLISH: MarketRegime.BULL_MARKET,
        TrendDirection.BEARISH: MarketRegime.BEAR_MARKET,
        TrendDirection.TRANSITIONING: MarketRegime.VOLATILE,
    }.get(direction, MarketRegime.SIDEWAYS)


def setup_quality(score: float) -> SetupQuality:
    """Monotonic in score."""
    if score >= 8:
        return SetupQuality.EXCELLENT
    if score >= 6:
        return SetupQuality.GOOD
    if score >= 4:
        return SetupQuality.FAIR
    return SetupQuality.POOR


def classify_trend(snapshot: IndicatorSnapshot) -> TrendDirection:
    return trend_direction(
        price=snapshot.price,
        sma_50=snapshot.moving_averages.sma_50,
        sma_200=snapshot.moving_averages.sma_200,
        change_50_percent=snapshot.change_50_percent,
        annualized_vol=snapshot.annualized_volatility,
        candle_count=snapshot.candle_count,
    )
