"""
CONTRACT 2: Indicator Engine

Input: CandleSeries
Output: IndicatorSnapshot

This module describes every value the engine derives from a candle
series, frozen at the last candle.
Pure Python/NumPy - NO LLM involvement.
"""

from datetime import datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# ENUMS
# =============================================================================


class AnalysisProfile(str, Enum):
    SWING = "swing"  # daily candles, days/weeks holding
    INTRADAY = "intraday"  # minute candles, minutes/hours holding


class VolumeTrend(str, Enum):
    INCREASING = "increasing"
    DECREASING = "decreasing"
    STABLE = "stable"
    INSUFFICIENT_DATA = "insufficient_data"


class BollingerPosition(str, Enum):
    ABOVE_UPPER = "above_upper"
    UPPER_HALF = "upper_half"
    MIDDLE = "middle"
    LOWER_HALF = "lower_half"
    BELOW_LOWER = "below_lower"


class TrendAlignment(str, Enum):
    BULLISH_ALIGNED = "bullish_aligned"
    BEARISH_ALIGNED = "bearish_aligned"
    BULLISH_PARTIAL = "bullish_partial"
    BEARISH_PARTIAL = "bearish_partial"
    NEUTRAL = "neutral"


class BreakoutPattern(str, Enum):
    CUP_AND_HANDLE = "cup_and_handle"
    FLAG = "flag"
    WEDGE = "wedge"
    TRIANGLE = "triangle"
    NONE = "none"


class PatternConfidence(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


# =============================================================================
# SNAPSHOT COMPONENTS
# =============================================================================


class FrozenModel(BaseModel):
    model_config = ConfigDict(frozen=True)


class MovingAverages(FrozenModel):
    sma_20: float
    sma_50: float
    sma_200: float
    ema_9: float
    ema_21: float
    ema_50: float


class MACDData(FrozenModel):
    macd_line: float
    signal_line: float
    histogram: float


class ATRData(FrozenModel):
    """ATR plus the multiplier-scaled stop/target distances."""

    period: int
    value: float = Field(..., ge=0)
    atr_percent: float = Field(..., ge=0, description="ATR as % of price")
    scaled_stop_loss: float = Field(..., ge=0)
    scaled_take_profit: float = Field(..., ge=0)
    suggested_stop_loss: float
    suggested_take_profit: float


class BollingerBandsData(FrozenModel):
    upper: float
    middle: float
    lower: float
    position: BollingerPosition


class VolumeMetrics(FrozenModel):
    """20-period volume statistics."""

    average_20: float = Field(..., ge=0)
    current: float = Field(..., ge=0)
    ratio: float = Field(..., ge=0, description="Current volume as a multiple of the 20-period average")
    trend: VolumeTrend
    breakout: bool


class LevelSet(FrozenModel):
    """Support/resistance levels and the nearest pair around price."""

    support: list[float]
    resistance: list[float]
    nearest_support: float
    nearest_resistance: float
    support_distance_percent: float
    resistance_distance_percent: float
    support_is_fallback: bool = False
    resistance_is_fallback: bool = False


class PriceRange(FrozenModel):
    high: float
    low: float


class PriceRanges(FrozenModel):
    day_3: PriceRange
    day_10: PriceRange
    day_30: PriceRange


class IntradayIndicators(FrozenModel):
    """Values only meaningful on minute candles."""

    vwap: float
    trend_alignment: TrendAlignment
    volume_spike: bool
    breakout_day_high: bool
    breakout_prev_day_range: bool
    opening_range_breakout: bool

    @property
    def breakout_count(self) -> int:
        return sum(
            [self.breakout_day_high, self.breakout_prev_day_range, self.opening_range_breakout]
        )


class SwingPatterns(FrozenModel):
    """Swing setup checks run over daily candles."""

    breakout_pattern: BreakoutPattern
    breakout_confidence: PatternConfidence
    atr_validation: bool
    atr_percent: float
    price_range_valid: bool
    price_range: str
    pullback_to_support: bool
    support_distance: float
    volume_breakout_detected: bool
    volume_multiple: float
    rsi_bounce_zone: bool
    rsi_zone: str
    macd_bullish_crossover: bool
    macd_signal_status: str
    rising_volume: bool
    volume_trend: str


# =============================================================================
# OUTPUT: IndicatorSnapshot
# =============================================================================


class IndicatorSnapshot(FrozenModel):
    """
    Complete indicator state at the last candle of a series.

    Sent by: Indicator Service
    Received by: Scorers, Plan Synthesizer, Analysis store
    """

    symbol: str
    profile: AnalysisProfile
    timestamp: datetime
    price: float
    candle_count: int

    # Trend
    moving_averages: MovingAverages
    golden_cross: bool
    death_cross: bool
    change_50_percent: float = Field(0.0, description="% change versus the close 50 candles back")

    # Momentum
    rsi_14: float = Field(..., ge=0, le=100)
    rsi_21: float = Field(..., ge=0, le=100)
    macd: MACDData
    stochastic: float = Field(..., ge=0, le=100)

    # Volatility
    atr: ATRData
    bollinger: BollingerBandsData
    volatility_percentile: float = Field(..., ge=0, le=100)
    annualized_volatility: float = Field(..., ge=0)

    # Volume
    volume: VolumeMetrics
    accumulation_distribution: float

    # Levels
    levels: LevelSet
    fibonacci_levels: list[float]
    weekly_pivot: float
    price_ranges: PriceRanges

    # Profile-specific blocks
    intraday: Optional[IntradayIndicators] = None
    patterns: Optional[SwingPatterns] = None
