"""
CONTRACT 3: Composite Scoring

Input: IndicatorSnapshot
Output: ScoreResult

Derived strictly from a snapshot. Pure function, no side effects.
"""

from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field

from signalpro.schemas.indicators import AnalysisProfile, TrendAlignment


# =============================================================================
# ENUMS
# =============================================================================


class TrendDirection(str, Enum):
    BULLISH = "bullish"
    BEARISH = "bearish"
    SIDEWAYS = "sideways"
    TRANSITIONING = "transitioning"


class TrendStrength(str, Enum):
    STRONG = "strong"
    MODERATE = "moderate"
    WEAK = "weak"


class VolumeQuality(str, Enum):
    EXCELLENT = "excellent"
    GOOD = "good"
    AVERAGE = "average"
    POOR = "poor"


class VolatilityRating(str, Enum):
    VERY_HIGH = "very_high"
    HIGH = "high"
    MODERATE = "moderate"
    LOW = "low"
    VERY_LOW = "very_low"


class SetupQuality(str, Enum):
    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"


class OscillatorSignal(str, Enum):
    OVERSOLD = "oversold"
    BEARISH = "bearish"
    NEUTRAL = "neutral"
    BULLISH = "bullish"
    OVERBOUGHT = "overbought"


class MarketRegime(str, Enum):
    BULL_MARKET = "bull_market"
    BEAR_MARKET = "bear_market"
    SIDEWAYS = "sideways"
    VOLATILE = "volatile"


# =============================================================================
# OUTPUT: ScoreResult
# =============================================================================


class ScoreResult(BaseModel):
    """Composite 0-10 quality score and categorical labels."""

    model_config = ConfigDict(frozen=True)

    profile: AnalysisProfile
    score: float = Field(..., ge=0, le=10)
    setup_quality: SetupQuality
    trend_direction: TrendDirection
    trend_strength: TrendStrength
    volume_quality: VolumeQuality
    volatility_rating: VolatilityRating
    rsi_signal: OscillatorSignal
    stochastic_signal: OscillatorSignal
    market_regime: MarketRegime
    components: dict[str, float] = Field(
        default_factory=dict, description="Points contributed by each criterion"
    )

    # Intraday scorer only
    trend_alignment: Optional[TrendAlignment] = None
    clean_setup: Optional[bool] = None
    volume_spike: Optional[bool] = None
    breakout_count: Optional[int] = None
