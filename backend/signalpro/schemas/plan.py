"""
CONTRACT 4: Plan Synthesizer

Input: IndicatorSnapshot + ScoreResult
Output: TradingPlan

Entry, targets and stop are internally consistent:
LONG  -> stop_loss < entry_price < target_price_1
SHORT -> target_price_1 < entry_price < stop_loss
"""

from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field


# =============================================================================
# ENUMS
# =============================================================================


class TradeDirection(str, Enum):
    LONG = "LONG"
    SHORT = "SHORT"
    NEUTRAL = "NEUTRAL"


class SignalTier(str, Enum):
    # Intraday tiers
    STRONG = "strong"
    CAUTION = "caution"
    NEUTRAL = "neutral"
    RISK = "risk"
    # Swing tiers
    STRONG_BUY = "strong_buy"
    BUY = "buy"
    HOLD = "hold"
    SELL = "sell"
    STRONG_SELL = "strong_sell"


class PlanSource(str, Enum):
    ADVISORY = "advisory"
    FALLBACK = "fallback"


class ConfidenceLevel(str, Enum):
    VERY_HIGH = "very_high"
    HIGH = "high"
    MODERATE = "moderate"
    LOW = "low"


# =============================================================================
# ADVISORY RESPONSE
# =============================================================================


class AdvisorySignal(BaseModel):
    """Parsed advisory-service response, before sizing."""

    direction: TradeDirection
    signal: SignalTier
    entry_price: float = Field(..., gt=0)
    target_price_1: float = Field(..., gt=0)
    target_price_2: Optional[float] = None
    stop_loss: float = Field(..., gt=0)
    explanation: str = ""
    trading_plan: str = ""
    confidence_level: Optional[ConfidenceLevel] = None
    key_catalysts: Optional[str] = None
    risk_factors: Optional[str] = None
    parsed_strictly: bool = True


# =============================================================================
# OUTPUT: TradingPlan
# =============================================================================


class PositionSizing(BaseModel):
    """Share counts for a fixed capital base and risk-tolerance band."""

    capital_base: float
    investment_ceiling: float
    risk_per_share: float = Field(..., ge=0)
    min_risk_percent: float
    recommended_risk_percent: float
    max_risk_percent: float
    min_shares: int = Field(..., ge=0)
    recommended_shares: int = Field(..., ge=0)
    max_shares: int = Field(..., ge=0)
    position_value: float = Field(..., ge=0)
    volume_range_text: str


class TradingPlan(BaseModel):
    """Complete, sized trading plan."""

    direction: TradeDirection
    signal: SignalTier
    source: PlanSource
    entry_price: float
    target_price_1: float
    target_price_2: Optional[float] = None
    stop_loss: float
    risk_reward_ratio: float = Field(..., ge=0)
    position_size_percent: float = Field(..., ge=0)
    sizing: PositionSizing
    holding_period: str
    rationale: str
    trading_plan: str
    confidence_level: Optional[ConfidenceLevel] = None
    key_catalysts: Optional[str] = None
    risk_factors: Optional[str] = None
    invariant_ok: bool = True
