"""
Plan Synthesizer Interface

A plan strategy turns a snapshot and its score into an unsized PlanDraft.
Strategies are tried in order; the first one that returns wins.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from signalpro.core.market_hours import get_ist_now, get_timing_advice
from signalpro.schemas.indicators import AnalysisProfile, IndicatorSnapshot
from signalpro.schemas.plan import ConfidenceLevel, PlanSource, SignalTier, TradeDirection
from signalpro.schemas.scoring import ScoreResult


@dataclass(frozen=True)
class PlanContext:
    """Everything a strategy may look at. `as_of` pins the timing advice."""

    snapshot: IndicatorSnapshot
    score: ScoreResult
    as_of: Optional[datetime] = None

    @property
    def profile(self) -> AnalysisProfile:
        return self.snapshot.profile

    @property
    def price(self) -> float:
        return self.snapshot.price

    @property
    def timing_advice(self) -> str:
        return get_timing_advice(self.as_of or get_ist_now())


@dataclass
class PlanDraft:
    """Direction, tier and price levels before position sizing."""

    direction: TradeDirection
    signal: SignalTier
    source: PlanSource
    entry_price: float
    target_price_1: float
    stop_loss: float
    rationale: str
    trading_plan: str
    target_price_2: Optional[float] = None
    confidence_level: Optional[ConfidenceLevel] = None
    key_catalysts: Optional[str] = None
    risk_factors: Optional[str] = None

    @property
    def invariant_ok(self) -> bool:
        """LONG: stop < entry < target. SHORT: target < entry < stop."""
        if self.direction == TradeDirection.LONG:
            return self.stop_loss < self.entry_price < self.target_price_1
        if self.direction == TradeDirection.SHORT:
            return self.target_price_1 < self.entry_price < self.stop_loss
        return True


class PlanStrategy(ABC):
    """One way of producing a plan draft."""

    @property
    @abstractmethod
    def name(self) -> str:
        pass

    @abstractmethod
    async def propose(self, context: PlanContext) -> PlanDraft:
        """
        Raises:
            ServiceError: When this strategy cannot produce a plan
        """
        pass
