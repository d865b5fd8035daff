"""
Plan Synthesizer Implementation

Ordered fallback: advisory (when enabled and configured) then the
deterministic rule tables. Whatever strategy wins is sized the same way.
"""

import logging
from datetime import datetime
from typing import Optional, Sequence

from signalpro.core.config import settings
from signalpro.schemas.indicators import AnalysisProfile, IndicatorSnapshot
from signalpro.schemas.plan import TradingPlan
from signalpro.schemas.scoring import ScoreResult
from signalpro.services.base import ServiceError
from signalpro.services.planning.advisory import AdvisoryService, AdvisoryStrategy
from signalpro.services.planning.fallback import FallbackStrategy
from signalpro.services.planning.interface import PlanContext, PlanDraft, PlanStrategy
from signalpro.services.planning.sizing import (
    calculate_position_sizing,
    position_size_percent,
    risk_reward_ratio,
)

logger = logging.getLogger(__name__)


HOLDING_PERIODS = {
    AnalysisProfile.INTRADAY: "intraday",
    AnalysisProfile.SWING: "1-2_weeks",
}


async def first_successful(
    strategies: Sequence[PlanStrategy], context: PlanContext
) -> PlanDraft:
    """
    Return the first draft a strategy produces.

    Service errors are logged and the next strategy is tried. The last
    strategy is expected to be total; if it raises, the error propagates.
    """
    if not strategies:
        raise ValueError("At least one plan strategy is required")

    *optional, last = strategies
    for strategy in optional:
        try:
            return await strategy.propose(context)
        except ServiceError as e:
            logger.warning(
                f"{strategy.name} plan failed for {context.snapshot.symbol}, "
                f"falling through: {e.message}"
            )
    return await last.propose(context)


class PlanSynthesizer:
    """
    Plan Synthesizer.

    Produces a sized TradingPlan for a snapshot and its score.
    """

    def __init__(
        self,
        advisory_service: Optional[AdvisoryService] = None,
        advisory_enabled: Optional[bool] = None,
        capital_base: Optional[float] = None,
        investment_ceiling: Optional[float] = None,
    ):
        self.advisory_service = advisory_service or AdvisoryService()
        self.advisory_enabled = (
            advisory_enabled if advisory_enabled is not None else settings.advisory_enabled
        )
        self.capital_base = capital_base if capital_base is not None else settings.capital_base
        self.investment_ceiling = (
            investment_ceiling
            if investment_ceiling is not None
            else settings.max_investment_per_trade
        )
        self.fallback = FallbackStrategy()

    @property
    def name(self) -> str:
        return "PlanSynthesizer"

    def strategies(self) -> list[PlanStrategy]:
        strategies: list[PlanStrategy] = []
        if self.advisory_enabled and self.advisory_service.is_available:
            strategies.append(AdvisoryStrategy(self.advisory_service))
        strategies.append(self.fallback)
        return strategies

    async def synthesize(
        self,
        snapshot: IndicatorSnapshot,
        score: ScoreResult,
        as_of: Optional[datetime] = None,
    ) -> TradingPlan:
        context = PlanContext(snapshot=snapshot, score=score, as_of=as_of)
        draft = await first_successful(self.strategies(), context)
        return self.finalize(draft, context)

    def finalize(self, draft: PlanDraft, context: PlanContext) -> TradingPlan:
        """Attach sizing, risk:reward and the invariant flag to a draft."""
        invariant_ok = draft.invariant_ok
        if not invariant_ok:
            logger.warning(
                f"Plan invariant violated for {context.snapshot.symbol} "
                f"({draft.source.value}, {draft.direction.value}): entry={draft.entry_price} "
                f"target={draft.target_price_1} stop={draft.stop_loss}"
            )

        sizing = calculate_position_sizing(
            draft.signal,
            draft.entry_price,
            draft.stop_loss,
            self.capital_base,
            self.investment_ceiling,
        )

        return TradingPlan(
            direction=draft.direction,
            signal=draft.signal,
            source=draft.source,
            entry_price=draft.entry_price,
            target_price_1=draft.target_price_1,
            target_price_2=draft.target_price_2,
            stop_loss=draft.stop_loss,
            risk_reward_ratio=risk_reward_ratio(
                draft.entry_price, draft.target_price_1, draft.stop_loss
            ),
            position_size_percent=position_size_percent(sizing, draft.entry_price),
            sizing=sizing,
            holding_period=HOLDING_PERIODS[context.profile],
            rationale=draft.rationale,
            trading_plan=draft.trading_plan,
            confidence_level=draft.confidence_level,
            key_catalysts=draft.key_catalysts,
            risk_factors=draft.risk_factors,
            invariant_ok=invariant_ok,
        )


# Singleton instance
_synthesizer_instance: Optional[PlanSynthesizer] = None


def get_plan_synthesizer() -> PlanSynthesizer:
    """Get or create plan synthesizer instance."""
    global _synthesizer_instance
    if _synthesizer_instance is None:
        _synthesizer_instance = PlanSynthesizer()
    return _synthesizer_instance
