"""
Plan Synthesizer Service

CONTRACT:
    Input:  IndicatorSnapshot + ScoreResult
    Output: TradingPlan

RESPONSIBILITIES:
    - Delegate to the advisory LLM when enabled and configured
    - Fall back to deterministic intraday/swing rule tables
    - Size the position from the capital base and risk tier

The fallback never raises on a valid snapshot.
"""

from signalpro.services.planning.advisory import AdvisoryService, AdvisoryStrategy
from signalpro.services.planning.fallback import FallbackStrategy
from signalpro.services.planning.interface import PlanContext, PlanDraft, PlanStrategy
from signalpro.services.planning.synthesizer import (
    PlanSynthesizer,
    first_successful,
    get_plan_synthesizer,
)

__all__ = [
    "AdvisoryService",
    "AdvisoryStrategy",
    "FallbackStrategy",
    "PlanContext",
    "PlanDraft",
    "PlanStrategy",
    "PlanSynthesizer",
    "first_successful",
    "get_plan_synthesizer",
]
