"""
Advisory Delegation

Asks an LLM for a direction, tier and price levels, then parses and
disciplines the answer. The LLM never has the last word on consistency:
a plan that violates the direction invariant is rejected.
"""

import asyncio
import json
import logging
from typing import Optional

from signalpro.core.config import settings
from signalpro.schemas.indicators import AnalysisProfile
from signalpro.schemas.plan import (
    AdvisorySignal,
    ConfidenceLevel,
    PlanSource,
    SignalTier,
    TradeDirection,
)
from signalpro.services.base import AdvisoryParseError, ExternalAPIError
from signalpro.services.llm.client import LLMClient, get_llm_client
from signalpro.services.planning.fallback import format_trading_plan
from signalpro.services.planning.interface import PlanContext, PlanDraft, PlanStrategy
from signalpro.services.planning.prompts import format_advisory_prompt, get_system_prompt

logger = logging.getLogger(__name__)


INTRADAY_TIERS = (SignalTier.STRONG, SignalTier.CAUTION, SignalTier.NEUTRAL, SignalTier.RISK)
SWING_TIERS = (
    SignalTier.STRONG_BUY,
    SignalTier.BUY,
    SignalTier.HOLD,
    SignalTier.SELL,
    SignalTier.STRONG_SELL,
    SignalTier.NEUTRAL,
)

# Keyword scan order matters: compound tiers before their substrings
INTRADAY_KEYWORDS = (
    ("strong", SignalTier.STRONG),
    ("caution", SignalTier.CAUTION),
    ("risk", SignalTier.RISK),
)
SWING_KEYWORDS = (
    ("strong_buy", SignalTier.STRONG_BUY),
    ("strong_sell", SignalTier.STRONG_SELL),
    ("buy", SignalTier.BUY),
    ("sell", SignalTier.SELL),
    ("hold", SignalTier.HOLD),
)

DEFAULT_EXPLANATION = "Technical analysis suggests neutral position."


# =============================================================================
# PARSING
# =============================================================================


def strip_code_fences(content: str) -> str:
    """Remove a surrounding ```json ... ``` block if present."""
    content = content.strip()
    if content.startswith("```"):
        lines = content.split("\n")
        lines = lines[1:]
        if lines and lines[-1].strip().startswith("```"):
            lines = lines[:-1]
        content = "\n".join(lines).strip()
    return content


def _positive(value) -> Optional[float]:
    if isinstance(value, bool) or value is None:
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if number > 0 else None


def _direction(value) -> Optional[TradeDirection]:
    if not isinstance(value, str):
        return None
    try:
        return TradeDirection(value.strip().upper())
    except ValueError:
        return None


def _tier(value, profile: AnalysisProfile) -> SignalTier:
    allowed = INTRADAY_TIERS if profile == AnalysisProfile.INTRADAY else SWING_TIERS
    if isinstance(value, str):
        normalized = value.strip().lower().replace(" ", "_")
        for tier in allowed:
            if tier.value == normalized:
                return tier
    return SignalTier.NEUTRAL


def _confidence(value) -> Optional[ConfidenceLevel]:
    if not isinstance(value, str):
        return None
    try:
        return ConfidenceLevel(value.strip().lower())
    except ValueError:
        return None


def scan_free_text(content: str, profile: AnalysisProfile) -> tuple[TradeDirection, SignalTier]:
    """
    Permissive line scan for direction and tier keywords. Later lines win.

    Raises:
        AdvisoryParseError: If no direction keyword appears anywhere
    """
    direction: Optional[TradeDirection] = None
    signal = SignalTier.NEUTRAL
    keywords = INTRADAY_KEYWORDS if profile == AnalysisProfile.INTRADAY else SWING_KEYWORDS

    for line in content.splitlines():
        line = line.strip()
        if "LONG" in line:
            direction = TradeDirection.LONG
        elif "SHORT" in line:
            direction = TradeDirection.SHORT
        elif "NEUTRAL" in line:
            direction = TradeDirection.NEUTRAL

        lowered = line.lower()
        for keyword, tier in keywords:
            if keyword in lowered:
                signal = tier
                break

    if direction is None:
        raise AdvisoryParseError(
            "AdvisoryService", "Response has neither JSON nor a direction keyword",
            {"content": content[:200]},
        )
    return direction, signal


def default_levels(direction: TradeDirection, price: float) -> tuple[float, float, float]:
    """(entry, target, stop) used for any missing or non-positive number."""
    if direction == TradeDirection.LONG:
        return price * 0.98, price * 1.05, price * 0.95
    if direction == TradeDirection.SHORT:
        return price * 1.02, price * 0.95, price * 1.05
    return price, price, price


def clamp_swing_levels(
    direction: TradeDirection, price: float, entry: float
) -> tuple[float, float, float, float]:
    """
    Swing price discipline.

    Returns: (entry, target_1, target_2, stop)
    """
    if direction == TradeDirection.LONG:
        entry = min(price * 1.005, max(price * 0.99, entry))
        target_1 = max(entry * 1.02, price * 1.02)
        target_2 = max(entry * 1.04, price * 1.04)
        return entry, target_1, target_2, entry * 0.985
    if direction == TradeDirection.SHORT:
        entry = min(price * 1.01, max(price * 0.995, entry))
        target_1 = min(entry * 0.98, price * 0.98)
        target_2 = min(entry * 0.96, price * 0.96)
        return entry, target_1, target_2, entry * 1.015
    return price, price, price, price


def parse_advisory_response(content: str, context: PlanContext) -> AdvisorySignal:
    """
    Strict JSON first; a line scan for keywords when JSON fails.

    Raises:
        AdvisoryParseError: If neither yields a direction
    """
    profile = context.profile
    price = context.price
    cleaned = strip_code_fences(content)

    data: dict = {}
    direction: Optional[TradeDirection] = None
    strict = True
    try:
        parsed = json.loads(cleaned)
        if isinstance(parsed, dict):
            data = parsed
            direction = _direction(data.get("direction"))
    except json.JSONDecodeError as e:
        logger.warning(f"Advisory response is not valid JSON ({e}), scanning free text")

    if direction is None:
        strict = False
        direction, signal = scan_free_text(cleaned, profile)
    else:
        signal = _tier(data.get("signal"), profile)

    default_entry, default_target, default_stop = default_levels(direction, price)
    entry = _positive(data.get("entry_price")) or default_entry
    target_1 = (
        _positive(data.get("target_price_1")) or _positive(data.get("target_price")) or default_target
    )
    target_2 = _positive(data.get("target_price_2"))
    stop = _positive(data.get("stop_loss")) or default_stop

    if profile == AnalysisProfile.SWING:
        entry, target_1, target_2, stop = clamp_swing_levels(direction, price, entry)

    explanation = data.get("explanation") or data.get("analysis") or DEFAULT_EXPLANATION
    trading_plan = data.get("trading_plan")
    if not isinstance(trading_plan, str) or not trading_plan.strip():
        trading_plan = format_trading_plan(
            context.timing_advice, direction, signal, entry, target_1, stop,
            "Buy" if direction == TradeDirection.LONG else "Sell",
        )

    return AdvisorySignal(
        direction=direction,
        signal=signal,
        entry_price=round(entry, 2),
        target_price_1=round(target_1, 2),
        target_price_2=round(target_2, 2) if target_2 else None,
        stop_loss=round(stop, 2),
        explanation=str(explanation),
        trading_plan=trading_plan,
        confidence_level=_confidence(data.get("confidence_level")),
        key_catalysts=data.get("key_catalysts") if isinstance(data.get("key_catalysts"), str) else None,
        risk_factors=data.get("risk_factors") if isinstance(data.get("risk_factors"), str) else None,
        parsed_strictly=strict,
    )


# =============================================================================
# SERVICE
# =============================================================================


class AdvisoryService:
    """
    Advisory service backed by LLMClient.

    Raises ExternalAPIError/RateLimitError when the LLM is unreachable,
    unauthorized, rate limited or too slow, and AdvisoryParseError when
    its answer is unusable.
    """

    def __init__(
        self,
        llm_client: Optional[LLMClient] = None,
        timeout_seconds: Optional[float] = None,
    ):
        self._llm_client = llm_client
        self.timeout_seconds = (
            timeout_seconds if timeout_seconds is not None else settings.advisory_timeout_seconds
        )

    @property
    def name(self) -> str:
        return "AdvisoryService"

    @property
    def llm_client(self) -> LLMClient:
        """Lazy initialization of LLM client."""
        if self._llm_client is None:
            self._llm_client = get_llm_client()
        return self._llm_client

    @property
    def is_available(self) -> bool:
        return self.llm_client.is_configured

    async def get_signal(self, context: PlanContext) -> AdvisorySignal:
        try:
            response = await asyncio.wait_for(
                self.llm_client.generate(
                    system_prompt=get_system_prompt(context.profile),
                    user_prompt=format_advisory_prompt(context),
                    temperature=0.3,
                    response_format="json",
                ),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError:
            raise ExternalAPIError(
                self.name, f"Advisory timed out after {self.timeout_seconds}s",
                {"symbol": context.snapshot.symbol},
            )

        if not response.content or not response.content.strip():
            raise AdvisoryParseError(self.name, "Empty advisory response")

        signal = parse_advisory_response(response.content, context)
        logger.info(
            f"Advisory for {context.snapshot.symbol} via {response.provider.value}: "
            f"{signal.direction.value}/{signal.signal.value}"
        )
        return signal


class AdvisoryStrategy(PlanStrategy):
    """Plan strategy that delegates to the advisory service."""

    def __init__(self, advisory_service: AdvisoryService):
        self.advisory_service = advisory_service

    @property
    def name(self) -> str:
        return "advisory"

    async def propose(self, context: PlanContext) -> PlanDraft:
        signal = await self.advisory_service.get_signal(context)

        draft = PlanDraft(
            direction=signal.direction,
            signal=signal.signal,
            source=PlanSource.ADVISORY,
            entry_price=signal.entry_price,
            target_price_1=signal.target_price_1,
            target_price_2=signal.target_price_2,
            stop_loss=signal.stop_loss,
            rationale=signal.explanation,
            trading_plan=signal.trading_plan,
            confidence_level=signal.confidence_level,
            key_catalysts=signal.key_catalysts,
            risk_factors=signal.risk_factors,
        )

        if not draft.invariant_ok:
            raise AdvisoryParseError(
                self.advisory_service.name,
                "Advisory levels are inconsistent with the direction",
                {
                    "direction": draft.direction.value,
                    "entry": draft.entry_price,
                    "target": draft.target_price_1,
                    "stop": draft.stop_loss,
                },
            )
        return draft
