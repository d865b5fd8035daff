"""
Tests for advisory delegation: response parsing, swing discipline,
timeouts and the synthesizer's fall-through to the rule tables.
"""

import asyncio
import json
from datetime import datetime

import pytest

from signalpro.core.market_hours import IST
from signalpro.schemas.plan import PlanSource, SignalTier, TradeDirection
from signalpro.services.base import AdvisoryParseError, ExternalAPIError, RateLimitError
from signalpro.services.llm.client import LLMClient, LLMConfig, LLMProvider, LLMResponse
from signalpro.services.planning import (
    AdvisoryService,
    AdvisoryStrategy,
    PlanContext,
    PlanSynthesizer,
)
from signalpro.services.planning.advisory import (
    clamp_swing_levels,
    parse_advisory_response,
    strip_code_fences,
)
from signalpro.services.planning.prompts import format_advisory_prompt


AS_OF = IST.localize(datetime(2024, 1, 2, 11, 0))


class FakeLLM:
    """Stands in for LLMClient."""

    def __init__(self, content="", delay=0.0, error=None, configured=True):
        self.content = content
        self.delay = delay
        self.error = error
        self.configured = configured
        self.calls = []

    @property
    def is_configured(self) -> bool:
        return self.configured

    async def generate(self, **kwargs) -> LLMResponse:
        self.calls.append(kwargs)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return LLMResponse(content=self.content, model="fake", provider=LLMProvider.OPENAI)


@pytest.fixture
def intraday_context(intraday_snapshot, intraday_score):
    return PlanContext(intraday_snapshot, intraday_score, AS_OF)


@pytest.fixture
def swing_context(swing_snapshot, swing_score):
    return PlanContext(swing_snapshot, swing_score, AS_OF)


LONG_JSON = json.dumps(
    {
        "direction": "LONG",
        "signal": "strong",
        "explanation": "Breakout above VWAP on volume.",
        "entry_price": 109.5,
        "target_price": 111.0,
        "stop_loss": 108.9,
    }
)


# =============================================================================
# PARSING
# =============================================================================


class TestParsing:
    def test_strict_json(self, intraday_context):
        signal = parse_advisory_response(LONG_JSON, intraday_context)

        assert signal.parsed_strictly
        assert signal.direction == TradeDirection.LONG
        assert signal.signal == SignalTier.STRONG
        assert (signal.entry_price, signal.target_price_1, signal.stop_loss) == (109.5, 111.0, 108.9)
        assert signal.explanation == "Breakout above VWAP on volume."
        assert "• DIRECTION: LONG" in signal.trading_plan

    def test_fenced_json(self, intraday_context):
        signal = parse_advisory_response(f"```json\n{LONG_JSON}\n```", intraday_context)
        assert signal.parsed_strictly
        assert signal.entry_price == 109.5

    def test_strip_code_fences_leaves_plain_text(self):
        assert strip_code_fences("  {\"a\": 1}  ") == '{"a": 1}'

    def test_free_text_uses_default_levels(self, intraday_context):
        signal = parse_advisory_response(
            "Outlook is positive.\nRecommendation: LONG\nSignal: caution", intraday_context
        )

        assert not signal.parsed_strictly
        assert signal.direction == TradeDirection.LONG
        assert signal.signal == SignalTier.CAUTION
        assert signal.entry_price == 107.8
        assert signal.target_price_1 == 115.5
        assert signal.stop_loss == 104.5

    def test_json_without_direction_is_scanned(self, intraday_context):
        signal = parse_advisory_response('{"view": "SHORT bias"}', intraday_context)
        assert not signal.parsed_strictly
        assert signal.direction == TradeDirection.SHORT
        assert signal.target_price_1 < signal.entry_price < signal.stop_loss

    def test_no_direction_raises(self, intraday_context):
        with pytest.raises(AdvisoryParseError):
            parse_advisory_response("I am not sure about this one.", intraday_context)

    def test_non_positive_numbers_take_defaults(self, intraday_context):
        content = json.dumps({"direction": "LONG", "entry_price": -5, "target_price": "abc"})
        signal = parse_advisory_response(content, intraday_context)
        assert signal.entry_price == 107.8
        assert signal.target_price_1 == 115.5

    def test_unknown_tier_is_neutral(self, swing_context):
        content = json.dumps({"direction": "LONG", "signal": "strong"})
        assert parse_advisory_response(content, swing_context).signal == SignalTier.NEUTRAL


class TestSwingDiscipline:
    def test_long_entry_clamped_near_price(self):
        entry, target_1, target_2, stop = clamp_swing_levels(TradeDirection.LONG, 100.0, 90.0)
        assert entry == pytest.approx(99.0)
        assert target_1 == pytest.approx(102.0)
        assert target_2 == pytest.approx(104.0)
        assert stop == pytest.approx(99.0 * 0.985)

    def test_short_entry_clamped_near_price(self):
        entry, target_1, target_2, stop = clamp_swing_levels(TradeDirection.SHORT, 100.0, 120.0)
        assert entry == pytest.approx(101.0)
        assert target_1 == pytest.approx(98.0)
        assert target_2 == pytest.approx(96.0)
        assert stop == pytest.approx(101.0 * 1.015)

    def test_parsed_swing_levels_are_disciplined(self, swing_context):
        price = swing_context.price
        content = json.dumps(
            {"direction": "LONG", "signal": "buy", "entry_price": price * 0.5, "stop_loss": price * 2}
        )
        signal = parse_advisory_response(content, swing_context)

        assert signal.signal == SignalTier.BUY
        assert signal.entry_price == pytest.approx(price * 0.99, abs=0.01)
        assert signal.stop_loss < signal.entry_price < signal.target_price_1 < signal.target_price_2


def test_prompt_carries_snapshot_values(intraday_context):
    prompt = format_advisory_prompt(intraday_context)
    assert intraday_context.snapshot.symbol in prompt
    assert "VWAP" in prompt
    assert "SCORE: 7.0/10" in prompt
    assert intraday_context.timing_advice in prompt


# =============================================================================
# SERVICE AND STRATEGY
# =============================================================================


class TestAdvisoryService:
    async def test_get_signal(self, intraday_context):
        llm = FakeLLM(LONG_JSON)
        signal = await AdvisoryService(llm_client=llm).get_signal(intraday_context)

        assert signal.direction == TradeDirection.LONG
        assert llm.calls[0]["response_format"] == "json"

    async def test_timeout_is_external_error(self, intraday_context):
        service = AdvisoryService(llm_client=FakeLLM(LONG_JSON, delay=1.0), timeout_seconds=0.01)
        with pytest.raises(ExternalAPIError):
            await service.get_signal(intraday_context)

    async def test_empty_response(self, intraday_context):
        with pytest.raises(AdvisoryParseError):
            await AdvisoryService(llm_client=FakeLLM("   ")).get_signal(intraday_context)

    async def test_inconsistent_levels_are_rejected(self, intraday_context):
        content = json.dumps(
            {"direction": "LONG", "entry_price": 109.5, "target_price": 109.0, "stop_loss": 108.0}
        )
        strategy = AdvisoryStrategy(AdvisoryService(llm_client=FakeLLM(content)))
        with pytest.raises(AdvisoryParseError):
            await strategy.propose(intraday_context)


class TestSynthesizerWithAdvisory:
    def synthesizer(self, llm):
        return PlanSynthesizer(
            advisory_service=AdvisoryService(llm_client=llm),
            advisory_enabled=True,
            capital_base=100_000,
            investment_ceiling=50_000,
        )

    async def test_uses_advisory_when_valid(self, intraday_snapshot, intraday_score):
        plan = await self.synthesizer(FakeLLM(LONG_JSON)).synthesize(
            intraday_snapshot, intraday_score, as_of=AS_OF
        )
        assert plan.source == PlanSource.ADVISORY
        assert plan.entry_price == 109.5
        assert plan.risk_reward_ratio == 2.5

    @pytest.mark.parametrize(
        "llm",
        [
            FakeLLM("no idea"),
            FakeLLM(error=RateLimitError("LLMClient", "slow down")),
            FakeLLM(json.dumps({"direction": "SHORT", "entry_price": 100, "target_price": 101})),
        ],
    )
    async def test_falls_back_on_failure(self, llm, intraday_snapshot, intraday_score):
        plan = await self.synthesizer(llm).synthesize(intraday_snapshot, intraday_score, as_of=AS_OF)
        assert plan.source == PlanSource.FALLBACK
        assert plan.invariant_ok

    async def test_unconfigured_llm_is_skipped(self, intraday_snapshot, intraday_score):
        llm = FakeLLM(LONG_JSON, configured=False)
        plan = await self.synthesizer(llm).synthesize(intraday_snapshot, intraday_score, as_of=AS_OF)
        assert plan.source == PlanSource.FALLBACK
        assert llm.calls == []


# =============================================================================
# PROVIDER FALLBACK
# =============================================================================


class TestLLMClient:
    def make_client(self):
        config = LLMConfig(provider=LLMProvider.GEMINI, gemini_api_key="g", openai_api_key="o")
        return LLMClient(config)

    def test_primary_first_then_keyed_providers(self):
        client = self.make_client()
        assert client.providers == [LLMProvider.GEMINI, LLMProvider.OPENAI]
        assert client.is_configured

    def test_no_keys(self):
        client = LLMClient(LLMConfig(provider=LLMProvider.OPENAI))
        assert not client.is_configured

    async def test_falls_through_to_next_provider(self):
        client = self.make_client()

        async def broken(**kwargs):
            raise RuntimeError("boom")

        async def working(**kwargs):
            return LLMResponse(content="{}", model="gpt", provider=LLMProvider.OPENAI)

        client._clients[0].generate = broken
        client._clients[1].generate = working

        response = await client.generate(system_prompt="s", user_prompt="u")
        assert response.provider == LLMProvider.OPENAI

    async def test_rate_limit_is_classified(self):
        client = self.make_client()

        class TooMany(Exception):
            status_code = 429

        async def limited(**kwargs):
            raise TooMany("quota")

        for provider_client in client._clients:
            provider_client.generate = limited

        with pytest.raises(RateLimitError):
            await client.generate(system_prompt="s", user_prompt="u")

    async def test_unconfigured_generate_raises(self):
        client = LLMClient(LLMConfig(provider=LLMProvider.OPENAI))
        with pytest.raises(ExternalAPIError):
            await client.generate(system_prompt="s", user_prompt="u")
