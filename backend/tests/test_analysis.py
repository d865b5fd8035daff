"""
Tests for the freshness gate, analysis stores and the analyzer pipeline.
"""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from signalpro.db.database import close_db, create_engine, create_session_factory, init_db
from signalpro.schemas.analysis import AnalysisRequest
from signalpro.schemas.indicators import AnalysisProfile
from signalpro.schemas.market import Timeframe
from signalpro.schemas.plan import PlanSource
from signalpro.services.analysis.freshness import FreshnessGate, age_seconds, should_recompute
from signalpro.services.analysis.store import InMemoryAnalysisStore, SQLAnalysisStore
from signalpro.services.base import RateLimitError, ValidationError

from conftest import KEY, USER, FakeMarketData, make_analyzer, make_series


# =============================================================================
# FRESHNESS
# =============================================================================


class TestFreshness:
    NOW = datetime(2024, 1, 2, 10, 0, tzinfo=timezone.utc)

    def test_nothing_stored(self):
        assert should_recompute(None, timedelta(minutes=5), self.NOW)

    def test_fresh_record(self):
        computed = self.NOW - timedelta(minutes=4, seconds=59)
        assert not should_recompute(computed, timedelta(minutes=5), self.NOW)

    def test_exactly_max_age_is_stale(self):
        computed = self.NOW - timedelta(minutes=5)
        assert should_recompute(computed, timedelta(minutes=5), self.NOW)

    def test_naive_datetimes_are_utc(self):
        naive = datetime(2024, 1, 2, 9, 59)
        assert age_seconds(naive, self.NOW) == 60.0

    def test_other_timezones_are_normalized(self):
        ist = timezone(timedelta(hours=5, minutes=30))
        computed = datetime(2024, 1, 2, 15, 29, tzinfo=ist)
        assert age_seconds(computed, self.NOW) == 60.0

    async def test_gate_reads_store(self):
        store = InMemoryAnalysisStore()
        gate = FreshnessGate(store)
        assert await gate.should_recompute(KEY, USER, timedelta(minutes=5))

        result = await make_analyzer(store=store).analyze(KEY, USER, profile=AnalysisProfile.INTRADAY)
        assert not await gate.should_recompute(KEY, USER, timedelta(minutes=5))
        later = result.computed_at + timedelta(minutes=5)
        assert await gate.should_recompute(KEY, USER, timedelta(minutes=5), now=later)


# =============================================================================
# ANALYZER
# =============================================================================


class TestAnalyzer:
    async def test_intraday_end_to_end(self):
        result = await make_analyzer().analyze(KEY, USER, profile=AnalysisProfile.INTRADAY)

        assert result.from_cache is False
        assert result.cache_age_seconds is None
        assert result.symbol == "INE002A01018"
        assert result.snapshot.intraday.volume_spike is True
        assert "bullish" in result.snapshot.intraday.trend_alignment.value
        assert result.score.score >= 6
        assert result.plan.source == PlanSource.FALLBACK
        assert result.plan.invariant_ok
        assert result.quote.last_price == 110.0

    async def test_second_call_is_served_from_cache(self):
        market_data = FakeMarketData()
        analyzer = make_analyzer(market_data=market_data)

        first = await analyzer.analyze(KEY, USER, profile=AnalysisProfile.INTRADAY)
        second = await analyzer.analyze(KEY, USER, profile=AnalysisProfile.INTRADAY)

        assert second.from_cache is True
        assert second.cache_age_seconds is not None and second.cache_age_seconds >= 0
        assert second.plan == first.plan
        assert len(market_data.candle_calls) == 1

    async def test_force_refresh_recomputes(self):
        market_data = FakeMarketData()
        analyzer = make_analyzer(market_data=market_data)

        await analyzer.analyze(KEY, USER, profile=AnalysisProfile.INTRADAY)
        result = await analyzer.analyze(KEY, USER, force_refresh=True, profile=AnalysisProfile.INTRADAY)

        assert result.from_cache is False
        assert len(market_data.candle_calls) == 2

    async def test_profile_change_recomputes(self):
        market_data = FakeMarketData()
        analyzer = make_analyzer(market_data=market_data)

        await analyzer.analyze(KEY, USER, profile=AnalysisProfile.INTRADAY)
        result = await analyzer.analyze(KEY, USER, profile=AnalysisProfile.SWING)

        assert result.from_cache is False
        assert result.profile == AnalysisProfile.SWING
        assert market_data.candle_calls[-1][1] == Timeframe.D1
        assert result.plan.holding_period == "1-2_weeks"

    async def test_users_are_cached_separately(self):
        market_data = FakeMarketData()
        analyzer = make_analyzer(market_data=market_data)

        await analyzer.analyze(KEY, USER, profile=AnalysisProfile.INTRADAY)
        result = await analyzer.analyze(KEY, "user-2", profile=AnalysisProfile.INTRADAY)

        assert result.from_cache is False
        assert len(market_data.candle_calls) == 2

    @pytest.mark.parametrize("key,user", [("", USER), ("   ", USER), (KEY, ""), (KEY, None)])
    async def test_missing_identifiers(self, key, user):
        with pytest.raises(ValidationError):
            await make_analyzer().analyze(key, user)

    async def test_insufficient_candles(self):
        short = make_series([100 + i for i in range(10)], timeframe=Timeframe.M1)
        analyzer = make_analyzer(market_data=FakeMarketData(series=short))

        with pytest.raises(ValidationError, match="Insufficient data"):
            await analyzer.analyze(KEY, USER, profile=AnalysisProfile.INTRADAY)

    async def test_provider_errors_propagate(self):
        store = InMemoryAnalysisStore()
        analyzer = make_analyzer(
            store=store, market_data=FakeMarketData(error=RateLimitError("Upstox", "429"))
        )

        with pytest.raises(RateLimitError):
            await analyzer.analyze(KEY, USER)
        assert await store.get(KEY, USER) is None

    async def test_failed_candles_wait_for_quote(self):
        class SlowQuote(FakeMarketData):
            quote_done = False

            async def get_quote(self, instrument_key):
                await asyncio.sleep(0.01)
                self.quote_done = True
                return await super().get_quote(instrument_key)

        market_data = SlowQuote(error=RateLimitError("Upstox", "429"))
        with pytest.raises(RateLimitError):
            await make_analyzer(market_data=market_data).analyze(KEY, USER)
        assert market_data.quote_done

    async def test_execute_takes_a_request(self):
        request = AnalysisRequest(instrument_key=KEY, user_id=USER, profile=AnalysisProfile.INTRADAY)
        result = await make_analyzer().execute(request)
        assert result.instrument_key == KEY


class TestListings:
    async def populated(self):
        analyzer = make_analyzer()
        await analyzer.analyze(KEY, USER, profile=AnalysisProfile.INTRADAY)
        await analyzer.analyze("NSE_EQ|RELIANCE", USER, profile=AnalysisProfile.SWING)
        await analyzer.analyze("NSE_EQ|TCS", "someone-else", profile=AnalysisProfile.SWING)
        return analyzer

    async def test_recent_is_newest_first_and_per_user(self):
        analyzer = await self.populated()
        rows = await analyzer.recent(USER)
        assert [r.instrument_key for r in rows] == ["NSE_EQ|RELIANCE", KEY]

    async def test_search_is_case_insensitive(self):
        analyzer = await self.populated()
        rows = await analyzer.search(USER, "relia")
        assert [r.symbol for r in rows] == ["RELIANCE"]
        assert await analyzer.search(USER, "   ") == []
        assert await analyzer.search(USER, "tcs") == []

    async def test_delete(self):
        analyzer = await self.populated()
        assert await analyzer.delete(KEY, USER) is True
        assert await analyzer.delete(KEY, USER) is False
        assert [r.instrument_key for r in await analyzer.recent(USER)] == ["NSE_EQ|RELIANCE"]


# =============================================================================
# SQL STORE
# =============================================================================


@pytest.fixture
async def sql_store():
    engine = create_engine("sqlite+aiosqlite:///:memory:")
    await init_db(engine)
    yield SQLAnalysisStore(create_session_factory(engine))
    await close_db(engine)


class TestSQLAnalysisStore:
    async def test_roundtrip(self, sql_store):
        result = await make_analyzer(store=sql_store).analyze(KEY, USER, profile=AnalysisProfile.INTRADAY)
        stored = await sql_store.get(KEY, USER)

        assert stored is not None
        assert stored.profile == AnalysisProfile.INTRADAY
        assert stored.plan == result.plan
        assert stored.score == result.score
        assert stored.snapshot.price == result.snapshot.price
        assert stored.quote.last_price == 110.0
        assert stored.computed_at.tzinfo is not None
        assert abs((stored.computed_at - result.computed_at).total_seconds()) < 1

    async def test_upsert_replaces(self, sql_store):
        analyzer = make_analyzer(store=sql_store)
        await analyzer.analyze(KEY, USER, profile=AnalysisProfile.INTRADAY)
        await analyzer.analyze(KEY, USER, profile=AnalysisProfile.SWING)

        rows = await sql_store.recent(USER)
        assert len(rows) == 1
        assert rows[0].profile == AnalysisProfile.SWING

    async def test_cache_hit_from_sql(self, sql_store):
        analyzer = make_analyzer(store=sql_store)
        await analyzer.analyze(KEY, USER, profile=AnalysisProfile.INTRADAY)
        second = await analyzer.analyze(KEY, USER, profile=AnalysisProfile.INTRADAY)
        assert second.from_cache is True

    async def test_search_and_delete(self, sql_store):
        analyzer = make_analyzer(store=sql_store)
        await analyzer.analyze(KEY, USER, profile=AnalysisProfile.INTRADAY)

        assert [r.symbol for r in await sql_store.search(USER, "ine002")] == ["INE002A01018"]
        assert await sql_store.delete(KEY, USER) is True
        assert await sql_store.delete(KEY, USER) is False
        assert await sql_store.get(KEY, USER) is None


@pytest.mark.parametrize(
    "query,expected",
    [
        ("e_e", ["INE002A01018"]),  # literal underscore in "NSE_EQ"
        ("q_ine", []),
        ("nse%", []),
    ],
)
async def test_wildcards_match_literally_in_both_stores(sql_store, query, expected):
    for store in (InMemoryAnalysisStore(), sql_store):
        await make_analyzer(store=store).analyze(KEY, USER, profile=AnalysisProfile.INTRADAY)
        assert [r.symbol for r in await store.search(USER, query)] == expected
