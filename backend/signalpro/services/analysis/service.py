"""
Analyzer Service Implementation

Pipeline:
1. Freshness gate (serve the stored analysis if still fresh)
2. Market data: candles + quote, fetched concurrently
3. Indicators: IndicatorSnapshot
4. Scoring: profile scorer
5. Plan: advisory or deterministic fallback, then sizing
6. Persist and return
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Optional

from signalpro.core.config import settings
from signalpro.schemas.analysis import AnalysisResult, AnalysisSummary, CachedAnalysis
from signalpro.schemas.indicators import AnalysisProfile
from signalpro.schemas.market import Timeframe, symbol_from_key
from signalpro.services.analysis.freshness import age_seconds, max_age_for, should_recompute
from signalpro.services.analysis.interface import AnalyzerServiceInterface
from signalpro.services.analysis.store import AnalysisStore, SQLAnalysisStore
from signalpro.services.base import ValidationError
from signalpro.services.indicators import IndicatorService, get_indicator_service
from signalpro.services.market_data import MarketDataProvider, get_market_data_provider
from signalpro.services.planning import PlanSynthesizer, get_plan_synthesizer
from signalpro.services.scoring import get_scorer

logger = logging.getLogger(__name__)


PROFILE_TIMEFRAMES = {
    AnalysisProfile.SWING: Timeframe.D1,
    AnalysisProfile.INTRADAY: Timeframe.M1,
}


class AnalyzerService(AnalyzerServiceInterface):
    """
    Analyzer Service.

    Collaborators are injected; omitted ones fall back to the
    configured singletons.
    """

    def __init__(
        self,
        store: Optional[AnalysisStore] = None,
        market_data: Optional[MarketDataProvider] = None,
        indicator_service: Optional[IndicatorService] = None,
        plan_synthesizer: Optional[PlanSynthesizer] = None,
    ):
        self._store = store
        self._market_data = market_data
        self._indicator_service = indicator_service
        self._plan_synthesizer = plan_synthesizer

    @property
    def store(self) -> AnalysisStore:
        if self._store is None:
            self._store = SQLAnalysisStore()
        return self._store

    @property
    def market_data(self) -> MarketDataProvider:
        if self._market_data is None:
            self._market_data = get_market_data_provider()
        return self._market_data

    @property
    def indicator_service(self) -> IndicatorService:
        if self._indicator_service is None:
            self._indicator_service = get_indicator_service()
        return self._indicator_service

    @property
    def plan_synthesizer(self) -> PlanSynthesizer:
        if self._plan_synthesizer is None:
            self._plan_synthesizer = get_plan_synthesizer()
        return self._plan_synthesizer

    @staticmethod
    def history_days(profile: AnalysisProfile) -> int:
        if profile == AnalysisProfile.INTRADAY:
            return settings.intraday_history_days
        return settings.swing_history_days

    async def analyze(
        self,
        instrument_key: str,
        user_id: str,
        force_refresh: bool = False,
        profile: AnalysisProfile = AnalysisProfile.SWING,
    ) -> AnalysisResult:
        instrument_key = (instrument_key or "").strip()
        user_id = (user_id or "").strip()
        if not instrument_key:
            raise ValidationError(self.name, "instrument_key is required")
        if not user_id:
            raise ValidationError(self.name, "user_id is required")

        # =================================================================
        # STAGE 1: Freshness gate
        # =================================================================
        if not force_refresh:
            cached = await self.store.get(instrument_key, user_id)
            if (
                cached is not None
                and cached.profile == profile
                and not should_recompute(cached.computed_at, max_age_for(profile))
            ):
                age = age_seconds(cached.computed_at)
                logger.info(f"Serving cached {profile.value} analysis for {instrument_key} ({age:.0f}s old)")
                return AnalysisResult.from_record(cached, from_cache=True, cache_age_seconds=round(age, 1))

        logger.info(f"Recomputing {profile.value} analysis for {instrument_key} (user {user_id})")

        # =================================================================
        # STAGE 2: Market data
        # =================================================================
        timeframe = PROFILE_TIMEFRAMES[profile]
        # Both calls settle before any failure propagates
        series, quote = await asyncio.gather(
            self.market_data.get_candles(instrument_key, timeframe, self.history_days(profile)),
            self.market_data.get_quote(instrument_key),
            return_exceptions=True,
        )
        for outcome in (series, quote):
            if isinstance(outcome, BaseException):
                raise outcome

        if len(series) < settings.min_candles:
            raise ValidationError(
                self.name,
                f"Insufficient data: {len(series)} candles, need at least {settings.min_candles}",
                {"instrument_key": instrument_key, "candles": len(series)},
            )

        # =================================================================
        # STAGES 3-5: Indicators, score, plan
        # =================================================================
        snapshot = self.indicator_service.build_snapshot(series, profile)
        score = get_scorer(profile).score(snapshot)
        plan = await self.plan_synthesizer.synthesize(snapshot, score)

        logger.info(
            f"{snapshot.symbol}: score={score.score} ({score.setup_quality.value}), "
            f"{plan.direction.value}/{plan.signal.value} via {plan.source.value}"
        )

        # =================================================================
        # STAGE 6: Persist
        # =================================================================
        record = CachedAnalysis(
            instrument_key=instrument_key,
            user_id=user_id,
            symbol=symbol_from_key(instrument_key),
            profile=profile,
            snapshot=snapshot,
            score=score,
            plan=plan,
            quote=quote,
            computed_at=datetime.now(timezone.utc),
        )
        await self.store.upsert(record)

        return AnalysisResult.from_record(record, from_cache=False)

    async def recent(self, user_id: str, limit: int = 20) -> list[AnalysisSummary]:
        records = await self.store.recent(user_id, limit)
        return [r.summary() for r in records]

    async def search(self, user_id: str, query: str, limit: int = 20) -> list[AnalysisSummary]:
        if not query.strip():
            return []
        records = await self.store.search(user_id, query, limit)
        return [r.summary() for r in records]

    async def delete(self, instrument_key: str, user_id: str) -> bool:
        deleted = await self.store.delete(instrument_key, user_id)
        if deleted:
            logger.info(f"Deleted analysis for {instrument_key} (user {user_id})")
        return deleted


# Singleton instance
_service_instance: Optional[AnalyzerService] = None


def get_analyzer_service() -> AnalyzerService:
    """Get or create analyzer service instance."""
    global _service_instance
    if _service_instance is None:
        _service_instance = AnalyzerService()
    return _service_instance
