"""
CONTRACT 5: Analysis Result

Caller-facing contract of analyze(instrument_key, user_id, force_refresh):
IndicatorSnapshot + ScoreResult + TradingPlan + cache metadata.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field

from signalpro.schemas.indicators import AnalysisProfile, IndicatorSnapshot
from signalpro.schemas.market import Quote
from signalpro.schemas.plan import TradingPlan
from signalpro.schemas.scoring import ScoreResult


class AnalysisRequest(BaseModel):
    """Request to analyze one instrument for one user."""

    instrument_key: str = Field(..., min_length=1, description="e.g. NSE_EQ|INE002A01018")
    user_id: str = Field(..., min_length=1)
    force_refresh: bool = False
    profile: AnalysisProfile = AnalysisProfile.SWING


class AnalysisSummary(BaseModel):
    """Compact row for recent/search listings."""

    instrument_key: str
    symbol: str
    profile: AnalysisProfile
    price: float
    score: float
    setup_quality: str
    direction: str
    signal: str
    computed_at: datetime


class CachedAnalysis(BaseModel):
    """
    Persisted analysis. One per (instrument_key, user_id); every
    recompute replaces it.
    """

    instrument_key: str
    user_id: str
    symbol: str
    profile: AnalysisProfile
    snapshot: IndicatorSnapshot
    score: ScoreResult
    plan: TradingPlan
    quote: Optional[Quote] = None
    computed_at: datetime

    def summary(self) -> AnalysisSummary:
        return AnalysisSummary(
            instrument_key=self.instrument_key,
            symbol=self.symbol,
            profile=self.profile,
            price=self.snapshot.price,
            score=self.score.score,
            setup_quality=self.score.setup_quality.value,
            direction=self.plan.direction.value,
            signal=self.plan.signal.value,
            computed_at=self.computed_at,
        )


class AnalysisResult(CachedAnalysis):
    """Full analysis for one instrument/user, with cache metadata."""

    from_cache: bool = False
    cache_age_seconds: Optional[float] = None

    @classmethod
    def from_record(
        cls,
        record: CachedAnalysis,
        from_cache: bool = False,
        cache_age_seconds: Optional[float] = None,
    ) -> "AnalysisResult":
        return cls(
            **dict(record),
            from_cache=from_cache,
            cache_age_seconds=cache_age_seconds,
        )
