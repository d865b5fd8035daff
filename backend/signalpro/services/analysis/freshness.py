"""
Freshness Gate

Decides whether a stored analysis is still fresh enough to serve.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

from signalpro.core.config import settings
from signalpro.schemas.indicators import AnalysisProfile


def _as_utc(dt: datetime) -> datetime:
    """Naive datetimes are treated as UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def age_seconds(computed_at: datetime, now: Optional[datetime] = None) -> float:
    now = _as_utc(now) if now is not None else datetime.now(timezone.utc)
    return (now - _as_utc(computed_at)).total_seconds()


def should_recompute(
    computed_at: Optional[datetime],
    max_age: timedelta,
    now: Optional[datetime] = None,
) -> bool:
    """True when nothing is stored or the record is at least max_age old."""
    if computed_at is None:
        return True
    return age_seconds(computed_at, now) >= max_age.total_seconds()


def max_age_for(profile: AnalysisProfile) -> timedelta:
    if profile == AnalysisProfile.INTRADAY:
        return timedelta(seconds=settings.intraday_cache_max_age_seconds)
    return timedelta(seconds=settings.swing_cache_max_age_seconds)


class FreshnessGate:
    """Store-backed freshness check."""

    def __init__(self, store):
        self.store = store

    async def should_recompute(
        self,
        instrument_key: str,
        user_id: str,
        max_age: timedelta,
        now: Optional[datetime] = None,
    ) -> bool:
        record = await self.store.get(instrument_key, user_id)
        return should_recompute(record.computed_at if record else None, max_age, now)
