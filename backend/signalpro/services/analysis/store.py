"""
Analysis Store

Persistence for the latest analysis per (instrument_key, user_id).
Last write wins; records are never versioned.
"""

import logging
from abc import ABC, abstractmethod
from datetime import timezone
from typing import Optional

from sqlalchemy import delete, or_, select
from sqlalchemy.dialects.sqlite import insert
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from signalpro.db.database import AsyncSessionLocal, session_scope
from signalpro.db.models import Analysis
from signalpro.schemas.analysis import CachedAnalysis
from signalpro.schemas.indicators import IndicatorSnapshot
from signalpro.schemas.market import Quote
from signalpro.schemas.plan import TradingPlan
from signalpro.schemas.scoring import ScoreResult

logger = logging.getLogger(__name__)


class AnalysisStore(ABC):
    """Persistent store contract."""

    @abstractmethod
    async def get(self, instrument_key: str, user_id: str) -> Optional[CachedAnalysis]:
        pass

    @abstractmethod
    async def upsert(self, record: CachedAnalysis) -> None:
        """Insert or fully replace the record for its (instrument_key, user_id)."""
        pass

    @abstractmethod
    async def recent(self, user_id: str, limit: int = 20) -> list[CachedAnalysis]:
        """Newest first."""
        pass

    @abstractmethod
    async def search(self, user_id: str, query: str, limit: int = 20) -> list[CachedAnalysis]:
        """Case-insensitive match on symbol or instrument key, newest first."""
        pass

    @abstractmethod
    async def delete(self, instrument_key: str, user_id: str) -> bool:
        """Returns True if a record was removed."""
        pass


class InMemoryAnalysisStore(AnalysisStore):
    """Dict-backed store for tests and development."""

    def __init__(self):
        self._records: dict[tuple[str, str], CachedAnalysis] = {}

    async def get(self, instrument_key: str, user_id: str) -> Optional[CachedAnalysis]:
        return self._records.get((instrument_key, user_id))

    async def upsert(self, record: CachedAnalysis) -> None:
        self._records[(record.instrument_key, record.user_id)] = record

    def _for_user(self, user_id: str) -> list[CachedAnalysis]:
        rows = [r for (_, uid), r in self._records.items() if uid == user_id]
        return sorted(rows, key=lambda r: r.computed_at, reverse=True)

    async def recent(self, user_id: str, limit: int = 20) -> list[CachedAnalysis]:
        return self._for_user(user_id)[:limit]

    async def search(self, user_id: str, query: str, limit: int = 20) -> list[CachedAnalysis]:
        needle = query.strip().lower()
        matches = [
            r for r in self._for_user(user_id)
            if needle in r.symbol.lower() or needle in r.instrument_key.lower()
        ]
        return matches[:limit]

    async def delete(self, instrument_key: str, user_id: str) -> bool:
        return self._records.pop((instrument_key, user_id), None) is not None


class SQLAnalysisStore(AnalysisStore):
    """SQLite store (async SQLAlchemy + aiosqlite)."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession] = AsyncSessionLocal):
        self.session_factory = session_factory

    @staticmethod
    def _to_record(row: Analysis) -> CachedAnalysis:
        computed_at = row.computed_at
        if computed_at.tzinfo is None:
            computed_at = computed_at.replace(tzinfo=timezone.utc)

        return CachedAnalysis(
            instrument_key=row.instrument_key,
            user_id=row.user_id,
            symbol=row.symbol,
            profile=row.profile,
            snapshot=IndicatorSnapshot.model_validate(row.snapshot),
            score=ScoreResult.model_validate(row.score_result),
            plan=TradingPlan.model_validate(row.plan),
            quote=Quote.model_validate(row.quote) if row.quote else None,
            computed_at=computed_at,
        )

    @staticmethod
    def _to_values(record: CachedAnalysis) -> dict:
        computed_at = record.computed_at
        if computed_at.tzinfo is not None:
            computed_at = computed_at.astimezone(timezone.utc).replace(tzinfo=None)

        return {
            "instrument_key": record.instrument_key,
            "user_id": record.user_id,
            "symbol": record.symbol,
            "profile": record.profile.value,
            "score": record.score.score,
            "signal": record.plan.signal.value,
            "direction": record.plan.direction.value,
            "snapshot": record.snapshot.model_dump(mode="json"),
            "score_result": record.score.model_dump(mode="json"),
            "plan": record.plan.model_dump(mode="json"),
            "quote": record.quote.model_dump(mode="json") if record.quote else None,
            "computed_at": computed_at,
        }

    async def get(self, instrument_key: str, user_id: str) -> Optional[CachedAnalysis]:
        async with session_scope(self.session_factory) as session:
            result = await session.execute(
                select(Analysis).where(
                    Analysis.instrument_key == instrument_key,
                    Analysis.user_id == user_id,
                )
            )
            row = result.scalar_one_or_none()
            return self._to_record(row) if row else None

    async def upsert(self, record: CachedAnalysis) -> None:
        values = self._to_values(record)
        stmt = insert(Analysis).values(**values)
        stmt = stmt.on_conflict_do_update(
            index_elements=["instrument_key", "user_id"],
            set_={k: v for k, v in values.items() if k not in ("instrument_key", "user_id")},
        )
        async with session_scope(self.session_factory) as session:
            await session.execute(stmt)
        logger.debug(f"Stored analysis for {record.instrument_key} (user {record.user_id})")

    async def recent(self, user_id: str, limit: int = 20) -> list[CachedAnalysis]:
        async with session_scope(self.session_factory) as session:
            result = await session.execute(
                select(Analysis)
                .where(Analysis.user_id == user_id)
                .order_by(Analysis.computed_at.desc())
                .limit(limit)
            )
            return [self._to_record(row) for row in result.scalars().all()]

    async def search(self, user_id: str, query: str, limit: int = 20) -> list[CachedAnalysis]:
        escaped = query.strip().replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
        pattern = f"%{escaped}%"
        async with session_scope(self.session_factory) as session:
            result = await session.execute(
                select(Analysis)
                .where(
                    Analysis.user_id == user_id,
                    or_(
                        Analysis.symbol.ilike(pattern, escape="\\"),
                        Analysis.instrument_key.ilike(pattern, escape="\\"),
                    ),
                )
                .order_by(Analysis.computed_at.desc())
                .limit(limit)
            )
            return [self._to_record(row) for row in result.scalars().all()]

    async def delete(self, instrument_key: str, user_id: str) -> bool:
        async with session_scope(self.session_factory) as session:
            result = await session.execute(
                delete(Analysis).where(
                    Analysis.instrument_key == instrument_key,
                    Analysis.user_id == user_id,
                )
            )
            return result.rowcount > 0
