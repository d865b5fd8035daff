"""
SQLAlchemy models for SignalPro database.

Uses SQLite for local persistence of the latest analysis per
instrument and user.
"""

from datetime import datetime

from sqlalchemy import (
    Column,
    String,
    Float,
    Integer,
    DateTime,
    Index,
    JSON,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


class Analysis(Base):
    """
    Latest analysis for an (instrument_key, user_id) pair.
    Every recompute overwrites the row.
    """
    __tablename__ = "analyses"

    id = Column(Integer, primary_key=True, autoincrement=True)
    instrument_key = Column(String(64), nullable=False)
    user_id = Column(String(64), nullable=False, index=True)
    symbol = Column(String(32), nullable=False, index=True)
    profile = Column(String(16), nullable=False)  # swing, intraday

    # Denormalized for listing without decoding the JSON blobs
    score = Column(Float, nullable=False)
    signal = Column(String(16), nullable=False)
    direction = Column(String(8), nullable=False)

    snapshot = Column(JSON, nullable=False)
    score_result = Column(JSON, nullable=False)
    plan = Column(JSON, nullable=False)
    quote = Column(JSON, nullable=True)

    computed_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)

    __table_args__ = (
        UniqueConstraint("instrument_key", "user_id", name="uq_analyses_instrument_user"),
        Index("ix_analyses_user_computed", "user_id", "computed_at"),
    )

    def __repr__(self):
        return f"<Analysis {self.symbol} {self.profile} user={self.user_id} score={self.score}>"
