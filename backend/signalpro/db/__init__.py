"""
Database module for SignalPro.

Provides SQLite database connection and models.
"""

from signalpro.db.database import (
    AsyncSessionLocal,
    close_db,
    create_engine,
    create_session_factory,
    init_db,
    session_scope,
)
from signalpro.db.models import Analysis, Base

__all__ = [
    "AsyncSessionLocal",
    "close_db",
    "create_engine",
    "create_session_factory",
    "init_db",
    "session_scope",
    "Analysis",
    "Base",
]
