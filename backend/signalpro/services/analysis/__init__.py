"""
Analyzer Service

CONTRACT:
    Input:  AnalysisRequest (instrument_key, user_id, force_refresh, profile)
    Output: AnalysisResult

RESPONSIBILITIES:
    - Serve stored analyses while they are fresh
    - Fetch candles and quote, then run indicators, scoring and planning
    - Persist one analysis per instrument and user (last write wins)
"""

from signalpro.services.analysis.freshness import FreshnessGate, should_recompute
from signalpro.services.analysis.interface import AnalyzerServiceInterface
from signalpro.services.analysis.service import AnalyzerService, get_analyzer_service
from signalpro.services.analysis.store import (
    AnalysisStore,
    InMemoryAnalysisStore,
    SQLAnalysisStore,
)

__all__ = [
    "FreshnessGate",
    "should_recompute",
    "AnalyzerServiceInterface",
    "AnalyzerService",
    "get_analyzer_service",
    "AnalysisStore",
    "InMemoryAnalysisStore",
    "SQLAnalysisStore",
]
