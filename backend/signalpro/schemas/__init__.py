"""
SignalPro Schema Contracts

This module defines all JSON contracts between system components.
These are the authoritative interfaces - all modules must conform to these schemas.
"""

from signalpro.schemas.market import (
    Timeframe,
    Candle,
    CandleSeries,
    Quote,
)
from signalpro.schemas.indicators import (
    AnalysisProfile,
    IndicatorSnapshot,
    IntradayIndicators,
    SwingPatterns,
    LevelSet,
)
from signalpro.schemas.scoring import (
    ScoreResult,
    SetupQuality,
    TrendDirection,
)
from signalpro.schemas.plan import (
    AdvisorySignal,
    PositionSizing,
    TradingPlan,
    TradeDirection,
    SignalTier,
    PlanSource,
)
from signalpro.schemas.analysis import (
    AnalysisRequest,
    AnalysisResult,
    AnalysisSummary,
    CachedAnalysis,
)

__all__ = [
    # Market
    "Timeframe",
    "Candle",
    "CandleSeries",
    "Quote",
    # Indicators
    "AnalysisProfile",
    "IndicatorSnapshot",
    "IntradayIndicators",
    "SwingPatterns",
    "LevelSet",
    # Scoring
    "ScoreResult",
    "SetupQuality",
    "TrendDirection",
    # Plan
    "AdvisorySignal",
    "PositionSizing",
    "TradingPlan",
    "TradeDirection",
    "SignalTier",
    "PlanSource",
    # Analysis
    "AnalysisRequest",
    "AnalysisResult",
    "AnalysisSummary",
    "CachedAnalysis",
]
