"""
Indicator Engine Service

CONTRACT:
    Input:  CandleSeries (+ AnalysisProfile)
    Output: IndicatorSnapshot

RESPONSIBILITIES:
    - Moving averages, RSI, MACD, Stochastic
    - Volatility (ATR, Bollinger Bands, volatility percentile)
    - Volume metrics, accumulation/distribution, VWAP, volume spikes
    - Support/resistance with volume confirmation, Fibonacci levels
    - Swing setup patterns and intraday breakout flags

PURE PYTHON - No LLM involvement.
Uses NumPy for calculations.
Every calculator degrades to a documented neutral value on short input.
"""

from signalpro.services.indicators.interface import IndicatorServiceInterface
from signalpro.services.indicators.service import (
    IndicatorService,
    get_indicator_service,
    trend_alignment,
)

__all__ = [
    "IndicatorServiceInterface",
    "IndicatorService",
    "get_indicator_service",
    "trend_alignment",
]
