"""
Composite Scoring Service

CONTRACT:
    Input:  IndicatorSnapshot
    Output: ScoreResult

RESPONSIBILITIES:
    - Classify trend, volume, volatility and oscillator readings
    - Score swing setups (base 5 + weighted criteria)
    - Score intraday setups (alignment, RSI, spike, breakouts, clean setup)

Pure functions - the same snapshot always yields the same score.
"""

from signalpro.services.scoring.scorers import (
    CompositeScorer,
    SwingScorer,
    IntradayScorer,
    get_scorer,
)

__all__ = [
    "CompositeScorer",
    "SwingScorer",
    "IntradayScorer",
    "get_scorer",
]
