"""
Market Data Service

CONTRACT:
    Input:  instrument_key + Timeframe + trading days
    Output: CandleSeries, Quote

PROVIDERS:
    - UpstoxMarketData (live, v3 historical candles + v2 quotes)
    - MockMarketData (deterministic, development)
"""

from typing import Optional

from signalpro.core.config import settings
from signalpro.services.market_data.interface import MarketDataProvider
from signalpro.services.market_data.mock_data import MockMarketData
from signalpro.services.market_data.upstox_adapter import UpstoxMarketData

# Singleton instance
_provider_instance: Optional[MarketDataProvider] = None


def get_market_data_provider() -> MarketDataProvider:
    """Live Upstox data when enabled, otherwise the mock provider."""
    global _provider_instance
    if _provider_instance is None:
        if settings.enable_live_data:
            _provider_instance = UpstoxMarketData()
        else:
            _provider_instance = MockMarketData()
    return _provider_instance


__all__ = [
    "MarketDataProvider",
    "MockMarketData",
    "UpstoxMarketData",
    "get_market_data_provider",
]
