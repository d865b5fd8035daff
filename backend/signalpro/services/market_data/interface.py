"""
Market Data Provider Interface

Defines the contract for the candle and quote source.
"""

from abc import ABC, abstractmethod

from signalpro.schemas.market import CandleSeries, Quote, Timeframe


class MarketDataProvider(ABC):
    """
    Market Data Provider Contract.

    get_candles:
        - instrument_key: Exchange-qualified key, e.g. NSE_EQ|INE002A01018
        - timeframe: Candle timeframe
        - days: Trading days of history ending today (or the last trading day)
        Returns a CandleSeries ordered oldest first.

    get_quote:
        Returns the latest Quote for the instrument.

    Failures raise ExternalAPIError (auth, HTTP, timeout),
    RateLimitError (HTTP 429) or ValidationError (no candles).
    """

    @property
    @abstractmethod
    def name(self) -> str:
        pass

    @abstractmethod
    async def get_candles(self, instrument_key: str, timeframe: Timeframe, days: int) -> CandleSeries:
        pass

    @abstractmethod
    async def get_quote(self, instrument_key: str) -> Quote:
        pass

    async def close(self) -> None:
        """Release network resources."""
        return None
