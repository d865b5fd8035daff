"""
Upstox API Data Adapter

Historical candles from the Upstox v3 historical-candle endpoint and
live quotes from the v2 market-quote endpoint.

Upstox API Documentation: https://upstox.com/developer/api-documentation/
"""

import asyncio
import logging
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, Optional, TypeVar
from urllib.parse import quote as url_quote

import aiohttp

from signalpro.core.config import settings
from signalpro.core.market_hours import IST, get_trading_day_range
from signalpro.schemas.market import Candle, CandleSeries, Quote, Timeframe
from signalpro.services.base import ExternalAPIError, RateLimitError, ValidationError
from signalpro.services.cache.redis_client import CandleCache, get_candle_cache
from signalpro.services.market_data.interface import MarketDataProvider

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Upstox v3 interval mapping: (unit, interval)
INTERVAL_MAP = {
    Timeframe.M1: ("minutes", 1),
    Timeframe.M5: ("minutes", 5),
    Timeframe.M15: ("minutes", 15),
    Timeframe.M30: ("minutes", 30),
    Timeframe.H1: ("hours", 1),
    Timeframe.D1: ("days", 1),
    Timeframe.W1: ("weeks", 1),
}


def parse_candle(raw: list) -> Candle:
    """Upstox candle format: [timestamp, open, high, low, close, volume, oi]"""
    ts = datetime.fromisoformat(raw[0].replace("Z", "+00:00"))
    return Candle(
        timestamp=ts.astimezone(IST),
        open=float(raw[1]),
        high=float(raw[2]),
        low=float(raw[3]),
        close=float(raw[4]),
        volume=float(raw[5]),
    )


class UpstoxMarketData(MarketDataProvider):
    """
    Upstox market-data client.

    Identical in-flight requests share one HTTP call, and candle
    responses are cached for the configured TTL.
    """

    def __init__(
        self,
        access_token: Optional[str] = None,
        cache: Optional[CandleCache] = None,
        timeout_seconds: Optional[float] = None,
    ):
        self._access_token = access_token or settings.upstox_access_token
        self._cache = cache
        self._timeout = aiohttp.ClientTimeout(
            total=timeout_seconds if timeout_seconds is not None else settings.market_data_timeout_seconds
        )
        self._session: Optional[aiohttp.ClientSession] = None
        self._pending: Dict[str, asyncio.Task] = {}

    @property
    def name(self) -> str:
        return "UpstoxMarketData"

    @property
    def cache(self) -> CandleCache:
        if self._cache is None:
            self._cache = get_candle_cache()
        return self._cache

    async def _ensure_session(self) -> aiohttp.ClientSession:
        """Ensure we have an active HTTP session."""
        if not self._access_token:
            raise ExternalAPIError(self.name, "Upstox access token not configured")
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                headers={
                    "Authorization": f"Bearer {self._access_token}",
                    "Accept": "application/json",
                },
                timeout=self._timeout,
            )
        return self._session

    async def close(self) -> None:
        if self._session and not self._session.closed:
            await self._session.close()

    async def _dedupe(self, key: str, factory: Callable[[], Awaitable[T]]) -> T:
        """Share one in-flight call between identical concurrent requests."""
        task = self._pending.get(key)
        if task is None:
            logger.debug(f"Upstox request: {key}")
            task = asyncio.ensure_future(factory())
            self._pending[key] = task
            task.add_done_callback(lambda _: self._pending.pop(key, None))
        else:
            logger.debug(f"Deduplicating request: {key}")
        return await asyncio.shield(task)

    async def _get_json(self, url: str, params: Optional[dict] = None) -> Dict[str, Any]:
        session = await self._ensure_session()
        try:
            async with session.get(url, params=params) as resp:
                if resp.status in (401, 403):
                    raise ExternalAPIError(
                        self.name, "Upstox rejected the access token", {"status": resp.status}
                    )
                if resp.status == 429:
                    raise RateLimitError(self.name, "Upstox rate limit exceeded", {"status": 429})
                if resp.status != 200:
                    body = await resp.text()
                    raise ExternalAPIError(
                        self.name,
                        f"Upstox HTTP {resp.status}",
                        {"status": resp.status, "body": body[:500]},
                    )
                result = await resp.json()
        except asyncio.TimeoutError:
            raise ExternalAPIError(self.name, f"Upstox request timed out: {url}")
        except aiohttp.ClientError as e:
            raise ExternalAPIError(self.name, f"Upstox request failed: {e}")
        except ValueError as e:
            raise ExternalAPIError(self.name, f"Upstox returned malformed JSON: {e}")

        if not isinstance(result, dict) or result.get("status") != "success":
            raise ExternalAPIError(self.name, "Upstox returned an error status", {"response": result})
        return result

    async def get_candles(self, instrument_key: str, timeframe: Timeframe, days: int) -> CandleSeries:
        """Fetch historical OHLCV data from Upstox."""
        unit, interval = INTERVAL_MAP.get(timeframe, ("days", 1))
        from_date, to_date = get_trading_day_range(days)
        from_str, to_str = from_date.isoformat(), to_date.isoformat()

        cache_key = CandleCache.key(instrument_key, timeframe.value, from_str, to_str)
        cached = await self.cache.get(cache_key)
        if cached is not None:
            logger.info(f"Candle cache hit for {instrument_key} ({timeframe.value})")
            return cached

        url = (
            f"{settings.upstox_base_url}/historical-candle/"
            f"{url_quote(instrument_key, safe='')}/{unit}/{interval}/{to_str}/{from_str}"
        )
        result = await self._dedupe(url, lambda: self._get_json(url))

        raw_candles = result.get("data", {}).get("candles", [])
        if not raw_candles:
            raise ValidationError(
                self.name,
                f"No candles returned for {instrument_key}",
                {"instrument_key": instrument_key, "from": from_str, "to": to_str},
            )

        try:
            # Upstox returns newest first
            candles = sorted((parse_candle(raw) for raw in raw_candles), key=lambda c: c.timestamp)
            series = CandleSeries(instrument_key=instrument_key, timeframe=timeframe, candles=candles)
        except (ValueError, TypeError, IndexError, AttributeError) as e:
            raise ExternalAPIError(
                self.name,
                f"Malformed candle data for {instrument_key}: {e}",
                {"instrument_key": instrument_key, "candles": len(raw_candles)},
            )

        await self.cache.set(cache_key, series)
        logger.info(f"Fetched {len(series)} {timeframe.value} candles for {instrument_key}")
        return series

    async def get_quote(self, instrument_key: str) -> Quote:
        """Get live quote for an instrument."""
        url = f"{settings.upstox_quote_url}/market-quote/quotes"
        result = await self._dedupe(
            f"{url}?{instrument_key}",
            lambda: self._get_json(url, params={"instrument_key": instrument_key}),
        )

        data = result.get("data") or {}
        # Response keys use "EXCHANGE:SYMBOL" rather than the request key
        quote_data = data.get(instrument_key) or next(iter(data.values()), None)
        if not quote_data:
            raise ExternalAPIError(self.name, f"No quote returned for {instrument_key}")

        try:
            last_price = float(quote_data.get("last_price", 0))
            change = float(quote_data.get("net_change", 0))
            timestamp = None
            raw_ts = quote_data.get("timestamp")
            if raw_ts:
                timestamp = datetime.fromisoformat(str(raw_ts).replace("Z", "+00:00"))
        except (ValueError, TypeError, AttributeError) as e:
            raise ExternalAPIError(self.name, f"Malformed quote for {instrument_key}: {e}")

        prev_close = last_price - change
        change_percent = (change / prev_close * 100) if prev_close > 0 else 0.0

        return Quote(
            instrument_key=instrument_key,
            last_price=last_price,
            change=round(change, 2),
            change_percent=round(change_percent, 2),
            timestamp=timestamp,
        )
