"""
Redis cache client for candle series.

Repeated analyses of the same instrument inside the TTL reuse the
fetched candles instead of calling the market-data provider again.
"""

import logging
import time
from typing import Optional, Dict, Tuple

import redis.asyncio as redis
from redis.exceptions import RedisError

from signalpro.core.config import settings
from signalpro.schemas.market import CandleSeries

logger = logging.getLogger(__name__)

# Global Redis connection pool
_redis_pool: Optional[redis.Redis] = None


async def init_redis() -> Optional[redis.Redis]:
    """
    Initialize Redis connection pool.
    Called on application startup.
    """
    global _redis_pool

    if _redis_pool is not None:
        return _redis_pool

    client = redis.from_url(
        settings.redis_url,
        encoding="utf-8",
        decode_responses=True,
    )
    try:
        await client.ping()
    except (RedisError, OSError) as e:
        logger.warning(f"Redis connection failed: {e}. Using in-memory fallback.")
        await client.aclose()
        return None

    _redis_pool = client
    logger.info(f"Redis connected: {settings.redis_url}")
    return _redis_pool


async def close_redis() -> None:
    """Close Redis connection pool."""
    global _redis_pool
    if _redis_pool:
        await _redis_pool.aclose()
        _redis_pool = None
        logger.info("Redis connection closed")


def get_redis() -> Optional[redis.Redis]:
    """Get the Redis connection pool."""
    return _redis_pool


class CandleCache:
    """
    Redis-based cache for candle series, with an in-memory fallback.

    Keys:
    - candles:{instrument_key}:{timeframe}:{from_date}:{to_date} → CandleSeries JSON
    """

    def __init__(self, redis_client: Optional[redis.Redis] = None, ttl_seconds: Optional[int] = None):
        self._redis = redis_client
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else settings.candle_cache_ttl_seconds
        # key -> (expires_at monotonic, payload)
        self._memory_cache: Dict[str, Tuple[float, str]] = {}

    @property
    def redis(self) -> Optional[redis.Redis]:
        return self._redis or _redis_pool

    @staticmethod
    def key(instrument_key: str, timeframe: str, from_date: str, to_date: str) -> str:
        return f"candles:{instrument_key}:{timeframe}:{from_date}:{to_date}"

    def _memory_get(self, key: str) -> Optional[str]:
        entry = self._memory_cache.get(key)
        if entry is None:
            return None
        expires_at, value = entry
        if time.monotonic() >= expires_at:
            del self._memory_cache[key]
            return None
        return value

    def _memory_set(self, key: str, value: str) -> None:
        now = time.monotonic()
        # Keys embed their date range, so stale ones are never read again
        expired = [k for k, (expires_at, _) in self._memory_cache.items() if now >= expires_at]
        for k in expired:
            del self._memory_cache[k]
        self._memory_cache[key] = (now + self.ttl_seconds, value)

    async def get(self, key: str) -> Optional[CandleSeries]:
        value: Optional[str] = None

        if self.redis:
            try:
                value = await self.redis.get(key)
            except (RedisError, OSError) as e:
                logger.debug(f"Redis get failed for {key}: {e}")
                value = self._memory_get(key)
        else:
            value = self._memory_get(key)

        if not value:
            return None
        return CandleSeries.model_validate_json(value)

    async def set(self, key: str, series: CandleSeries) -> None:
        value = series.model_dump_json()

        if self.redis:
            try:
                await self.redis.set(key, value, ex=self.ttl_seconds)
                return
            except (RedisError, OSError) as e:
                logger.debug(f"Redis set failed for {key}: {e}")

        self._memory_set(key, value)

    def clear_memory(self) -> None:
        self._memory_cache.clear()


# Singleton instance
_candle_cache: Optional[CandleCache] = None


def get_candle_cache() -> CandleCache:
    """Get the candle cache singleton."""
    global _candle_cache
    if _candle_cache is None:
        _candle_cache = CandleCache()
    return _candle_cache
