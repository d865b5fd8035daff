"""
Cache module for SignalPro.

Provides Redis caching for fetched candle series.
"""

from signalpro.services.cache.redis_client import (
    CandleCache,
    get_candle_cache,
    init_redis,
    close_redis,
)

__all__ = [
    "CandleCache",
    "get_candle_cache",
    "init_redis",
    "close_redis",
]
