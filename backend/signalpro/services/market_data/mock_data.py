"""
Mock Data Generator

Generates deterministic mock candles and quotes for development and
testing. The same instrument always produces the same series.
"""

import random
import zlib
from datetime import date, datetime, time, timedelta

from signalpro.core.market_hours import IST, get_trading_day_range, is_trading_day
from signalpro.schemas.market import Candle, CandleSeries, Quote, Timeframe, symbol_from_key
from signalpro.services.market_data.interface import MarketDataProvider


# Base prices for common symbols
SYMBOL_BASE_PRICES = {
    "RELIANCE": 2450.0,
    "TCS": 3800.0,
    "INFY": 1500.0,
    "HDFCBANK": 1650.0,
    "ICICIBANK": 1050.0,
    "SBIN": 750.0,
    "ITC": 440.0,
    "TATAMOTORS": 950.0,
    "WIPRO": 480.0,
    "BHARTIARTL": 1150.0,
}

# Minutes per candle for intraday timeframes
TIMEFRAME_MINUTES = {
    Timeframe.M1: 1,
    Timeframe.M5: 5,
    Timeframe.M15: 15,
    Timeframe.M30: 30,
    Timeframe.H1: 60,
}

SESSION_OPEN = time(9, 15)
SESSION_MINUTES = 375  # 09:15 - 15:30


def _seed(instrument_key: str) -> int:
    return zlib.crc32(instrument_key.encode("utf-8"))


def get_base_price(instrument_key: str) -> float:
    """Get base price for an instrument."""
    symbol = symbol_from_key(instrument_key).upper()
    if symbol in SYMBOL_BASE_PRICES:
        return SYMBOL_BASE_PRICES[symbol]
    return 100.0 + _seed(instrument_key) % 2000


def _timestamps(timeframe: Timeframe, start: date, end: date) -> list[datetime]:
    days = []
    current = start
    while current <= end:
        if is_trading_day(current):
            days.append(current)
        current += timedelta(days=1)

    if timeframe not in TIMEFRAME_MINUTES:
        step = 5 if timeframe == Timeframe.W1 else 1
        return [IST.localize(datetime.combine(d, SESSION_OPEN)) for d in days[::step]]

    minutes = TIMEFRAME_MINUTES[timeframe]
    stamps = []
    for d in days:
        session_start = IST.localize(datetime.combine(d, SESSION_OPEN))
        stamps.extend(
            session_start + timedelta(minutes=offset)
            for offset in range(0, SESSION_MINUTES, minutes)
        )
    return stamps


def generate_mock_candles(instrument_key: str, timeframe: Timeframe, days: int) -> list[Candle]:
    """Seeded random walk over the trading sessions in range."""
    rng = random.Random(_seed(instrument_key))
    start, end = get_trading_day_range(days)

    price = get_base_price(instrument_key)
    volatility = 0.02 if timeframe not in TIMEFRAME_MINUTES else 0.002

    candles = []
    for timestamp in _timestamps(timeframe, start, end):
        change = (rng.random() - 0.48) * volatility * price

        open_price = price
        close_price = max(open_price + change, 1.0)
        high_price = max(open_price, close_price) + rng.random() * volatility * price * 0.5
        low_price = max(min(open_price, close_price) - rng.random() * volatility * price * 0.5, 0.5)

        candles.append(
            Candle(
                timestamp=timestamp,
                open=round(open_price, 2),
                high=round(high_price, 2),
                low=round(low_price, 2),
                close=round(close_price, 2),
                volume=float(rng.randint(100_000, 5_000_000)),
            )
        )
        price = close_price

    return candles


class MockMarketData(MarketDataProvider):
    """Deterministic generated data. Used when live data is disabled."""

    @property
    def name(self) -> str:
        return "MockMarketData"

    async def get_candles(self, instrument_key: str, timeframe: Timeframe, days: int) -> CandleSeries:
        return CandleSeries(
            instrument_key=instrument_key,
            timeframe=timeframe,
            candles=generate_mock_candles(instrument_key, timeframe, days),
        )

    async def get_quote(self, instrument_key: str) -> Quote:
        candles = generate_mock_candles(instrument_key, Timeframe.D1, 2)
        last = candles[-1].close if candles else get_base_price(instrument_key)
        prev = candles[-2].close if len(candles) > 1 else last
        change = last - prev

        return Quote(
            instrument_key=instrument_key,
            last_price=last,
            change=round(change, 2),
            change_percent=round(change / prev * 100, 2) if prev else 0.0,
            timestamp=candles[-1].timestamp if candles else None,
        )
