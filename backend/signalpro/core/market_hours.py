"""
Market Hours Utility

Handles IST timezone, NSE holidays, trading-day ranges for candle
requests, and intraday timing advice.
"""

from datetime import datetime, date, time, timedelta
from enum import Enum
from typing import Optional
import pytz

IST = pytz.timezone("Asia/Kolkata")


class TradingWindow(str, Enum):
    OPENING = "OPENING"
    MORNING = "MORNING"
    MIDDAY = "MIDDAY"
    CLOSING = "CLOSING"
    AFTER_MARKET = "AFTER_MARKET"


# (start, end, window) - both ends inclusive, first match wins
TRADING_WINDOWS = [
    (time(9, 15), time(10, 0), TradingWindow.OPENING),
    (time(10, 0), time(11, 30), TradingWindow.MORNING),
    (time(11, 30), time(14, 0), TradingWindow.MIDDAY),
    (time(14, 0), time(15, 15), TradingWindow.CLOSING),
]

TIMING_ADVICE = {
    TradingWindow.OPENING: (
        "OPENING HOUR (High volatility): Enter with caution, wait for initial "
        "volatility to settle (15-20 min)."
    ),
    TradingWindow.MORNING: (
        "MORNING SESSION (Optimal): Best time for trend following trades with good volume."
    ),
    TradingWindow.MIDDAY: (
        "MIDDAY SLOW (Low volume): Avoid new positions, wait for afternoon session."
    ),
    TradingWindow.CLOSING: (
        "CLOSING HOUR (High activity): Good for breakout trades but manage risk carefully."
    ),
    TradingWindow.AFTER_MARKET: (
        "AFTER MARKET: No trading possible. Plan for next session."
    ),
}


# NSE Holidays 2025-2026
NSE_HOLIDAYS = {
    # 2025
    date(2025, 2, 26),   # Maha Shivaratri
    date(2025, 3, 14),   # Holi
    date(2025, 3, 31),   # Id-Ul-Fitr
    date(2025, 4, 10),   # Mahavir Jayanti
    date(2025, 4, 14),   # Dr. Ambedkar Jayanti
    date(2025, 4, 18),   # Good Friday
    date(2025, 5, 1),    # Maharashtra Day
    date(2025, 8, 15),   # Independence Day
    date(2025, 8, 27),   # Janmashtami
    date(2025, 10, 2),   # Gandhi Jayanti
    date(2025, 10, 21),  # Diwali
    date(2025, 10, 22),  # Diwali Balipratipada
    date(2025, 11, 5),   # Guru Nanak Jayanti
    date(2025, 12, 25),  # Christmas
    # 2026
    date(2026, 1, 26),   # Republic Day
    date(2026, 3, 3),    # Holi
    date(2026, 4, 3),    # Good Friday
    date(2026, 5, 1),    # Maharashtra Day
    date(2026, 8, 15),   # Independence Day
    date(2026, 10, 2),   # Gandhi Jayanti
    date(2026, 12, 25),  # Christmas
}


def get_ist_now() -> datetime:
    """Get current time in IST."""
    return datetime.now(IST)


def is_weekend(dt: date) -> bool:
    """Check if date is a weekend."""
    return dt.weekday() >= 5  # Saturday = 5, Sunday = 6


def is_holiday(dt: date) -> bool:
    """Check if date is an NSE holiday."""
    return dt in NSE_HOLIDAYS


def is_trading_day(dt: date) -> bool:
    """Check if date is a trading day."""
    return not is_weekend(dt) and not is_holiday(dt)


def get_previous_trading_day(dt: Optional[date] = None) -> date:
    """Get the previous trading day."""
    if dt is None:
        dt = get_ist_now().date()

    prev_day = dt - timedelta(days=1)
    while not is_trading_day(prev_day):
        prev_day -= timedelta(days=1)

    return prev_day


def get_trading_day_range(days: int, end: Optional[date] = None) -> tuple[date, date]:
    """
    Get the (from, to) date range covering the last `days` trading days.

    `end` is included when it is itself a trading day; otherwise the range
    ends on the previous trading day.
    """
    if end is None:
        end = get_ist_now().date()
    if not is_trading_day(end):
        end = get_previous_trading_day(end)

    start = end
    for _ in range(max(days, 1) - 1):
        start = get_previous_trading_day(start)

    return start, end


def get_trading_window(dt: Optional[datetime] = None) -> TradingWindow:
    """Classify an IST timestamp into an intraday trading window."""
    if dt is None:
        dt = get_ist_now()
    elif dt.tzinfo is not None:
        dt = dt.astimezone(IST)

    if not is_trading_day(dt.date()):
        return TradingWindow.AFTER_MARKET

    current = dt.time().replace(second=0, microsecond=0)
    for start, end, window in TRADING_WINDOWS:
        if start <= current <= end:
            return window
    return TradingWindow.AFTER_MARKET


def get_timing_advice(dt: Optional[datetime] = None) -> str:
    """Human-readable advice for the current trading window."""
    return TIMING_ADVICE[get_trading_window(dt)]
