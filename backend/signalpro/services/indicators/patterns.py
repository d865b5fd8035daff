"""
Setup Pattern Detection

Swing setup checks over daily candles and intraday breakout flags over
minute candles.
"""

import numpy as np
from dataclasses import dataclass
from typing import Optional

from signalpro.schemas.indicators import BreakoutPattern, PatternConfidence
from signalpro.services.indicators.calculations import atr, macd


@dataclass
class PatternMatch:
    pattern: BreakoutPattern
    confidence: PatternConfidence


NO_PATTERN = PatternMatch(BreakoutPattern.NONE, PatternConfidence.LOW)


# =============================================================================
# SWING CHART PATTERNS
# =============================================================================


def _is_flag(closes: np.ndarray, volumes: np.ndarray, pole_length: int = 15) -> bool:
    """Strong move (>8%) followed by tight consolidation (<4%) on fading volume."""
    pole = closes[:pole_length]
    consolidation = closes[pole_length:]
    if len(consolidation) < 5 or pole[0] == 0:
        return False

    trend_move = (pole[-1] - pole[0]) / pole[0]
    consolidation_percent = (np.max(consolidation) - np.min(consolidation)) / closes[-1]
    if abs(trend_move) <= 0.08 or consolidation_percent >= 0.04:
        return False

    pole_volume = np.mean(volumes[pole_length - 5 : pole_length])
    consolidation_volume = np.mean(volumes[-5:])
    return bool(consolidation_volume < pole_volume * 0.8)


def _is_triangle(closes: np.ndarray, highs: np.ndarray, lows: np.ndarray) -> bool:
    """Range contracting over 20 candles with at least two touches on each side."""
    closes, highs, lows = closes[-20:], highs[-20:], lows[-20:]
    first_range = np.ptp(closes[:10])
    second_range = np.ptp(closes[10:])
    if first_range <= second_range * 1.3:
        return False

    upper_touches = int(np.sum(highs > np.max(highs) * 0.99))
    lower_touches = int(np.sum(lows < np.min(lows) * 1.01))
    return upper_touches >= 2 and lower_touches >= 2


def _is_cup_and_handle(closes: np.ndarray, volumes: np.ndarray) -> bool:
    """U-shaped 25-candle recovery, similar rims, shallow handle, drying volume."""
    cup, cup_volumes = closes[-25:], volumes[-25:]
    left_high = np.max(cup[:8])
    cup_low = np.min(cup[8:17])
    right_high = np.max(cup[17:22])
    handle_high = np.max(cup[22:])
    if left_high == 0:
        return False

    depth = (left_high - cup_low) / left_high
    rims_similar = abs(left_high - right_high) / left_high < 0.05
    handle_lower = handle_high < right_high * 0.95
    if not (0.12 < depth < 0.35 and rims_similar and handle_lower):
        return False

    left_volume = np.mean(cup_volumes[5:8])
    bottom_volume = np.mean(cup_volumes[14:17])
    return bool(bottom_volume < left_volume * 0.7)


def _is_wedge(closes: np.ndarray, highs: np.ndarray, lows: np.ndarray) -> bool:
    """Diverging high/low trend slopes with a directional drift over 15 candles."""
    closes, highs, lows = closes[-15:], highs[-15:], lows[-15:]
    first_high, last_high = np.max(highs[:5]), np.max(highs[-5:])
    first_low, last_low = np.min(lows[:5]), np.min(lows[-5:])

    direction = (closes[-1] - closes[0]) / closes[0]
    high_trend = (last_high - first_high) / first_high
    low_trend = (last_low - first_low) / first_low
    return bool(abs(high_trend - low_trend) > 0.03 and abs(direction) > 0.02)


def detect_breakout_pattern(
    closes: np.ndarray, highs: np.ndarray, lows: np.ndarray, volumes: np.ndarray
) -> PatternMatch:
    """
    Classify the last 30 candles as flag, triangle, cup and handle or wedge.

    Checked in that order; the first match wins.
    """
    if len(closes) < 30:
        return NO_PATTERN

    closes, highs = closes[-30:], highs[-30:]
    lows, volumes = lows[-30:], volumes[-30:]

    if _is_flag(closes, volumes):
        return PatternMatch(BreakoutPattern.FLAG, PatternConfidence.HIGH)
    if _is_triangle(closes, highs, lows):
        return PatternMatch(BreakoutPattern.TRIANGLE, PatternConfidence.MEDIUM)
    if _is_cup_and_handle(closes, volumes):
        return PatternMatch(BreakoutPattern.CUP_AND_HANDLE, PatternConfidence.MEDIUM)
    if _is_wedge(closes, highs, lows):
        return PatternMatch(BreakoutPattern.WEDGE, PatternConfidence.LOW)
    return NO_PATTERN


# =============================================================================
# SWING SETUP CHECKS
# =============================================================================


def check_atr_validation(
    highs: np.ndarray, lows: np.ndarray, closes: np.ndarray, price: float
) -> tuple[bool, float]:
    """Enough daily range to be worth swinging: ATR(14) above 2% of price."""
    if price <= 0:
        return False, 0.0
    atr_percent = atr(highs, lows, closes, period=14).atr / price * 100
    return atr_percent > 2.0, round(atr_percent, 2)


def check_price_range(price: float, low: float = 100.0, high: float = 2000.0) -> tuple[bool, str]:
    if price < low:
        return False, f"below {low:g}"
    if price > high:
        return False, f"above {high:g}"
    return True, f"{low:g}-{high:g}"


def detect_pullback_to_support(
    highs: np.ndarray, support_levels: list[float], price: float
) -> tuple[bool, Optional[float], float]:
    """
    Price within 5% above the nearest support, after a recent high at least
    2% above the current price.

    Returns: (is_pullback, support_level, distance_percent)
    """
    below = [level for level in support_levels if level < price]
    if not below or price <= 0:
        return False, None, 0.0

    nearest = max(below)
    distance = round((price - nearest) / price * 100, 2)
    if distance > 5 or len(highs) < 5:
        return False, nearest, distance

    recent_high = float(np.max(highs[-5:]))
    return recent_high > price * 1.02, nearest, distance


def detect_volume_breakout(volumes: np.ndarray) -> tuple[bool, float]:
    """
    Higher of the last two volumes above 1.5x the prior 20-candle average,
    or three of the last five candles above that average.

    Returns: (detected, volume_multiple)
    """
    if len(volumes) < 21:
        return False, 0.0

    average = float(np.mean(volumes[-21:-1]))
    if average == 0:
        return False, 0.0

    multiple = max(volumes[-1], volumes[-2]) / average
    above_average = int(np.sum(volumes[-5:] > average))
    return bool(multiple > 1.5 or above_average >= 3), round(float(multiple), 2)


def check_rsi_bounce_zone(rsi_value: float) -> tuple[bool, str]:
    in_zone = 35 <= rsi_value <= 55

    if rsi_value < 25:
        zone = "deeply oversold"
    elif rsi_value < 35:
        zone = "oversold"
    elif rsi_value <= 45:
        zone = "ideal bounce zone"
    elif rsi_value <= 55:
        zone = "good bounce zone"
    elif rsi_value < 70:
        zone = "bullish momentum"
    elif rsi_value < 80:
        zone = "overbought"
    else:
        zone = "extremely overbought"

    return in_zone, zone


def detect_macd_crossover(closes: np.ndarray) -> tuple[bool, str]:
    """Compare MACD vs signal on the last candle and the one before it."""
    if len(closes) < 35:
        return False, "insufficient data"

    line, signal, _ = macd(closes)
    prev_line, prev_signal, _ = macd(closes[:-1])

    bullish_cross = line > signal and prev_line <= prev_signal
    bearish_cross = line < signal and prev_line >= prev_signal

    if bullish_cross:
        status = "bullish crossover"
    elif bearish_cross:
        status = "bearish crossover"
    elif line > signal:
        status = "bullish (no crossover)"
    elif line < signal:
        status = "bearish (no crossover)"
    else:
        status = "neutral"

    return bullish_cross, status


def detect_rising_volume(volumes: np.ndarray) -> tuple[bool, str]:
    if len(volumes) < 10:
        return False, "insufficient data"

    last10 = volumes[-10:]
    recent_avg = float(np.mean(last10[-5:]))
    previous_avg = float(np.mean(last10[:5]))
    avg_increasing = recent_avg > previous_avg * 1.1

    consecutive = int(np.sum(np.diff(last10[-5:]) > 0))
    consecutive_rising = consecutive >= 3

    baseline = float(np.mean(volumes[-20:])) if len(volumes) >= 20 else float(np.mean(last10))
    above_average = last10[-1] > baseline * 1.2

    if avg_increasing and consecutive_rising:
        trend = "strongly rising"
    elif avg_increasing or consecutive_rising:
        trend = "rising"
    elif above_average:
        trend = "elevated"
    elif recent_avg < previous_avg * 0.9:
        trend = "declining"
    else:
        trend = "stable"

    return bool(avg_increasing or consecutive_rising or above_average), trend


# =============================================================================
# INTRADAY BREAKOUTS
# =============================================================================


@dataclass
class BreakoutFlags:
    day_high: bool = False
    prev_day_range: bool = False
    opening_range: bool = False


def check_breakouts(highs: np.ndarray, lows: np.ndarray, closes: np.ndarray) -> BreakoutFlags:
    """
    Breakouts on minute candles. The last 30 candles stand in for today,
    the 30 before them for the previous session, and candles -45..-30 for
    the opening range.
    """
    if len(closes) < 50:
        return BreakoutFlags()

    price = closes[-1]

    day_high = np.max(highs[-30:])
    prev_high, prev_low = np.max(highs[-60:-30]), np.min(lows[-60:-30])
    or_high, or_low = np.max(highs[-45:-30]), np.min(lows[-45:-30])

    return BreakoutFlags(
        day_high=bool(price > day_high * 0.999),
        prev_day_range=bool(price > prev_high or price < prev_low),
        opening_range=bool(price > or_high or price < or_low),
    )
