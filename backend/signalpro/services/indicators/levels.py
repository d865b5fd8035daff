"""
Support/Resistance and Retracement Levels

Local extrema with volume confirmation, ranked by retest strength.
Falls back to flat percentage offsets from the latest close so the level
arrays are never empty.
"""

import logging
import math
import numpy as np
from dataclasses import dataclass

from signalpro.schemas.indicators import LevelSet

logger = logging.getLogger(__name__)


FALLBACK_SUPPORT_FACTORS = (0.98, 0.96, 0.94)
FALLBACK_RESISTANCE_FACTORS = (1.02, 1.04, 1.06)
FIBONACCI_RATIOS = (0.236, 0.382, 0.5, 0.618, 0.786)


@dataclass
class _Candidate:
    price: float
    strength: int


def fallback_support(price: float) -> list[float]:
    return [round(price * factor, 2) for factor in FALLBACK_SUPPORT_FACTORS]


def fallback_resistance(price: float) -> list[float]:
    return [round(price * factor, 2) for factor in FALLBACK_RESISTANCE_FACTORS]


def _rank(candidates: list[_Candidate], price: float, max_levels: int) -> list[float]:
    """Strongest first, then closest to price. Rounded and de-duplicated."""
    ordered = sorted(candidates, key=lambda c: (-c.strength, abs(c.price - price)))
    levels: list[float] = []
    for candidate in ordered:
        level = round(candidate.price, 2)
        if level not in levels:
            levels.append(level)
        if len(levels) == max_levels:
            break
    return levels


def _retests(values: np.ndarray, index: int, tolerance: float) -> int:
    level = values[index]
    if level == 0:
        return 0
    later = values[index + 1 :]
    return int(np.sum(np.abs(later - level) / level <= tolerance))


def find_extrema(
    highs: np.ndarray,
    lows: np.ndarray,
    volumes: np.ndarray,
    window: int = 5,
    volume_threshold: float = 1.2,
    tolerance: float = 0.01,
) -> tuple[list[_Candidate], list[_Candidate]]:
    """
    Volume-confirmed local extrema.

    Returns: (support_candidates, resistance_candidates)
    """
    support: list[_Candidate] = []
    resistance: list[_Candidate] = []

    for i in range(window, len(highs) - window):
        local = slice(i - window, i + window + 1)
        avg_volume = float(np.mean(volumes[local]))
        if volumes[i] <= avg_volume * volume_threshold:
            continue

        if highs[i] == np.max(highs[local]):
            resistance.append(_Candidate(float(highs[i]), _retests(highs, i, tolerance)))

        if lows[i] == np.min(lows[local]):
            support.append(_Candidate(float(lows[i]), _retests(lows, i, tolerance)))

    return support, resistance


def nearest_levels(
    price: float, support: list[float], resistance: list[float]
) -> tuple[float, float]:
    below = [level for level in support if level < price]
    above = [level for level in resistance if level >= price]

    nearest_support = max(below) if below else (support[0] if support else 0.0)
    nearest_resistance = min(above) if above else (resistance[0] if resistance else 0.0)
    return nearest_support, nearest_resistance


def build_level_set(
    price: float,
    support: list[float],
    resistance: list[float],
    support_is_fallback: bool = False,
    resistance_is_fallback: bool = False,
) -> LevelSet:
    nearest_support, nearest_resistance = nearest_levels(price, support, resistance)

    if price > 0:
        support_distance = (price - nearest_support) / price * 100
        resistance_distance = (nearest_resistance - price) / price * 100
    else:
        support_distance = resistance_distance = 0.0

    return LevelSet(
        support=support,
        resistance=resistance,
        nearest_support=nearest_support,
        nearest_resistance=nearest_resistance,
        support_distance_percent=round(support_distance, 2),
        resistance_distance_percent=round(resistance_distance, 2),
        support_is_fallback=support_is_fallback,
        resistance_is_fallback=resistance_is_fallback,
    )


def find_support_resistance(
    highs: np.ndarray,
    lows: np.ndarray,
    closes: np.ndarray,
    volumes: np.ndarray,
    lookback: int = 50,
    window: int = 5,
    max_levels: int = 3,
) -> LevelSet:
    """
    Support strictly below the last close, resistance at or above it.

    Fewer than `lookback` candles, or no confirmed extrema at all, yields
    the flat +/-2/4/6% fallback on both sides. A side left empty after
    filtering gets its own fallback.
    """
    highs = np.asarray(highs, dtype=float)
    lows = np.asarray(lows, dtype=float)
    closes = np.asarray(closes, dtype=float)
    volumes = np.asarray(volumes, dtype=float)

    price = float(closes[-1]) if len(closes) else 0.0

    if len(closes) < lookback:
        return build_level_set(
            price, fallback_support(price), fallback_resistance(price), True, True
        )

    support_candidates, resistance_candidates = find_extrema(
        highs[-lookback:], lows[-lookback:], volumes[-lookback:], window=window
    )

    support = _rank([c for c in support_candidates if c.price < price], price, max_levels)
    resistance = _rank(
        [c for c in resistance_candidates if c.price >= price], price, max_levels
    )
    # Rounding can lift a support candidate onto the close or drop a
    # resistance candidate below it
    support = [level for level in support if level < price]
    resistance = [level for level in resistance if level >= price]

    support_is_fallback = not support
    resistance_is_fallback = not resistance
    if support_is_fallback:
        support = fallback_support(price)
    if resistance_is_fallback:
        resistance = fallback_resistance(price)

    if support_is_fallback and resistance_is_fallback:
        logger.debug(f"No confirmed extrema in last {lookback} candles, using fallback levels")

    return build_level_set(price, support, resistance, support_is_fallback, resistance_is_fallback)


def fibonacci_levels(highs: np.ndarray, lows: np.ndarray, lookback: int = 50) -> list[float]:
    """Retracements `high - range * ratio` over the lookback window (all candles when shorter)."""
    highs = np.asarray(highs, dtype=float)
    lows = np.asarray(lows, dtype=float)
    if len(highs) == 0:
        return []

    high = float(np.max(highs[-lookback:]))
    low = float(np.min(lows[-lookback:]))
    price_range = high - low

    levels = [round(high - price_range * ratio, 2) for ratio in FIBONACCI_RATIOS]
    return [level for level in levels if math.isfinite(level)]
