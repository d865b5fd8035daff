"""
Technical Indicator Calculations

Pure Python/NumPy implementations of technical indicators.
NO LLM INVOLVEMENT - All math is deterministic.

Every calculator returns the value at the LAST element of its input and
degrades to a documented neutral value on short input instead of raising.
"""

import math
import numpy as np
from dataclasses import dataclass

from signalpro.schemas.indicators import BollingerPosition, VolumeTrend


TRADING_DAYS_PER_YEAR = 252


def _as_array(data) -> np.ndarray:
    return np.asarray(data, dtype=float)


# =============================================================================
# MOVING AVERAGES
# =============================================================================


def sma(data: np.ndarray, period: int) -> float:
    """Simple Moving Average over the last `period` values (all values when shorter)."""
    data = _as_array(data)
    if len(data) == 0:
        return 0.0
    if len(data) < period:
        return float(np.mean(data))
    return float(np.mean(data[-period:]))


def ema(data: np.ndarray, period: int) -> float:
    """Exponential Moving Average, seeded with the SMA of the first `period` values."""
    data = _as_array(data)
    if len(data) == 0:
        return 0.0
    if len(data) == 1:
        return float(data[0])
    if len(data) < period:
        return sma(data, period)

    multiplier = 2 / (period + 1)
    value = float(np.mean(data[:period]))
    for price in data[period:]:
        value = (price - value) * multiplier + value
    return float(value)


def ema_series(data: np.ndarray, period: int) -> np.ndarray:
    """EMA at every index. NaN before the seed."""
    data = _as_array(data)
    result = np.full(len(data), np.nan)
    if len(data) < period or period < 1:
        return result

    multiplier = 2 / (period + 1)

    # Start with SMA
    result[period - 1] = np.mean(data[:period])

    for i in range(period, len(data)):
        result[i] = (data[i] - result[i - 1]) * multiplier + result[i - 1]

    return result


# =============================================================================
# MOMENTUM INDICATORS
# =============================================================================


def rsi(closes: np.ndarray, period: int = 14) -> float:
    """Relative Strength Index with Wilder smoothing."""
    closes = _as_array(closes)
    if len(closes) < period + 1:
        return 50.0

    deltas = np.diff(closes)
    gains = np.where(deltas > 0, deltas, 0.0)
    losses = np.where(deltas < 0, -deltas, 0.0)

    avg_gain = float(np.mean(gains[:period]))
    avg_loss = float(np.mean(losses[:period]))

    for i in range(period, len(deltas)):
        avg_gain = (avg_gain * (period - 1) + gains[i]) / period
        avg_loss = (avg_loss * (period - 1) + losses[i]) / period

    if avg_loss == 0:
        return 100.0

    rs = avg_gain / avg_loss
    value = 100 - (100 / (1 + rs))
    return float(min(max(value, 0.0), 100.0))


def macd(
    closes: np.ndarray,
    fast_period: int = 12,
    slow_period: int = 26,
    signal_period: int = 9,
) -> tuple[float, float, float]:
    """
    MACD (Moving Average Convergence Divergence).

    The MACD value at index i is fast EMA minus slow EMA over closes[: i + 1],
    collected from the index where the slower EMA first exists. The signal
    line is the EMA of those values.

    Returns: (macd_line, signal_line, histogram), rounded to 4 decimals.
    """
    closes = _as_array(closes)
    longest = max(fast_period, slow_period)
    if len(closes) < longest + signal_period:
        return 0.0, 0.0, 0.0

    # An SMA-seeded EMA series at index i equals the EMA of the prefix ending at i
    fast = ema_series(closes, fast_period)
    slow = ema_series(closes, slow_period)
    macd_values = (fast - slow)[longest - 1 :]

    macd_line = float(macd_values[-1])
    signal_line = ema(macd_values, signal_period)
    histogram = macd_line - signal_line

    return round(macd_line, 4), round(signal_line, 4), round(histogram, 4)


def stochastic(
    highs: np.ndarray,
    lows: np.ndarray,
    closes: np.ndarray,
    k_period: int = 14,
    smooth_k: int = 3,
    smooth_d: int = 3,
) -> float:
    """
    Slow Stochastic Oscillator.

    Raw %K per window, smoothed over `smooth_k`, then averaged over the last
    `smooth_d` smoothed values.
    """
    highs, lows, closes = _as_array(highs), _as_array(lows), _as_array(closes)
    if len(closes) < k_period + smooth_k:
        return 50.0

    raw_k = []
    for i in range(k_period - 1, len(closes)):
        highest_high = np.max(highs[i - k_period + 1 : i + 1])
        lowest_low = np.min(lows[i - k_period + 1 : i + 1])

        if highest_high == lowest_low:
            raw_k.append(50.0)
        else:
            raw_k.append(((closes[i] - lowest_low) / (highest_high - lowest_low)) * 100)

    smoothed = [
        float(np.mean(raw_k[i - smooth_k + 1 : i + 1]))
        for i in range(smooth_k - 1, len(raw_k))
    ]
    if len(smoothed) < smooth_d:
        return 50.0

    value = float(np.mean(smoothed[-smooth_d:]))
    return round(min(max(value, 0.0), 100.0), 2)


# =============================================================================
# VOLATILITY INDICATORS
# =============================================================================


@dataclass
class ATRResult:
    atr: float
    scaled_stop_loss: float
    scaled_take_profit: float


def true_range(highs: np.ndarray, lows: np.ndarray, closes: np.ndarray) -> np.ndarray:
    """True Range from the second candle onward."""
    highs, lows, closes = _as_array(highs), _as_array(lows), _as_array(closes)
    if len(closes) < 2:
        return np.array([])

    prev_close = closes[:-1]
    return np.maximum.reduce(
        [
            highs[1:] - lows[1:],
            np.abs(highs[1:] - prev_close),
            np.abs(lows[1:] - prev_close),
        ]
    )


def atr(
    highs: np.ndarray,
    lows: np.ndarray,
    closes: np.ndarray,
    period: int = 14,
    stop_loss_multiplier: float = 2.0,
    take_profit_multiplier: float = 1.5,
) -> ATRResult:
    """
    Average True Range with Wilder smoothing.

    Seeded with the mean of the first `period` true ranges (or of all of
    them when fewer exist), then smoothed over the remainder.
    """
    tr = true_range(highs, lows, closes)
    if len(tr) == 0:
        return ATRResult(atr=0.0, scaled_stop_loss=0.0, scaled_take_profit=0.0)

    seed = min(period, len(tr))
    value = float(np.mean(tr[:seed]))
    for tr_value in tr[seed:]:
        value = (value * (period - 1) + tr_value) / period

    return ATRResult(
        atr=value,
        scaled_stop_loss=value * stop_loss_multiplier,
        scaled_take_profit=value * take_profit_multiplier,
    )


def bollinger_bands(
    closes: np.ndarray, period: int = 20, std_dev: float = 2.0
) -> tuple[float, float, float]:
    """
    Bollinger Bands using the population standard deviation.

    Returns: (upper, middle, lower)
    """
    closes = _as_array(closes)
    if len(closes) < period:
        last = float(closes[-1]) if len(closes) else 0.0
        return last, last, last

    window = closes[-period:]
    middle = float(np.mean(window))
    std = float(np.std(window))

    return middle + std_dev * std, middle, middle - std_dev * std


def bollinger_position(price: float, upper: float, middle: float, lower: float) -> BollingerPosition:
    if price > upper:
        return BollingerPosition.ABOVE_UPPER
    if price < lower:
        return BollingerPosition.BELOW_LOWER
    if price > middle:
        return BollingerPosition.UPPER_HALF
    if price < middle:
        return BollingerPosition.LOWER_HALF
    return BollingerPosition.MIDDLE


def _returns(closes: np.ndarray) -> np.ndarray:
    closes = _as_array(closes)
    return np.diff(closes) / closes[:-1]


def volatility_percentile(
    closes: np.ndarray, low_band: float = 20.0, high_band: float = 80.0
) -> float:
    """
    Annualized volatility of close-to-close % returns, mapped linearly
    from [low_band, high_band] onto 0-100 and clamped.
    """
    closes = _as_array(closes)
    if len(closes) < 2:
        return 0.0

    returns_percent = _returns(closes) * 100
    annualized = float(np.std(returns_percent)) * math.sqrt(TRADING_DAYS_PER_YEAR)

    percentile = (annualized - low_band) / (high_band - low_band) * 100
    return round(min(max(percentile, 0.0), 100.0), 2)


def annualized_volatility(closes: np.ndarray) -> float:
    """sqrt(sum(r^2) / (n - 1)) * sqrt(252) * 100, used by the regime check."""
    closes = _as_array(closes)
    if len(closes) < 3:
        return 0.0

    returns = _returns(closes)
    return float(
        math.sqrt(np.sum(returns**2) / (len(returns) - 1))
        * math.sqrt(TRADING_DAYS_PER_YEAR)
        * 100
    )


# =============================================================================
# VOLUME INDICATORS
# =============================================================================


@dataclass
class VolumeStats:
    average_20: float
    current: float
    ratio: float
    trend: VolumeTrend
    breakout: bool


def volume_metrics(volumes: np.ndarray, period: int = 20) -> VolumeStats:
    """
    20-period volume statistics.

    ratio is the current volume as a multiple of the average; breakout when
    current volume exceeds 150% of the average.
    """
    volumes = _as_array(volumes)
    current = float(volumes[-1]) if len(volumes) else 0.0

    if len(volumes) < period:
        return VolumeStats(
            average_20=0.0,
            current=current,
            ratio=0.0,
            trend=VolumeTrend.INSUFFICIENT_DATA,
            breakout=False,
        )

    recent = volumes[-period:]
    average = float(np.mean(recent))
    ratio = current / average if average > 0 else 0.0

    half = period // 2
    first_avg = float(np.mean(recent[:half]))
    last_avg = float(np.mean(recent[half:]))

    if first_avg == 0:
        trend = VolumeTrend.INCREASING if last_avg > 0 else VolumeTrend.STABLE
    else:
        diff = (last_avg - first_avg) / first_avg
        if diff > 0.1:
            trend = VolumeTrend.INCREASING
        elif diff < -0.1:
            trend = VolumeTrend.DECREASING
        else:
            trend = VolumeTrend.STABLE

    return VolumeStats(
        average_20=average,
        current=current,
        ratio=ratio,
        trend=trend,
        breakout=ratio > 1.5,
    )


def accumulation_distribution(
    highs: np.ndarray, lows: np.ndarray, closes: np.ndarray, volumes: np.ndarray
) -> float:
    """Accumulation/Distribution line value. Candles with high == low are skipped."""
    highs, lows = _as_array(highs), _as_array(lows)
    closes, volumes = _as_array(closes), _as_array(volumes)

    spread = highs - lows
    valid = spread != 0
    if not np.any(valid):
        return 0.0

    multiplier = ((closes - lows) - (highs - closes))[valid] / spread[valid]
    return float(np.sum(multiplier * volumes[valid]))


def vwap(
    highs: np.ndarray, lows: np.ndarray, closes: np.ndarray, volumes: np.ndarray
) -> float:
    """Volume Weighted Average Price over the whole series."""
    volumes = _as_array(volumes)
    total_volume = float(np.sum(volumes))
    if total_volume == 0:
        return 0.0

    typical_price = (_as_array(highs) + _as_array(lows) + _as_array(closes)) / 3
    return float(np.sum(typical_price * volumes) / total_volume)


def volume_spike(
    volumes: np.ndarray,
    multiplier: float = 2.0,
    baseline_lookback: int = 100,
    min_length: int = 20,
) -> bool:
    """Current volume exceeds `multiplier` x the mean of up to `baseline_lookback` preceding candles."""
    volumes = _as_array(volumes)
    if len(volumes) < min_length:
        return False

    baseline = volumes[-(baseline_lookback + 1) : -1]
    average = float(np.mean(baseline))
    return bool(volumes[-1] > average * multiplier)


# =============================================================================
# PRICE LEVELS
# =============================================================================


def price_range(highs: np.ndarray, lows: np.ndarray, period: int) -> tuple[float, float]:
    """(high, low) over the last `period` candles, zeros when shorter."""
    highs, lows = _as_array(highs), _as_array(lows)
    if len(highs) < period:
        return 0.0, 0.0
    return round(float(np.max(highs[-period:])), 2), round(float(np.min(lows[-period:])), 2)


def weekly_pivot(highs: np.ndarray, lows: np.ndarray, closes: np.ndarray) -> float:
    """(H + L + C) / 3 over the last 5 candles."""
    highs, lows, closes = _as_array(highs), _as_array(lows), _as_array(closes)
    if len(closes) < 5:
        return 0.0
    return float((np.max(highs[-5:]) + np.min(lows[-5:]) + closes[-1]) / 3)


def change_percent(closes: np.ndarray, lookback: int) -> float:
    """Percentage change of the last close versus the close `lookback` candles back."""
    closes = _as_array(closes)
    if len(closes) < lookback or closes[-lookback] == 0:
        return 0.0
    return float((closes[-1] - closes[-lookback]) / closes[-lookback] * 100)
