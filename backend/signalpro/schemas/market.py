"""
CONTRACT 1: Market Data

Input to the Indicator Engine.
Candles arrive from the market-data provider and are validated here
before any calculation touches them.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

import numpy as np
from pydantic import BaseModel, Field, model_validator


# =============================================================================
# ENUMS
# =============================================================================


class Timeframe(str, Enum):
    M1 = "1m"
    M5 = "5m"
    M15 = "15m"
    M30 = "30m"
    H1 = "1h"
    D1 = "1d"
    W1 = "1w"

    @property
    def is_intraday(self) -> bool:
        return self in (Timeframe.M1, Timeframe.M5, Timeframe.M15, Timeframe.M30, Timeframe.H1)


def symbol_from_key(instrument_key: str) -> str:
    return instrument_key.split("|")[-1].strip()


# =============================================================================
# CANDLES
# =============================================================================


class Candle(BaseModel):
    """Single OHLCV candle."""

    timestamp: datetime
    open: float = Field(..., gt=0)
    high: float = Field(..., gt=0)
    low: float = Field(..., gt=0)
    close: float = Field(..., gt=0)
    volume: float = Field(..., ge=0)

    @model_validator(mode="after")
    def check_price_envelope(self) -> "Candle":
        body_low = min(self.open, self.close)
        body_high = max(self.open, self.close)
        if not (self.low <= body_low <= body_high <= self.high):
            raise ValueError(
                f"Candle at {self.timestamp.isoformat()} violates low <= open/close <= high "
                f"(o={self.open}, h={self.high}, l={self.low}, c={self.close})"
            )
        return self


class CandleSeries(BaseModel):
    """
    Time-ordered candle sequence for one instrument.

    Timestamps are strictly increasing. The numpy accessors are what the
    calculators consume.
    """

    instrument_key: str
    timeframe: Timeframe = Timeframe.D1
    candles: list[Candle] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_ordering(self) -> "CandleSeries":
        for prev, curr in zip(self.candles, self.candles[1:]):
            if curr.timestamp <= prev.timestamp:
                raise ValueError(
                    f"Candle timestamps must be strictly increasing: "
                    f"{prev.timestamp.isoformat()} >= {curr.timestamp.isoformat()}"
                )
        return self

    def __len__(self) -> int:
        return len(self.candles)

    @property
    def symbol(self) -> str:
        """Trading symbol part of an exchange-qualified key, e.g. NSE_EQ|RELIANCE -> RELIANCE."""
        return symbol_from_key(self.instrument_key)

    @property
    def is_empty(self) -> bool:
        return not self.candles

    @property
    def last(self) -> Optional[Candle]:
        return self.candles[-1] if self.candles else None

    @property
    def opens(self) -> np.ndarray:
        return np.array([c.open for c in self.candles], dtype=float)

    @property
    def highs(self) -> np.ndarray:
        return np.array([c.high for c in self.candles], dtype=float)

    @property
    def lows(self) -> np.ndarray:
        return np.array([c.low for c in self.candles], dtype=float)

    @property
    def closes(self) -> np.ndarray:
        return np.array([c.close for c in self.candles], dtype=float)

    @property
    def volumes(self) -> np.ndarray:
        return np.array([c.volume for c in self.candles], dtype=float)


# =============================================================================
# QUOTE
# =============================================================================


class Quote(BaseModel):
    """Live quote for an instrument."""

    instrument_key: str
    last_price: float = Field(..., ge=0)
    change: float = 0.0
    change_percent: float = 0.0
    timestamp: Optional[datetime] = None
