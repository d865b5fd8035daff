"""
Shared fixtures and candle factories.
"""

from datetime import datetime, timedelta
from typing import Optional, Sequence

import numpy as np
import pytest

from signalpro.core.market_hours import IST
from signalpro.schemas.indicators import AnalysisProfile
from signalpro.schemas.market import Candle, CandleSeries, Quote, Timeframe
from signalpro.services.analysis import AnalyzerService
from signalpro.services.analysis.store import InMemoryAnalysisStore
from signalpro.services.indicators import IndicatorService
from signalpro.services.market_data import MarketDataProvider
from signalpro.services.planning import PlanSynthesizer
from signalpro.services.scoring import get_scorer


START = IST.localize(datetime(2024, 1, 1, 9, 15))
STEPS = {
    Timeframe.M1: timedelta(minutes=1),
    Timeframe.D1: timedelta(days=1),
}


def make_series(
    closes: Sequence[float],
    volumes: Optional[Sequence[float]] = None,
    timeframe: Timeframe = Timeframe.D1,
    instrument_key: str = "NSE_EQ|TEST",
    wick: float = 0.02,
    start: datetime = START,
) -> CandleSeries:
    """
    Candles whose open is the previous close, with `wick` added above the
    body high and below the body low.
    """
    closes = [float(c) for c in closes]
    if volumes is None:
        volumes = [1000.0] * len(closes)
    step = STEPS.get(timeframe, timedelta(days=1))

    candles = []
    prev_close = closes[0]
    for i, (close, volume) in enumerate(zip(closes, volumes)):
        open_price = prev_close
        candles.append(
            Candle(
                timestamp=start + step * i,
                open=open_price,
                high=max(open_price, close) + wick,
                low=min(open_price, close) - wick,
                close=close,
                volume=float(volume),
            )
        )
        prev_close = close

    return CandleSeries(instrument_key=instrument_key, timeframe=timeframe, candles=candles)


def rising_intraday_series() -> CandleSeries:
    """200 one-minute candles rising 100 -> 110, volume tripling for the last 20."""
    closes = np.linspace(100, 110, 200)
    volumes = [10_000.0] * 180 + [30_000.0] * 20
    return make_series(closes, volumes, timeframe=Timeframe.M1)


def wave_series(n: int = 250, base: float = 500.0, amplitude: float = 25.0, drift: float = 0.0) -> CandleSeries:
    """Daily sine wave with volume peaks on the turning points."""
    x = np.arange(n)
    closes = base + amplitude * np.sin(x / 8.0) + drift * x
    turning = np.abs(np.cos(x / 8.0)) < 0.15
    volumes = np.where(turning, 3000.0, 1000.0)
    return make_series(closes, volumes)


@pytest.fixture
def intraday_series() -> CandleSeries:
    return rising_intraday_series()


@pytest.fixture
def indicator_service() -> IndicatorService:
    return IndicatorService(stop_loss_multiplier=2.0, take_profit_multiplier=1.5)


@pytest.fixture
def intraday_snapshot(indicator_service, intraday_series):
    return indicator_service.build_snapshot(intraday_series, AnalysisProfile.INTRADAY)


@pytest.fixture
def intraday_score(intraday_snapshot):
    return get_scorer(AnalysisProfile.INTRADAY).score(intraday_snapshot)


@pytest.fixture
def swing_snapshot(indicator_service):
    return indicator_service.build_snapshot(wave_series(drift=0.5), AnalysisProfile.SWING)


@pytest.fixture
def swing_score(swing_snapshot):
    return get_scorer(AnalysisProfile.SWING).score(swing_snapshot)


# =============================================================================
# PIPELINE FAKES
# =============================================================================


KEY = "NSE_EQ|INE002A01018"
USER = "user-1"


class FakeMarketData(MarketDataProvider):
    """Rising minute candles for intraday, a daily wave for swing."""

    def __init__(self, series: Optional[CandleSeries] = None, error: Optional[Exception] = None):
        self.series = series
        self.error = error
        self.candle_calls = []

    @property
    def name(self) -> str:
        return "fake"

    async def get_candles(self, instrument_key: str, timeframe: Timeframe, days: int) -> CandleSeries:
        self.candle_calls.append((instrument_key, timeframe, days))
        if self.error:
            raise self.error
        if self.series is not None:
            return self.series
        if timeframe == Timeframe.M1:
            return rising_intraday_series()
        return wave_series(drift=0.5)

    async def get_quote(self, instrument_key: str) -> Quote:
        return Quote(instrument_key=instrument_key, last_price=110.0, change=1.1, change_percent=1.0)


def make_analyzer(store=None, market_data=None) -> AnalyzerService:
    return AnalyzerService(
        store=store or InMemoryAnalysisStore(),
        market_data=market_data or FakeMarketData(),
        indicator_service=IndicatorService(stop_loss_multiplier=2.0, take_profit_multiplier=1.5),
        plan_synthesizer=PlanSynthesizer(advisory_enabled=False),
    )
