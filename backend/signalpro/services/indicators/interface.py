"""
Indicator Engine Service Interface

Defines the contract for the indicator calculation layer.
"""

from abc import abstractmethod
from typing import Optional

from signalpro.services.base import BaseService
from signalpro.schemas.market import CandleSeries
from signalpro.schemas.indicators import AnalysisProfile, IndicatorSnapshot


class IndicatorServiceInterface(BaseService[CandleSeries, IndicatorSnapshot]):
    """
    Indicator Engine Service Contract.

    INPUT: CandleSeries
        - instrument_key, timeframe and time-ordered candles

    OUTPUT: IndicatorSnapshot
        - Every indicator value at the last candle, plus the
          profile-specific intraday or swing-pattern block
    """

    @property
    def name(self) -> str:
        return "IndicatorService"

    @abstractmethod
    async def execute(self, input_data: CandleSeries) -> IndicatorSnapshot:
        """Build a snapshot, inferring the profile from the series timeframe."""
        pass

    @abstractmethod
    def build_snapshot(
        self,
        series: CandleSeries,
        profile: Optional[AnalysisProfile] = None,
    ) -> IndicatorSnapshot:
        """
        Calculate every indicator for a series.

        Args:
            series: Non-empty candle series
            profile: SWING or INTRADAY; inferred from the timeframe when omitted

        Returns:
            Frozen IndicatorSnapshot

        Raises:
            ValidationError: If the series is empty
        """
        pass
