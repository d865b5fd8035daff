"""
Analyzer Service Interface

Defines the caller-facing contract of the whole engine.
"""

from abc import abstractmethod

from signalpro.services.base import BaseService
from signalpro.schemas.analysis import AnalysisRequest, AnalysisResult, AnalysisSummary
from signalpro.schemas.indicators import AnalysisProfile


class AnalyzerServiceInterface(BaseService[AnalysisRequest, AnalysisResult]):
    """
    Analyzer Service Contract.

    INPUT: AnalysisRequest
        - instrument_key: Exchange-qualified instrument
        - user_id: Owner of the stored analysis
        - force_refresh: Skip the freshness gate
        - profile: SWING or INTRADAY

    OUTPUT: AnalysisResult
        - snapshot, score and sized plan
        - from_cache / cache_age_seconds when served from the store
    """

    @property
    def name(self) -> str:
        return "AnalyzerService"

    async def execute(self, input_data: AnalysisRequest) -> AnalysisResult:
        return await self.analyze(
            input_data.instrument_key,
            input_data.user_id,
            force_refresh=input_data.force_refresh,
            profile=input_data.profile,
        )

    @abstractmethod
    async def analyze(
        self,
        instrument_key: str,
        user_id: str,
        force_refresh: bool = False,
        profile: AnalysisProfile = AnalysisProfile.SWING,
    ) -> AnalysisResult:
        """
        Serve a fresh stored analysis or recompute one.

        Raises:
            ValidationError: Missing identifiers or insufficient candles
            ExternalAPIError: Market data unavailable
        """
        pass

    @abstractmethod
    async def recent(self, user_id: str, limit: int = 20) -> list[AnalysisSummary]:
        pass

    @abstractmethod
    async def search(self, user_id: str, query: str, limit: int = 20) -> list[AnalysisSummary]:
        pass

    @abstractmethod
    async def delete(self, instrument_key: str, user_id: str) -> bool:
        pass
