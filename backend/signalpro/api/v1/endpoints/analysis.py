"""
Analysis API Endpoints

Analyze an instrument, list and search stored analyses, delete one.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query

from signalpro.schemas.analysis import AnalysisRequest, AnalysisResult, AnalysisSummary
from signalpro.services.analysis import AnalyzerService, get_analyzer_service
from signalpro.services.base import (
    ExternalAPIError,
    RateLimitError,
    ServiceError,
    ValidationError,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def to_http_exception(error: ServiceError) -> HTTPException:
    """Map the service error hierarchy onto HTTP status codes."""
    if isinstance(error, ValidationError):
        status = 400
    elif isinstance(error, RateLimitError):
        status = 429
    elif isinstance(error, ExternalAPIError):
        status = 502
    else:
        status = 500
    return HTTPException(status_code=status, detail=error.to_dict())


@router.post("", response_model=AnalysisResult)
async def analyze_instrument(
    request: AnalysisRequest,
    analyzer: AnalyzerService = Depends(get_analyzer_service),
):
    """
    Analyze an instrument for a user.

    Returns the stored analysis when it is still fresh (from_cache=true),
    otherwise fetches candles and recomputes:
    1. Indicators (snapshot at the last candle)
    2. Composite score (0-10) and labels
    3. Trading plan (advisory or rule-based fallback) with position sizing
    """
    try:
        return await analyzer.analyze(
            request.instrument_key,
            request.user_id,
            force_refresh=request.force_refresh,
            profile=request.profile,
        )
    except ServiceError as e:
        logger.warning(f"Analysis failed for {request.instrument_key}: {e}")
        raise to_http_exception(e)


@router.get("/recent", response_model=list[AnalysisSummary])
async def recent_analyses(
    user_id: str = Query(..., min_length=1),
    limit: int = Query(default=20, ge=1, le=100),
    analyzer: AnalyzerService = Depends(get_analyzer_service),
):
    """Most recent analyses for a user, newest first."""
    return await analyzer.recent(user_id, limit)


@router.get("/search", response_model=list[AnalysisSummary])
async def search_analyses(
    user_id: str = Query(..., min_length=1),
    q: str = Query(..., min_length=1, description="Symbol or instrument key fragment"),
    limit: int = Query(default=20, ge=1, le=100),
    analyzer: AnalyzerService = Depends(get_analyzer_service),
):
    """Search a user's stored analyses by symbol or instrument key."""
    return await analyzer.search(user_id, q, limit)


@router.delete("/{instrument_key}")
async def delete_analysis(
    instrument_key: str,
    user_id: str = Query(..., min_length=1),
    analyzer: AnalyzerService = Depends(get_analyzer_service),
):
    """Delete the stored analysis for an instrument and user."""
    deleted = await analyzer.delete(instrument_key, user_id)
    if not deleted:
        raise HTTPException(status_code=404, detail=f"No analysis for {instrument_key}")
    return {"deleted": True, "instrument_key": instrument_key}
