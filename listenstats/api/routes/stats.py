"""
Statistics API Routes

Endpoints for the yearly listening summary.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query

from listenstats.api.dependencies import get_listening_stats_service
from listenstats.services.listening_stats import ListeningStatsService

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/wrapped/years")
async def get_available_years(
    service: ListeningStatsService = Depends(get_listening_stats_service),
) -> dict[str, Any]:
    """
    Get years that have recorded plays, most recent first.
    """
    return {"years": service.get_available_years()}


@router.get("/wrapped/{year}")
async def get_wrapped(
    year: int,
    limit: int | None = Query(None, ge=1, le=10, description="Max entries per top list"),
    service: ListeningStatsService = Depends(get_listening_stats_service),
) -> dict[str, Any]:
    """
    Get the year-in-review summary.

    Returns totals, top songs and artists, and the peak listening month.
    """
    wrapped = service.get_wrapped_stats(year)
    if wrapped is None:
        logger.debug(f"No wrapped stats for {year}")
        raise HTTPException(status_code=404, detail=f"No listening stats for {year}")
    if limit is not None:
        wrapped = wrapped.sliced(limit)
    return wrapped.to_dict()


@router.get("/wrapped/{year}/available")
async def get_wrapped_available(
    year: int,
    service: ListeningStatsService = Depends(get_listening_stats_service),
) -> dict[str, Any]:
    return {"year": year, "available": service.has_stats_for_year(year)}
