"""
Playback Tracking API Routes

Endpoint for reporting completed plays.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from listenstats.api.dependencies import get_listening_stats_service
from listenstats.services.listening_stats import ListeningStatsService

router = APIRouter()


class TrackPlayRequest(BaseModel):
    song_id: str = Field(min_length=1)
    title: str
    artist: str | None = None
    thumbnail_url: str | None = None
    duration_seconds: int = Field(ge=0)


@router.post("/track", status_code=202)
async def track_play(
    payload: TrackPlayRequest,
    service: ListeningStatsService = Depends(get_listening_stats_service),
) -> dict[str, Any]:
    """
    Record a completed play.

    Tracking is best-effort: the play is accepted even if it could not be
    persisted, in which case the failure only shows up in the logs.
    """
    service.track_song_play(
        song_id=payload.song_id,
        title=payload.title,
        artist=payload.artist,
        thumbnail_url=payload.thumbnail_url,
        duration_seconds=payload.duration_seconds,
    )
    return {"accepted": True}
