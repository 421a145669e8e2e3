from __future__ import annotations

from fastapi import Request

from listenstats.services.listening_stats import ListeningStatsService


def get_listening_stats_service(request: Request) -> ListeningStatsService:
    """Return the service instance owned by the running app."""
    return request.app.state.stats_service
