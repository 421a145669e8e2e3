from __future__ import annotations

import logging
import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from listenstats.api.routes import playback, stats
from listenstats.db import connection as db_connection
from listenstats.services.listening_stats import (
    ListeningStatsService,
    build_listening_stats_service,
)

logger = logging.getLogger(__name__)


def create_app(service: ListeningStatsService | None = None) -> FastAPI:
    """
    Build the API application.

    Args:
        service: Stats service to serve; built from settings when omitted
    """
    app = FastAPI(
        title="Listening Stats API",
        description="On-device listening statistics and year-in-review summaries",
        version="1.0.0",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=os.environ.get(
            "LISTENSTATS_CORS_ORIGINS", "http://localhost:3000"
        ).split(","),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.stats_service = service or build_listening_stats_service()

    app.include_router(playback.router, prefix="/api/play", tags=["playback"])
    app.include_router(stats.router, prefix="/api/stats", tags=["stats"])

    @app.on_event("shutdown")
    async def close_stats_service() -> None:
        """Release the store and any database pool on shutdown."""
        app.state.stats_service.close()

    @app.get("/")
    async def root():
        return {"message": "Listening Stats API", "version": "1.0.0"}

    @app.get("/health")
    async def health():
        """Health check with the active store and pool stats, if any."""
        store = app.state.stats_service.store
        result = {"status": "healthy", "store": type(store).__name__}
        if db_connection.pool_is_open():
            try:
                result["pool"] = db_connection.get_pool_stats()
            except Exception as e:
                logger.warning(f"Could not read pool stats: {e}")
                result["status"] = "degraded"
        return result

    return app


app = create_app()
