"""
Listening Stats Service

Records completed plays into per-year stats and serves the derived
year-in-review summary. Every public method is best-effort: failures are
logged and the caller gets a no-op, None, False or an empty list instead of
an exception.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime
from typing import Any, Callable

from listenstats import app_settings
from listenstats.services.playback_tracker import apply_play
from listenstats.services.stats_aggregator import DEFAULT_TOP_LIMIT, build_wrapped_stats
from listenstats.services.stats_models import WrappedStats, YearlyStats
from listenstats.services.stats_store import (
    StatsStore,
    build_stats_store,
    parse_yearly_stats_key,
    yearly_stats_key,
)

logger = logging.getLogger(__name__)


def _has_plays(value: Any) -> bool:
    if not isinstance(value, dict):
        return False
    try:
        return int(value.get("totalSongsPlayed") or 0) > 0
    except (TypeError, ValueError):
        return False


class ListeningStatsService:
    """Service for tracking plays and reading yearly listening stats."""

    def __init__(
        self,
        store: StatsStore,
        clock: Callable[[], datetime] | None = None,
        top_limit: int = DEFAULT_TOP_LIMIT,
    ) -> None:
        """
        Initialize the service.

        Args:
            store: Key-value store holding one record per year
            clock: Returns the current local time; defaults to datetime.now
            top_limit: Max entries in the top song/artist lists
        """
        self.store = store
        self.top_limit = top_limit
        self._clock = clock or datetime.now
        self._year_locks: dict[int, threading.Lock] = {}
        self._year_locks_guard = threading.Lock()

    def _year_lock(self, year: int) -> threading.Lock:
        with self._year_locks_guard:
            lock = self._year_locks.get(year)
            if lock is None:
                lock = self._year_locks[year] = threading.Lock()
            return lock

    def track_song_play(
        self,
        song_id: str,
        title: str,
        artist: str | None = None,
        thumbnail_url: str | None = None,
        duration_seconds: int = 0,
    ) -> None:
        """
        Record one completed play against the current year and month.

        Writes for the same year are serialized through a per-year lock and
        the store's update, so plays tracked from several threads are not lost.
        On any failure the play is dropped and the error is logged.
        """
        try:
            now = self._clock()
            key = yearly_stats_key(now.year)

            def mutate(current: dict[str, Any]) -> dict[str, Any]:
                stats = YearlyStats.from_dict(current)
                apply_play(
                    stats,
                    song_id=song_id,
                    title=title,
                    artist=artist,
                    thumbnail_url=thumbnail_url,
                    duration_seconds=duration_seconds,
                    played_at=now,
                )
                return stats.to_dict()

            with self._year_lock(now.year):
                self.store.update(key, mutate)

            logger.debug(f"Tracked play of {song_id} for {now.year}-{now.month:02d}")
        except Exception:
            logger.exception(f"Error tracking song play for {song_id}")

    def get_yearly_stats(self, year: int) -> YearlyStats | None:
        """Load the raw accumulated stats for a year, or None if there are none."""
        try:
            data = self.store.get(yearly_stats_key(year), {})
            stats = YearlyStats.from_dict(data)
            return None if stats.is_empty else stats
        except Exception:
            logger.exception(f"Error loading yearly stats for {year}")
            return None

    def get_wrapped_stats(self, year: int) -> WrappedStats | None:
        """
        Generate the year-in-review summary for a year.

        Args:
            year: Year to summarize

        Returns:
            WrappedStats, or None if nothing was recorded or loading failed
        """
        try:
            data = self.store.get(yearly_stats_key(year), {})
            return build_wrapped_stats(year, YearlyStats.from_dict(data), self.top_limit)
        except Exception:
            logger.exception(f"Error getting wrapped stats for {year}")
            return None

    def has_stats_for_year(self, year: int) -> bool:
        try:
            return _has_plays(self.store.get(yearly_stats_key(year)))
        except Exception:
            logger.exception(f"Error checking stats for {year}")
            return False

    def get_available_years(self) -> list[int]:
        """List years with at least one tracked play, most recent first."""
        try:
            years = []
            for key in self.store.keys():
                year = parse_yearly_stats_key(key)
                if year is None:
                    continue
                if _has_plays(self.store.get(key)):
                    years.append(year)
            return sorted(years, reverse=True)
        except Exception:
            logger.exception("Error listing available years")
            return []

    def close(self) -> None:
        try:
            self.store.close()
        except Exception:
            logger.exception("Error closing stats store")


def build_listening_stats_service(
    settings: dict[str, Any] | None = None,
) -> ListeningStatsService:
    """Create a service wired to the configured store and top-list limit."""
    settings = settings or app_settings.load_settings()
    return ListeningStatsService(
        store=build_stats_store(settings),
        top_limit=app_settings.wrapped_top_limit(settings),
    )
