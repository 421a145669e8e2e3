"""
Listening Stats Models

Typed records for accumulated yearly statistics and the derived wrapped
summary. The ``from_dict``/``to_dict`` pairs are the only place the stored
camelCase layout is read or written.
"""

from __future__ import annotations

import calendar
import copy
import logging
from dataclasses import dataclass, field, replace
from typing import Any

logger = logging.getLogger(__name__)


def _as_int(value: Any, default: int = 0) -> int:
    """Coerce a stored counter to a non-negative int, falling back to default."""
    if value is None or isinstance(value, bool):
        return default
    try:
        number = int(value)
    except (TypeError, ValueError):
        return default
    return number if number >= 0 else default


def _as_mapping(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_optional_str(value: Any) -> str | None:
    if value is None:
        return None
    return str(value)


def _merge_section(
    stored: Any, records: dict[str, dict[str, Any]]
) -> dict[str, Any]:
    """Overlay serialized records on a stored section, keeping other entries."""
    merged = dict(stored) if isinstance(stored, dict) else {}
    for key, record in records.items():
        existing = merged.get(key)
        merged[key] = {**existing, **record} if isinstance(existing, dict) else record
    return merged


@dataclass
class SongPlayRecord:
    """Accumulated plays of one song within a year."""

    song_id: str
    title: str | None
    artist: str | None = None
    thumbnail_url: str | None = None
    play_count: int = 1
    first_played: int = 0
    last_played: int = 0

    @classmethod
    def from_dict(cls, key: str, data: dict[str, Any]) -> SongPlayRecord:
        return cls(
            song_id=_as_optional_str(data.get("songId")) or key,
            title=_as_optional_str(data.get("title")),
            artist=_as_optional_str(data.get("artist")),
            thumbnail_url=_as_optional_str(data.get("thumbnailUrl")),
            play_count=_as_int(data.get("playCount")),
            first_played=_as_int(data.get("firstPlayed")),
            last_played=_as_int(data.get("lastPlayed")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "songId": self.song_id,
            "title": self.title,
            "artist": self.artist,
            "thumbnailUrl": self.thumbnail_url,
            "playCount": self.play_count,
            "firstPlayed": self.first_played,
            "lastPlayed": self.last_played,
        }


@dataclass
class ArtistPlayRecord:
    """Accumulated plays of one artist; ``artist`` keeps the first-seen casing."""

    artist: str | None
    play_count: int = 1
    total_seconds: int = 0

    @classmethod
    def from_dict(cls, key: str, data: dict[str, Any]) -> ArtistPlayRecord:
        return cls(
            artist=_as_optional_str(data.get("artist")),
            play_count=_as_int(data.get("playCount")),
            total_seconds=_as_int(data.get("totalSeconds")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "artist": self.artist,
            "playCount": self.play_count,
            "totalSeconds": self.total_seconds,
        }


@dataclass
class MonthRecord:
    songs_played: int = 0
    listening_seconds: int = 0

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MonthRecord:
        return cls(
            songs_played=_as_int(data.get("songsPlayed")),
            listening_seconds=_as_int(data.get("listeningSeconds")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "songsPlayed": self.songs_played,
            "listeningSeconds": self.listening_seconds,
        }


@dataclass
class YearlyStats:
    """All accumulated counters for one calendar year."""

    total_listening_seconds: int = 0
    total_songs_played: int = 0
    song_plays: dict[str, SongPlayRecord] = field(default_factory=dict)
    artist_plays: dict[str, ArtistPlayRecord] = field(default_factory=dict)
    monthly_breakdown: dict[int, MonthRecord] = field(default_factory=dict)
    # Stored mapping this was loaded from; to_dict writes on top of it
    raw: dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @property
    def is_empty(self) -> bool:
        return (
            self.total_listening_seconds == 0
            and self.total_songs_played == 0
            and not self.song_plays
            and not self.artist_plays
            and not self.monthly_breakdown
        )

    @classmethod
    def from_dict(cls, data: Any) -> YearlyStats:
        """
        Build typed stats from the stored nested mapping.

        Missing or malformed fields fall back to empty/zero values instead of
        raising, so a partially written record still loads.
        """
        data = _as_mapping(data)

        song_plays = {
            str(key): SongPlayRecord.from_dict(str(key), value)
            for key, value in _as_mapping(data.get("songPlays")).items()
            if isinstance(value, dict)
        }
        artist_plays = {
            str(key): ArtistPlayRecord.from_dict(str(key), value)
            for key, value in _as_mapping(data.get("artistPlays")).items()
            if isinstance(value, dict)
        }

        monthly_breakdown: dict[int, MonthRecord] = {}
        for key, value in _as_mapping(data.get("monthlyBreakdown")).items():
            try:
                month = int(key)
            except (TypeError, ValueError):
                logger.warning(f"Skipping malformed month key {key!r}")
                continue
            if not 1 <= month <= 12 or not isinstance(value, dict):
                logger.warning(f"Skipping malformed month entry {key!r}")
                continue
            monthly_breakdown[month] = MonthRecord.from_dict(value)

        return cls(
            total_listening_seconds=_as_int(data.get("totalListeningSeconds")),
            total_songs_played=_as_int(data.get("totalSongsPlayed")),
            song_plays=song_plays,
            artist_plays=artist_plays,
            monthly_breakdown=monthly_breakdown,
            raw=copy.deepcopy(data),
        )

    def to_dict(self) -> dict[str, Any]:
        """
        Render the stored layout.

        Starts from the mapping the record was loaded from, so unknown keys,
        entries that failed to parse and fields left as null are written back
        unchanged. Only the parsed records are overlaid.
        """
        data = copy.deepcopy(self.raw)
        data["totalListeningSeconds"] = self.total_listening_seconds
        data["totalSongsPlayed"] = self.total_songs_played
        data["songPlays"] = _merge_section(
            data.get("songPlays"),
            {song_id: record.to_dict() for song_id, record in self.song_plays.items()},
        )
        data["artistPlays"] = _merge_section(
            data.get("artistPlays"),
            {key: record.to_dict() for key, record in self.artist_plays.items()},
        )

        months = _as_mapping(data.get("monthlyBreakdown"))
        month_keys = {}
        for key in months:
            try:
                month_keys.setdefault(int(key), key)
            except (TypeError, ValueError):
                continue
        data["monthlyBreakdown"] = _merge_section(
            months,
            {
                month_keys.get(month, str(month)): record.to_dict()
                for month, record in sorted(self.monthly_breakdown.items())
            },
        )
        return data


@dataclass(frozen=True)
class SongStat:
    song_id: str
    title: str
    artist: str | None
    thumbnail_url: str | None
    play_count: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "song_id": self.song_id,
            "title": self.title,
            "artist": self.artist,
            "thumbnail_url": self.thumbnail_url,
            "play_count": self.play_count,
        }


@dataclass(frozen=True)
class ArtistStat:
    artist: str
    play_count: int
    total_seconds: int

    @property
    def total_minutes(self) -> int:
        return self.total_seconds // 60

    def to_dict(self) -> dict[str, Any]:
        return {
            "artist": self.artist,
            "play_count": self.play_count,
            "total_seconds": self.total_seconds,
            "total_minutes": self.total_minutes,
        }


def format_listening_time(minutes: int) -> str:
    """Format whole minutes as "X min", "Xh Ym" or "Xd Yh"."""
    if minutes < 60:
        return f"{minutes} min"
    if minutes < 1440:
        hours = minutes // 60
        remaining_minutes = minutes % 60
        return f"{hours}h {remaining_minutes}m" if remaining_minutes > 0 else f"{hours}h"
    days = minutes // 1440
    remaining_hours = (minutes % 1440) // 60
    return f"{days}d {remaining_hours}h" if remaining_hours > 0 else f"{days}d"


@dataclass(frozen=True)
class WrappedStats:
    """Read-time year summary. Derived on every read, never stored."""

    year: int
    total_listening_minutes: int
    total_songs_played: int
    top_songs: list[SongStat]
    top_artists: list[ArtistStat]
    top_month: int
    top_month_minutes: int
    unique_songs_played: int
    unique_artists_played: int

    @property
    def total_listening_hours(self) -> int:
        return self.total_listening_minutes // 60

    @property
    def formatted_listening_time(self) -> str:
        return format_listening_time(self.total_listening_minutes)

    @property
    def top_month_name(self) -> str | None:
        if not 1 <= self.top_month <= 12:
            return None
        return calendar.month_name[self.top_month]

    def sliced(self, limit: int) -> WrappedStats:
        """Return a copy with both top lists cut to ``limit`` entries."""
        return replace(
            self,
            top_songs=list(self.top_songs[:limit]),
            top_artists=list(self.top_artists[:limit]),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "year": self.year,
            "total_listening_minutes": self.total_listening_minutes,
            "total_listening_hours": self.total_listening_hours,
            "formatted_listening_time": self.formatted_listening_time,
            "total_songs_played": self.total_songs_played,
            "top_songs": [song.to_dict() for song in self.top_songs],
            "top_artists": [artist.to_dict() for artist in self.top_artists],
            "top_month": self.top_month,
            "top_month_name": self.top_month_name,
            "top_month_minutes": self.top_month_minutes,
            "unique_songs_played": self.unique_songs_played,
            "unique_artists_played": self.unique_artists_played,
        }
