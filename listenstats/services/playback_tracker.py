"""
Playback Tracker

Applies completed play events to a year's accumulated statistics.
"""

from __future__ import annotations

import logging
from datetime import datetime

from listenstats.services.stats_models import (
    ArtistPlayRecord,
    MonthRecord,
    SongPlayRecord,
    YearlyStats,
)

logger = logging.getLogger(__name__)


def normalize_artist_key(artist: str | None) -> str | None:
    """
    Return the aggregation key for an artist, or None if there is no artist.

    Only None and "" count as missing. A whitespace-only name is kept and
    aggregates under the empty key.
    """
    if artist is None or artist == "":
        return None
    return artist.strip().lower()


def to_epoch_ms(moment: datetime) -> int:
    return int(moment.timestamp() * 1000)


def apply_play(
    stats: YearlyStats,
    song_id: str,
    title: str,
    artist: str | None,
    thumbnail_url: str | None,
    duration_seconds: int,
    played_at: datetime,
) -> YearlyStats:
    """
    Record one play into ``stats`` in place.

    Args:
        stats: Accumulated stats for the year ``played_at`` falls in
        song_id: Stable identifier of the song
        title: Song title, kept from the first play only
        artist: Display name of the artist; None or blank skips artist tallies
        thumbnail_url: Optional artwork reference, kept from the first play only
        duration_seconds: Seconds listened
        played_at: Local time of the play

    Returns:
        The same ``stats`` object, for chaining
    """
    if duration_seconds < 0:
        logger.warning(f"Clamping negative duration {duration_seconds}s for {song_id}")
        duration_seconds = 0

    timestamp = to_epoch_ms(played_at)

    stats.total_listening_seconds += duration_seconds
    stats.total_songs_played += 1

    song = stats.song_plays.get(song_id)
    if song is not None:
        song.play_count += 1
        song.last_played = timestamp
    else:
        stats.song_plays[song_id] = SongPlayRecord(
            song_id=song_id,
            title=title,
            artist=artist,
            thumbnail_url=thumbnail_url,
            play_count=1,
            first_played=timestamp,
            last_played=timestamp,
        )

    artist_key = normalize_artist_key(artist)
    if artist_key is not None:
        artist_record = stats.artist_plays.get(artist_key)
        if artist_record is not None:
            artist_record.play_count += 1
            artist_record.total_seconds += duration_seconds
        else:
            stats.artist_plays[artist_key] = ArtistPlayRecord(
                artist=artist,
                play_count=1,
                total_seconds=duration_seconds,
            )

    month = stats.monthly_breakdown.setdefault(played_at.month, MonthRecord())
    month.songs_played += 1
    month.listening_seconds += duration_seconds

    return stats
