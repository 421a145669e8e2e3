"""
Statistics Aggregator

Derives the presentation-ready wrapped summary from accumulated yearly stats.
"""

from __future__ import annotations

from listenstats.services.stats_models import (
    ArtistStat,
    SongStat,
    WrappedStats,
    YearlyStats,
)

DEFAULT_TOP_LIMIT = 10


def rank_top_songs(stats: YearlyStats, limit: int = DEFAULT_TOP_LIMIT) -> list[SongStat]:
    """
    Rank songs by play count, highest first.

    Ties are broken by ascending song id so the order does not depend on how
    the storage backend orders keys.
    """
    ranked = sorted(
        stats.song_plays.items(),
        key=lambda item: (-item[1].play_count, item[0]),
    )
    return [
        SongStat(
            song_id=record.song_id,
            title=record.title if record.title is not None else "Unknown",
            artist=record.artist,
            thumbnail_url=record.thumbnail_url,
            play_count=record.play_count,
        )
        for _, record in ranked[:limit]
    ]


def rank_top_artists(stats: YearlyStats, limit: int = DEFAULT_TOP_LIMIT) -> list[ArtistStat]:
    """Rank artists by play count, highest first; ties by ascending artist key."""
    ranked = sorted(
        stats.artist_plays.items(),
        key=lambda item: (-item[1].play_count, item[0]),
    )
    return [
        ArtistStat(
            artist=record.artist if record.artist is not None else "Unknown",
            play_count=record.play_count,
            total_seconds=record.total_seconds,
        )
        for _, record in ranked[:limit]
    ]


def find_peak_month(stats: YearlyStats) -> tuple[int, int]:
    """
    Find the month with the most listening minutes.

    Months are scanned in calendar order and only a strictly greater total
    replaces the current best, so the earliest month wins a tie.

    Returns:
        Tuple of (month, minutes); (0, 0) when no month reaches a minute
    """
    top_month = 0
    top_month_minutes = 0
    for month, record in sorted(stats.monthly_breakdown.items()):
        minutes = record.listening_seconds // 60
        if minutes > top_month_minutes:
            top_month = month
            top_month_minutes = minutes
    return top_month, top_month_minutes


def build_wrapped_stats(
    year: int,
    stats: YearlyStats,
    limit: int = DEFAULT_TOP_LIMIT,
) -> WrappedStats | None:
    """
    Generate the year-in-review summary.

    Args:
        year: Year the stats belong to
        stats: Accumulated stats for that year
        limit: Max entries in each top list

    Returns:
        WrappedStats, or None if nothing was recorded for the year
    """
    if stats.is_empty:
        return None

    top_month, top_month_minutes = find_peak_month(stats)

    return WrappedStats(
        year=year,
        total_listening_minutes=stats.total_listening_seconds // 60,
        total_songs_played=stats.total_songs_played,
        top_songs=rank_top_songs(stats, limit),
        top_artists=rank_top_artists(stats, limit),
        top_month=top_month,
        top_month_minutes=top_month_minutes,
        unique_songs_played=len(stats.song_plays),
        unique_artists_played=len(stats.artist_plays),
    )
