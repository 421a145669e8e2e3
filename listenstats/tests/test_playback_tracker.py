"""Tests for applying play events to yearly stats."""

from datetime import datetime

from listenstats.services.playback_tracker import (
    apply_play,
    normalize_artist_key,
    to_epoch_ms,
)
from listenstats.services.stats_models import YearlyStats


def _play(stats, song_id="a", title="Song A", artist="X", duration=30, at=None, thumbnail=None):
    return apply_play(
        stats,
        song_id=song_id,
        title=title,
        artist=artist,
        thumbnail_url=thumbnail,
        duration_seconds=duration,
        played_at=at or datetime(2024, 3, 14, 12, 0),
    )


def test_normalize_artist_key():
    assert normalize_artist_key("Queen") == "queen"
    assert normalize_artist_key("  Queen ") == "queen"
    assert normalize_artist_key("") is None
    assert normalize_artist_key("   ") == ""
    assert normalize_artist_key(None) is None


def test_first_play_creates_records():
    played_at = datetime(2024, 3, 14, 12, 0)
    stats = _play(YearlyStats(), thumbnail="http://img/a.jpg", at=played_at)

    song = stats.song_plays["a"]
    assert song.play_count == 1
    assert song.first_played == song.last_played == to_epoch_ms(played_at)
    assert song.thumbnail_url == "http://img/a.jpg"
    assert stats.artist_plays["x"].artist == "X"
    assert stats.monthly_breakdown[3].songs_played == 1
    assert stats.monthly_breakdown[3].listening_seconds == 30
    assert stats.total_songs_played == 1
    assert stats.total_listening_seconds == 30


def test_repeat_play_updates_count_and_last_played_only():
    first = datetime(2024, 1, 1, 9, 0)
    last = datetime(2024, 2, 1, 9, 0)
    stats = YearlyStats()
    _play(stats, title="Original", at=first)
    _play(stats, title="Renamed", artist="Other", at=datetime(2024, 1, 15))
    _play(stats, title="Renamed", at=last)

    song = stats.song_plays["a"]
    assert song.play_count == 3
    assert song.title == "Original"
    assert song.artist == "X"
    assert song.first_played == to_epoch_ms(first)
    assert song.last_played == to_epoch_ms(last)


def test_artist_aggregation_ignores_case_and_whitespace():
    stats = YearlyStats()
    _play(stats, song_id="a", artist="Queen", duration=100)
    _play(stats, song_id="b", artist=" queen ", duration=50)

    assert list(stats.artist_plays) == ["queen"]
    record = stats.artist_plays["queen"]
    assert record.play_count == 2
    assert record.total_seconds == 150
    assert record.artist == "Queen"


def test_missing_artist_still_counts_song_and_totals():
    stats = YearlyStats()
    _play(stats, song_id="a", artist=None, duration=10)
    _play(stats, song_id="b", artist="", duration=10)

    assert stats.artist_plays == {}
    assert stats.total_songs_played == 2
    assert stats.total_listening_seconds == 20
    assert stats.song_plays["a"].play_count == 1
    assert stats.song_plays["b"].play_count == 1


def test_plays_split_by_month():
    stats = YearlyStats()
    _play(stats, duration=60, at=datetime(2024, 1, 5))
    _play(stats, duration=120, at=datetime(2024, 6, 5))
    _play(stats, duration=30, at=datetime(2024, 6, 6))

    assert stats.monthly_breakdown[1].listening_seconds == 60
    assert stats.monthly_breakdown[6].songs_played == 2
    assert stats.monthly_breakdown[6].listening_seconds == 150


def test_negative_duration_is_clamped():
    stats = _play(YearlyStats(), duration=-20)

    assert stats.total_listening_seconds == 0
    assert stats.total_songs_played == 1
    assert stats.artist_plays["x"].total_seconds == 0


def test_whitespace_only_artist_is_tallied_under_empty_key():
    stats = YearlyStats()
    _play(stats, song_id="a", artist="   ", duration=30)
    _play(stats, song_id="b", artist=" ", duration=10)

    assert list(stats.artist_plays) == [""]
    record = stats.artist_plays[""]
    assert record.artist == "   "
    assert record.play_count == 2
    assert record.total_seconds == 40
