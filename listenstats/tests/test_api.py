"""Tests for the HTTP API."""

from datetime import datetime

import pytest
from fastapi.testclient import TestClient

from listenstats.api.app import create_app
from listenstats.api.dependencies import get_listening_stats_service
from listenstats.services.listening_stats import ListeningStatsService
from listenstats.tests.fakes import FakeClock, FixtureStatsService, MemoryStatsStore


@pytest.fixture
def service():
    return ListeningStatsService(
        MemoryStatsStore(), clock=FakeClock(datetime(2024, 7, 4, 18, 0))
    )


@pytest.fixture
def client(service):
    return TestClient(create_app(service))


def _track(client, song_id, artist=None, duration=30):
    return client.post(
        "/api/play/track",
        json={
            "song_id": song_id,
            "title": f"Title {song_id}",
            "artist": artist,
            "duration_seconds": duration,
        },
    )


def test_track_then_read_wrapped(client):
    for _ in range(3):
        assert _track(client, "A", artist="X").status_code == 202
    assert _track(client, "B", duration=10).json() == {"accepted": True}

    response = client.get("/api/stats/wrapped/2024")

    assert response.status_code == 200
    body = response.json()
    assert body["total_songs_played"] == 4
    assert body["total_listening_minutes"] == 1
    assert body["formatted_listening_time"] == "1 min"
    assert [song["song_id"] for song in body["top_songs"]] == ["A", "B"]
    assert body["top_artists"] == [
        {"artist": "X", "play_count": 3, "total_seconds": 90, "total_minutes": 1}
    ]
    assert body["top_month"] == 7
    assert body["top_month_name"] == "July"
    assert body["unique_artists_played"] == 1


def test_wrapped_missing_year_is_404(client):
    response = client.get("/api/stats/wrapped/1999")

    assert response.status_code == 404


def test_wrapped_limit_slices_lists(client):
    for song_id in ("a", "b", "c"):
        _track(client, song_id, artist=song_id)

    body = client.get("/api/stats/wrapped/2024", params={"limit": 2}).json()

    assert len(body["top_songs"]) == 2
    assert len(body["top_artists"]) == 2
    assert body["unique_songs_played"] == 3
    assert client.get("/api/stats/wrapped/2024", params={"limit": 0}).status_code == 422


def test_years_and_availability(client):
    assert client.get("/api/stats/wrapped/years").json() == {"years": []}
    assert client.get("/api/stats/wrapped/2024/available").json() == {
        "year": 2024,
        "available": False,
    }

    _track(client, "a")

    assert client.get("/api/stats/wrapped/years").json() == {"years": [2024]}
    assert client.get("/api/stats/wrapped/2024/available").json()["available"] is True


def test_track_rejects_bad_payload(client):
    assert _track(client, "a", duration=-1).status_code == 422
    assert client.post("/api/play/track", json={"title": "x"}).status_code == 422


def test_fixture_service_override():
    app = create_app(ListeningStatsService(MemoryStatsStore()))
    fixture = FixtureStatsService(2025)
    app.dependency_overrides[get_listening_stats_service] = lambda: fixture
    client = TestClient(app)

    body = client.get("/api/stats/wrapped/2025", params={"limit": 5}).json()

    assert body["total_songs_played"] == 2847
    assert body["formatted_listening_time"] == "6d 1h"
    assert [song["title"] for song in body["top_songs"]][:2] == [
        "Bohemian Rhapsody",
        "Blinding Lights",
    ]
    assert len(body["top_artists"]) == 5
    assert client.get("/api/stats/wrapped/years").json() == {"years": [2025]}

    _track(client, "z", artist="Y")
    assert fixture.tracked[0]["song_id"] == "z"


def test_health(client):
    body = client.get("/health").json()

    assert body["status"] == "healthy"
    assert body["store"] == "MemoryStatsStore"
