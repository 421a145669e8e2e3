"""Tests for settings loading and merging."""

import json

from listenstats import app_settings


def test_defaults_when_file_missing(tmp_path):
    settings = app_settings.load_settings(tmp_path / "missing.json")

    assert settings["storage"]["backend"] == "json"
    assert settings["storage"]["namespace"] == "listeningStats"
    assert settings["wrapped"]["top_limit"] == 10


def test_defaults_when_file_corrupt(tmp_path):
    path = tmp_path / "settings.json"
    path.write_text("{nope", encoding="utf-8")

    assert app_settings.load_settings(path)["wrapped"]["top_limit"] == 10


def test_update_settings_deep_merges(tmp_path):
    path = tmp_path / "settings.json"

    app_settings.update_settings({"wrapped": {"top_limit": 5}}, path)
    settings = app_settings.update_settings({"storage": {"backend": "postgres"}}, path)

    assert settings["wrapped"]["top_limit"] == 5
    assert settings["storage"]["backend"] == "postgres"
    assert settings["storage"]["namespace"] == "listeningStats"
    assert json.loads(path.read_text(encoding="utf-8")) == settings


def test_storage_settings_resolves_path(tmp_path):
    storage = app_settings.storage_settings(
        {"storage": {"backend": "json", "path": str(tmp_path / "kv.json")}}
    )

    assert storage == {
        "backend": "json",
        "path": tmp_path / "kv.json",
        "namespace": "listeningStats",
    }


def test_wrapped_top_limit_falls_back():
    assert app_settings.wrapped_top_limit({"wrapped": {"top_limit": 3}}) == 3
    assert app_settings.wrapped_top_limit({"wrapped": {"top_limit": 0}}) == 10
    assert app_settings.wrapped_top_limit({"wrapped": {"top_limit": "many"}}) == 10
    assert app_settings.wrapped_top_limit({"wrapped": None}) == 10
