from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any

REPO_ROOT = Path(__file__).resolve().parents[1]
DEFAULT_METADATA_DIR = Path(
    os.environ.get("LISTENSTATS_METADATA_DIR", REPO_ROOT / ".metadata")
)
SETTINGS_PATH = DEFAULT_METADATA_DIR / "settings.json"

STORAGE_BACKENDS = ("json", "postgres")


def _default_settings() -> dict[str, Any]:
    return {
        "storage": {
            "backend": "json",
            "path": str(DEFAULT_METADATA_DIR / "listening_stats.json"),
            "namespace": "listeningStats",
        },
        "wrapped": {
            "top_limit": 10,
        },
    }


def _deep_merge(base: dict[str, Any], updates: dict[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in updates.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            merged[key] = _deep_merge(base[key], value)
        else:
            merged[key] = value
    return merged


def load_settings(path: Path | None = None) -> dict[str, Any]:
    path = path or SETTINGS_PATH
    defaults = _default_settings()
    if not path.exists():
        return defaults
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError:
        return defaults
    if not isinstance(data, dict):
        return defaults
    return _deep_merge(defaults, data)


def update_settings(patch: dict[str, Any], path: Path | None = None) -> dict[str, Any]:
    path = path or SETTINGS_PATH
    current = load_settings(path)
    updated = _deep_merge(current, patch)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        json.dumps(updated, indent=2, sort_keys=True, ensure_ascii=True) + "\n",
        encoding="utf-8",
    )
    return updated


def storage_settings(settings: dict[str, Any] | None = None) -> dict[str, Any]:
    settings = settings or load_settings()
    storage = settings.get("storage") if isinstance(settings, dict) else {}
    if not isinstance(storage, dict):
        storage = {}

    backend = storage.get("backend") or "json"
    if backend not in STORAGE_BACKENDS:
        raise ValueError(
            f"Unknown storage backend {backend!r}. Must be one of: {STORAGE_BACKENDS}"
        )

    return {
        "backend": backend,
        "path": resolve_store_path(settings),
        "namespace": storage.get("namespace") or "listeningStats",
    }


def resolve_store_path(settings: dict[str, Any] | None = None) -> Path:
    settings = settings or load_settings()
    storage = settings.get("storage") if isinstance(settings, dict) else {}
    if not isinstance(storage, dict):
        storage = {}
    path = storage.get("path")
    return Path(path or DEFAULT_METADATA_DIR / "listening_stats.json").expanduser()


def wrapped_top_limit(settings: dict[str, Any] | None = None) -> int:
    settings = settings or load_settings()
    wrapped = settings.get("wrapped") if isinstance(settings, dict) else {}
    if not isinstance(wrapped, dict):
        return 10
    try:
        limit = int(wrapped.get("top_limit", 10))
    except (TypeError, ValueError):
        return 10
    return limit if limit > 0 else 10
