"""
Stats Store

Key-value persistence for yearly listening stats. Each year lives under one
key (``yearlyStats_<year>``) holding the whole nested record.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Callable

from psycopg.types.json import Jsonb

from listenstats import app_settings
from listenstats.db import connection

logger = logging.getLogger(__name__)

YEARLY_STATS_PREFIX = "yearlyStats_"


class StatsStoreError(RuntimeError):
    """Raised when stored data cannot be read or written."""


def yearly_stats_key(year: int) -> str:
    return f"{YEARLY_STATS_PREFIX}{year}"


def parse_yearly_stats_key(key: Any) -> int | None:
    """Return the year encoded in a stats key, or None for unrelated keys."""
    key = str(key)
    if not key.startswith(YEARLY_STATS_PREFIX):
        return None
    try:
        return int(key[len(YEARLY_STATS_PREFIX):])
    except ValueError:
        return None


class StatsStore(ABC):
    """Base class for key-value stores holding nested mapping values."""

    @abstractmethod
    def get(self, key: str, default: Any = None) -> Any:
        """Return the value stored under ``key``, or ``default``."""

    @abstractmethod
    def put(self, key: str, value: dict[str, Any]) -> None:
        """Overwrite the value stored under ``key``."""

    @abstractmethod
    def keys(self) -> list[str]:
        """List every key in the store."""

    def update(
        self,
        key: str,
        mutate: Callable[[dict[str, Any]], dict[str, Any]],
    ) -> dict[str, Any]:
        """
        Read, transform and write back one key.

        The base implementation is a plain get/put. Backends that can hold a
        lock or transaction across both steps override this.

        Args:
            key: Key to update
            mutate: Receives the current value ({} when missing), returns the new one

        Returns:
            The value that was written
        """
        current = self.get(key, {})
        updated = mutate(current if isinstance(current, dict) else {})
        self.put(key, updated)
        return updated

    def close(self) -> None:
        """Release any held resources."""


class JsonFileStatsStore(StatsStore):
    """
    Store backed by a single JSON document on disk.

    Every write replaces the whole file atomically. Access from one process is
    serialized by an internal lock; the file is not safe to share between
    processes.
    """

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path).expanduser()
        self._lock = threading.RLock()

    def _read(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise StatsStoreError(f"Corrupt stats file {self.path}: {exc}") from exc
        if not isinstance(data, dict):
            raise StatsStoreError(f"Stats file {self.path} does not hold a mapping")
        return data

    def _write(self, data: dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(data, handle, indent=2, sort_keys=True, ensure_ascii=True)
                handle.write("\n")
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            return self._read().get(key, default)

    def put(self, key: str, value: dict[str, Any]) -> None:
        if not isinstance(value, dict):
            raise StatsStoreError(f"Value for {key} must be a mapping")
        with self._lock:
            data = self._read()
            data[key] = value
            self._write(data)

    def keys(self) -> list[str]:
        with self._lock:
            return list(self._read().keys())

    def update(
        self,
        key: str,
        mutate: Callable[[dict[str, Any]], dict[str, Any]],
    ) -> dict[str, Any]:
        with self._lock:
            data = self._read()
            current = data.get(key)
            updated = mutate(current if isinstance(current, dict) else {})
            data[key] = updated
            self._write(data)
            return updated


class PostgresStatsStore(StatsStore):
    """
    Store backed by the ``listening_stats.kv_store`` table.

    Values are JSONB documents keyed by (namespace, key). ``update`` locks the
    row for the duration of the transaction, so concurrent writers of the same
    key are serialized by the database.
    """

    def __init__(self, namespace: str = "listeningStats") -> None:
        self.namespace = namespace

    def get(self, key: str, default: Any = None) -> Any:
        with connection.get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    SELECT value FROM listening_stats.kv_store
                    WHERE namespace = %s AND key = %s
                    """,
                    (self.namespace, key),
                )
                row = cur.fetchone()
        return row[0] if row else default

    def put(self, key: str, value: dict[str, Any]) -> None:
        if not isinstance(value, dict):
            raise StatsStoreError(f"Value for {key} must be a mapping")

        with connection.get_connection() as conn:
            with conn.cursor() as cur:
                self._upsert(cur, key, value)
            conn.commit()

    def keys(self) -> list[str]:
        with connection.get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    "SELECT key FROM listening_stats.kv_store WHERE namespace = %s",
                    (self.namespace,),
                )
                return [row[0] for row in cur.fetchall()]

    def update(
        self,
        key: str,
        mutate: Callable[[dict[str, Any]], dict[str, Any]],
    ) -> dict[str, Any]:
        with connection.get_connection() as conn:
            with conn.transaction():
                with conn.cursor() as cur:
                    # Make sure a row exists so FOR UPDATE has something to lock
                    cur.execute(
                        """
                        INSERT INTO listening_stats.kv_store (namespace, key, value)
                        VALUES (%s, %s, '{}'::jsonb)
                        ON CONFLICT (namespace, key) DO NOTHING
                        """,
                        (self.namespace, key),
                    )
                    cur.execute(
                        """
                        SELECT value FROM listening_stats.kv_store
                        WHERE namespace = %s AND key = %s
                        FOR UPDATE
                        """,
                        (self.namespace, key),
                    )
                    row = cur.fetchone()
                    current = row[0] if row and isinstance(row[0], dict) else {}
                    updated = mutate(current)
                    self._upsert(cur, key, updated)
        return updated

    def _upsert(self, cur, key: str, value: dict[str, Any]) -> None:
        cur.execute(
            """
            INSERT INTO listening_stats.kv_store (namespace, key, value, updated_at)
            VALUES (%s, %s, %s, NOW())
            ON CONFLICT (namespace, key)
            DO UPDATE SET value = EXCLUDED.value, updated_at = NOW()
            """,
            (self.namespace, key, Jsonb(value)),
        )

    def close(self) -> None:
        connection.close_pool()


def build_stats_store(settings: dict[str, Any] | None = None) -> StatsStore:
    """Create the store configured in settings (JSON file by default)."""
    storage = app_settings.storage_settings(settings)
    if storage["backend"] == "postgres":
        logger.info(f"Using PostgreSQL stats store (namespace={storage['namespace']})")
        return PostgresStatsStore(storage["namespace"])

    logger.info(f"Using JSON stats store at {storage['path']}")
    return JsonFileStatsStore(storage["path"])
