from __future__ import annotations

import logging
import sys
from pathlib import Path

if __package__ is None:  # Allow running as a script.
    sys.path.insert(0, str(Path(__file__).resolve().parents[2]))

from listenstats.db.connection import get_connection

logger = logging.getLogger(__name__)

MIGRATIONS_DIR = Path(__file__).resolve().parent / "migrations"


def _ensure_migrations_table(conn) -> None:
    with conn.cursor() as cur:
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS schema_migrations (
                version TEXT PRIMARY KEY,
                applied_at TIMESTAMPTZ DEFAULT NOW()
            )
            """
        )
    conn.commit()


def _applied_migrations(conn) -> set[str]:
    with conn.cursor() as cur:
        cur.execute("SELECT version FROM schema_migrations")
        return {row[0] for row in cur.fetchall()}


def _apply_migration(conn, version: str, sql: str) -> None:
    with conn.cursor() as cur:
        cur.execute(sql)
        cur.execute(
            "INSERT INTO schema_migrations (version) VALUES (%s)",
            (version,),
        )
    conn.commit()


def apply_migrations() -> list[str]:
    """Apply pending migrations in file-name order and return their versions."""
    migrations = sorted(MIGRATIONS_DIR.glob("*.sql"))
    applied_now: list[str] = []

    with get_connection() as conn:
        _ensure_migrations_table(conn)
        applied = _applied_migrations(conn)

        for migration in migrations:
            version = migration.name
            if version in applied:
                continue
            logger.info(f"Applying migration {version}")
            _apply_migration(conn, version, migration.read_text(encoding="utf-8"))
            applied_now.append(version)

    return applied_now


def main() -> int:
    if not any(MIGRATIONS_DIR.glob("*.sql")):
        print("No migration files found.", file=sys.stderr)
        return 1

    for version in apply_migrations():
        print(f"Applied {version}")

    print("Migrations complete.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
