"""Database schema initialization."""

from __future__ import annotations

import sqlite3

TABLES: tuple[str, ...] = (
    "repo_snapshots",
    "fingerprints",
    "repo_fingerprints",
    "ideal_fingerprints",
    "fingerprint_analytics",
)

CURRENT_VERSION = 1


def initialize(conn: sqlite3.Connection) -> None:
    """Initialize the database schema via the migration runner (idempotent)."""
    from orgscope.db.migrations import run_migrations

    run_migrations(conn)
