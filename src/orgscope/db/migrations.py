"""Forward-only migration runner for the orgscope database schema."""

from __future__ import annotations

import sqlite3

# schema_version is the bootstrap table, created before migrations run.
_CREATE_SCHEMA_VERSION = """
CREATE TABLE IF NOT EXISTS schema_version (
    version     INTEGER NOT NULL,
    applied_at  DATETIME NOT NULL DEFAULT (datetime('now'))
)
"""

_V1_SQL = """
CREATE TABLE IF NOT EXISTS repo_snapshots (
    id              TEXT PRIMARY KEY,
    workspace_id    TEXT NOT NULL,
    provider_id     TEXT NOT NULL DEFAULT 'github',
    owner           TEXT,
    name            TEXT,
    url             TEXT NOT NULL,
    commit_sha      TEXT NOT NULL,
    analysis        TEXT NOT NULL DEFAULT '{}',
    query           TEXT,
    timestamp       DATETIME NOT NULL DEFAULT (datetime('now'))
);

CREATE INDEX IF NOT EXISTS idx_repo_snapshots_workspace
    ON repo_snapshots (workspace_id);

CREATE INDEX IF NOT EXISTS idx_repo_snapshots_ref
    ON repo_snapshots (owner, name, commit_sha);

CREATE TABLE IF NOT EXISTS fingerprints (
    id              TEXT PRIMARY KEY,
    name            TEXT NOT NULL,
    feature_name    TEXT NOT NULL,
    sha             TEXT NOT NULL,
    data            TEXT NOT NULL DEFAULT 'null'
);

CREATE INDEX IF NOT EXISTS idx_fingerprints_kind
    ON fingerprints (feature_name, name);

CREATE TABLE IF NOT EXISTS repo_fingerprints (
    repo_snapshot_id TEXT NOT NULL REFERENCES repo_snapshots(id),
    fingerprint_id   TEXT NOT NULL REFERENCES fingerprints(id),
    PRIMARY KEY (repo_snapshot_id, fingerprint_id)
);

CREATE INDEX IF NOT EXISTS idx_repo_fingerprints_fingerprint
    ON repo_fingerprints (fingerprint_id);

CREATE TABLE IF NOT EXISTS ideal_fingerprints (
    workspace_id    TEXT NOT NULL,
    id              TEXT PRIMARY KEY,
    name            TEXT NOT NULL,
    feature_name    TEXT NOT NULL,
    sha             TEXT NOT NULL,
    data            TEXT NOT NULL DEFAULT 'null'
);

CREATE TABLE IF NOT EXISTS fingerprint_analytics (
    feature_name    TEXT NOT NULL,
    name            TEXT NOT NULL,
    workspace_id    TEXT NOT NULL,
    entropy         REAL NOT NULL,
    variants        INTEGER NOT NULL,
    count           INTEGER NOT NULL,
    PRIMARY KEY (feature_name, name, workspace_id)
);
"""

# Append-only. Each entry: (version: int, sql: str).
# executescript() issues an implicit COMMIT before running.
MIGRATIONS: list[tuple[int, str]] = [
    (1, _V1_SQL),
]


def run_migrations(conn: sqlite3.Connection) -> None:
    """Apply all pending migrations in ascending version order.

    Idempotent: safe to call on a database at any version.
    """
    conn.execute(_CREATE_SCHEMA_VERSION)
    conn.commit()

    row = conn.execute("SELECT MAX(version) FROM schema_version").fetchone()
    current = row[0] if row[0] is not None else 0

    for version, sql in MIGRATIONS:
        if version > current:
            conn.executescript(sql)
            conn.execute(
                "INSERT INTO schema_version (version) VALUES (?)", (version,)
            )
            conn.commit()
