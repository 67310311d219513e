"""Repository pattern for all orgscope database operations.

Single interface for: repo snapshots, content-addressed fingerprints, the
snapshot/fingerprint join, ideals, and fingerprint analytics.
"""

from __future__ import annotations

import json
import sqlite3
from collections.abc import Iterable

from orgscope.db.models import (
    ConcreteIdeal,
    Fingerprint,
    FingerprintKind,
    FingerprintUsage,
    Ideal,
    RepoSnapshot,
    fingerprint_id,
    fingerprint_type,
)
from orgscope.errors import UnsupportedIdealError

ALL_WORKSPACES = "*"

_SNAPSHOT_COLUMNS = (
    "id, workspace_id, provider_id, owner, name, url, commit_sha, analysis, query, timestamp"
)


class Repository:
    """Data access layer for all orgscope database entities.

    Wraps an open sqlite3.Connection. The connection is owned by the caller
    and must be closed after use; see ``Database.session()``.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        """Initialise with an open database connection.

        Args:
            conn: An open sqlite3.Connection with the schema initialised
                (see orgscope.db.schema.initialize).
        """
        self._conn = conn

    # ------------------------------------------------------------------
    # Fingerprints
    # ------------------------------------------------------------------

    def upsert_fingerprint(self, fp: Fingerprint) -> str:
        """Insert *fp* unless a row with the same composite id exists.

        Existing rows are never updated: the id is a content address, so a
        matching row already holds the same value.

        Returns:
            The fingerprint id.
        """
        fid = self._insert_fingerprint(fp)
        self._conn.commit()
        return fid

    def count_fingerprints(self) -> int:
        return self._conn.execute("SELECT COUNT(*) FROM fingerprints").fetchone()[0]

    def fingerprints_in_workspace(
        self,
        workspace_id: str,
        distinct: bool = False,
        type: str | None = None,
        name: str | None = None,
    ) -> list[Fingerprint]:
        """Return fingerprints linked through snapshots to *workspace_id*.

        By default one entry is returned per repo link, so a value shared by
        three repos appears three times. With *distinct* each
        ``(type, name, sha)`` appears once.

        Args:
            workspace_id: Workspace to search, or ``"*"`` for all workspaces.
            distinct: Deduplicate by content address.
            type: Optional aspect name filter.
            name: Optional fingerprint name filter.
        """
        where, params = _workspace_clause("rs", workspace_id)
        if type is not None:
            where += " AND f.feature_name = ?"
            params.append(type)
        if name is not None:
            where += " AND f.name = ?"
            params.append(name)
        select = "SELECT DISTINCT f.id," if distinct else "SELECT f.id,"
        rows = self._conn.execute(
            f"""
            {select} f.feature_name, f.name, f.sha, f.data
            FROM repo_fingerprints rf
            JOIN repo_snapshots rs ON rs.id = rf.repo_snapshot_id
            JOIN fingerprints f ON f.id = rf.fingerprint_id
            WHERE {where}
            ORDER BY f.feature_name, f.name, f.sha
            """,
            params,
        ).fetchall()
        return [_row_to_fingerprint(r) for r in rows]

    def distinct_fingerprint_kinds(self, workspace_id: str) -> list[FingerprintKind]:
        """Return the distinct (type, name) pairs seen in *workspace_id*."""
        where, params = _workspace_clause("rs", workspace_id)
        rows = self._conn.execute(
            f"""
            SELECT DISTINCT f.feature_name, f.name
            FROM repo_fingerprints rf
            JOIN repo_snapshots rs ON rs.id = rf.repo_snapshot_id
            JOIN fingerprints f ON f.id = rf.fingerprint_id
            WHERE {where}
            ORDER BY f.feature_name, f.name
            """,
            params,
        ).fetchall()
        return [FingerprintKind(type=r["feature_name"], name=r["name"]) for r in rows]

    # ------------------------------------------------------------------
    # Repo snapshots
    # ------------------------------------------------------------------

    def replace_snapshot(
        self, snapshot: RepoSnapshot, fingerprints: Iterable[Fingerprint]
    ) -> None:
        """Atomically replace the snapshot *snapshot.id* and its fingerprint links.

        Join rows and the old snapshot row are deleted before the new rows
        are written. Everything runs in one IMMEDIATE transaction, so readers
        see either the previous state or the new one. Any exception rolls
        the transaction back and propagates.
        """
        with self._conn:
            self._conn.execute("BEGIN IMMEDIATE")
            self._conn.execute(
                "DELETE FROM repo_fingerprints WHERE repo_snapshot_id = ?", (snapshot.id,)
            )
            self._conn.execute("DELETE FROM repo_snapshots WHERE id = ?", (snapshot.id,))
            self._conn.execute(
                """
                INSERT INTO repo_snapshots
                    (id, workspace_id, provider_id, owner, name, url, commit_sha,
                     analysis, query, timestamp)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, COALESCE(?, datetime('now')))
                """,
                (
                    snapshot.id,
                    snapshot.workspace_id,
                    snapshot.provider_id,
                    snapshot.owner,
                    snapshot.name,
                    snapshot.url,
                    snapshot.commit_sha,
                    snapshot.analysis,
                    snapshot.query,
                    snapshot.timestamp,
                ),
            )
            for fp in fingerprints:
                fid = self._insert_fingerprint(fp)
                self._conn.execute(
                    """
                    INSERT INTO repo_fingerprints (repo_snapshot_id, fingerprint_id)
                    VALUES (?, ?)
                    ON CONFLICT DO NOTHING
                    """,
                    (snapshot.id, fid),
                )

    def load_by_id(self, snapshot_id: str) -> RepoSnapshot | None:
        """Return a snapshot by id, or None if not found."""
        row = self._conn.execute(
            f"SELECT {_SNAPSHOT_COLUMNS} FROM repo_snapshots WHERE id = ?",
            (snapshot_id,),
        ).fetchone()
        return _row_to_snapshot(row) if row else None

    def load_by_repo_ref(self, owner: str, name: str, commit_sha: str) -> RepoSnapshot | None:
        """Return the snapshot of owner/name at *commit_sha*, or None if not found."""
        row = self._conn.execute(
            f"""
            SELECT {_SNAPSHOT_COLUMNS} FROM repo_snapshots
            WHERE owner = ? AND name = ? AND commit_sha = ?
            ORDER BY timestamp DESC
            LIMIT 1
            """,
            (owner, name, commit_sha),
        ).fetchone()
        return _row_to_snapshot(row) if row else None

    def load_in_workspace(self, workspace_id: str) -> list[RepoSnapshot]:
        """Return all snapshots in *workspace_id* (``"*"`` for every workspace)."""
        where, params = _workspace_clause("repo_snapshots", workspace_id)
        rows = self._conn.execute(
            f"SELECT {_SNAPSHOT_COLUMNS} FROM repo_snapshots WHERE {where} ORDER BY owner, name",
            params,
        ).fetchall()
        return [_row_to_snapshot(r) for r in rows]

    def count_snapshots(self) -> int:
        """Return the number of stored snapshots, across all workspaces."""
        return self._conn.execute("SELECT COUNT(*) FROM repo_snapshots").fetchone()[0]

    def fingerprints_for_snapshot(self, snapshot_id: str) -> list[Fingerprint]:
        rows = self._conn.execute(
            """
            SELECT f.id, f.feature_name, f.name, f.sha, f.data
            FROM repo_fingerprints rf
            JOIN fingerprints f ON f.id = rf.fingerprint_id
            WHERE rf.repo_snapshot_id = ?
            ORDER BY f.feature_name, f.name
            """,
            (snapshot_id,),
        ).fetchall()
        return [_row_to_fingerprint(r) for r in rows]

    # ------------------------------------------------------------------
    # Ideals
    # ------------------------------------------------------------------

    def store_ideal(self, workspace_id: str, ideal: Ideal) -> None:
        """Record the ideal for a fingerprint name, replacing any previous one.

        Raises:
            UnsupportedIdealError: For elimination ideals, which have no
                stored representation yet.
        """
        if not isinstance(ideal, ConcreteIdeal):
            raise UnsupportedIdealError("Elimination ideals not yet supported")
        fp = ideal.fingerprint
        self._conn.execute(
            """
            INSERT INTO ideal_fingerprints (workspace_id, id, name, feature_name, sha, data)
            VALUES (?, ?, ?, ?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
                sha = excluded.sha,
                data = excluded.data
            """,
            (
                workspace_id,
                _ideal_id(workspace_id, fingerprint_type(fp), fp.name),
                fp.name,
                fingerprint_type(fp),
                fp.sha,
                json.dumps(fp.data, allow_nan=False),
            ),
        )
        self._conn.commit()

    def fetch_ideal(self, workspace_id: str, type: str, name: str) -> ConcreteIdeal | None:
        """Return the concrete ideal for (type, name) in *workspace_id*, or None."""
        row = self._conn.execute(
            """
            SELECT id, feature_name, name, sha, data FROM ideal_fingerprints
            WHERE workspace_id = ? AND feature_name = ? AND name = ?
            """,
            (workspace_id, type, name),
        ).fetchone()
        if row is None:
            return None
        return ConcreteIdeal(
            fingerprint=_row_to_fingerprint(row),
            reason=f"Local database row {row['id']}",
        )

    # ------------------------------------------------------------------
    # Analytics
    # ------------------------------------------------------------------

    def upsert_analytics(self, workspace_id: str, usage: FingerprintUsage) -> None:
        """Insert or refresh the analytics row for (type, name, workspace)."""
        self._conn.execute(
            """
            INSERT INTO fingerprint_analytics
                (feature_name, name, workspace_id, entropy, variants, count)
            VALUES (?, ?, ?, ?, ?, ?)
            ON CONFLICT(feature_name, name, workspace_id) DO UPDATE SET
                entropy = excluded.entropy,
                variants = excluded.variants,
                count = excluded.count
            """,
            (usage.type, usage.name, workspace_id, usage.entropy, usage.variants, usage.count),
        )
        self._conn.commit()

    def fingerprint_usage_for_type(
        self, workspace_id: str, type: str | None = None
    ) -> list[FingerprintUsage]:
        """Return stored analytics, most variants first."""
        sql = """
            SELECT feature_name, name, entropy, variants, count
            FROM fingerprint_analytics WHERE workspace_id = ?
        """
        params: list[str] = [workspace_id]
        if type is not None:
            sql += " AND feature_name = ?"
            params.append(type)
        sql += " ORDER BY variants DESC, count DESC, name"
        return [
            FingerprintUsage(
                type=r["feature_name"],
                name=r["name"],
                entropy=r["entropy"],
                variants=r["variants"],
                count=r["count"],
            )
            for r in self._conn.execute(sql, params).fetchall()
        ]

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _insert_fingerprint(self, fp: Fingerprint) -> str:
        """Insert-if-absent without committing (callers own the transaction)."""
        fid = fingerprint_id(fp)
        self._conn.execute(
            """
            INSERT INTO fingerprints (id, name, feature_name, sha, data)
            VALUES (?, ?, ?, ?, ?)
            ON CONFLICT DO NOTHING
            """,
            (fid, fp.name, fingerprint_type(fp), fp.sha, json.dumps(fp.data, allow_nan=False)),
        )
        return fid


# ------------------------------------------------------------------
# SQL helpers
# ------------------------------------------------------------------


def _workspace_clause(alias: str, workspace_id: str) -> tuple[str, list[str]]:
    if workspace_id == ALL_WORKSPACES:
        return "1 = 1", []
    return f"{alias}.workspace_id = ?", [workspace_id]


def _ideal_id(workspace_id: str, type: str, name: str) -> str:
    return f"{workspace_id}_{type}_{name}"


# ------------------------------------------------------------------
# Row → model helpers
# ------------------------------------------------------------------


def _row_to_snapshot(row: sqlite3.Row) -> RepoSnapshot:
    return RepoSnapshot(
        id=row["id"],
        workspace_id=row["workspace_id"],
        provider_id=row["provider_id"],
        owner=row["owner"],
        name=row["name"],
        url=row["url"],
        commit_sha=row["commit_sha"],
        analysis=row["analysis"],
        query=row["query"],
        timestamp=row["timestamp"],
    )


def _row_to_fingerprint(row: sqlite3.Row) -> Fingerprint:
    return Fingerprint(
        type=row["feature_name"],
        name=row["name"],
        sha=row["sha"],
        data=json.loads(row["data"]),
    )
