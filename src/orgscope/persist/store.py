"""Persistence façade over the fingerprint and snapshot store.

Adapts one analysis result, a list, a lazy iterable or an async iterable of
results into store calls and aggregates the outcomes into a PersistResult.
Failures are per item: a bad record never aborts the rest of the batch.
Each item is stored in its own transaction on its own short-lived
connection, so there is no cross-item atomicity.

Two writers re-analysing the same repo+commit at once race; the last replace
to commit wins. The transaction guarantees neither leaves half-written
state behind.
"""

from __future__ import annotations

import asyncio
import json
import logging
import sqlite3
from collections.abc import AsyncIterable, Iterable

from orgscope.db.connection import Database
from orgscope.db.models import (
    AnalysisResult,
    Fingerprint,
    FingerprintKind,
    FingerprintUsage,
    Ideal,
    ConcreteIdeal,
    RepoSnapshot,
    snapshot_id,
)
from orgscope.db.repository import Repository
from orgscope.persist.analytics import analyze_cohort
from orgscope.persist.result import (
    BUILD_STEP,
    PERSIST_STEP,
    PersistResult,
    combine_all,
)

logger = logging.getLogger(__name__)


class AnalysisStore:
    """Stores analysis results and answers read queries for list/detail pages.

    Every operation acquires a scoped connection from *database* and
    releases it before returning, whether or not the operation raised.
    """

    def __init__(self, database: Database) -> None:
        self._db = database

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def persist(self, results: AnalysisResult | Iterable[AnalysisResult]) -> PersistResult:
        """Persist one result or a sequence of results, consumed once in order.

        Returns:
            The combined outcome of every item.
        """
        if isinstance(results, AnalysisResult):
            results = [results]
        outcome = combine_all(self._persist_one(r) for r in results)
        _log_outcome(outcome)
        return outcome

    async def persist_async(
        self, results: AnalysisResult | Iterable[AnalysisResult] | AsyncIterable[AnalysisResult]
    ) -> PersistResult:
        """Persist results produced by an async stream.

        Store work for each item runs in a worker thread so the event loop is
        not blocked while SQLite holds its write lock.
        """
        if isinstance(results, AnalysisResult):
            results = [results]
        outcomes: list[PersistResult] = []
        if isinstance(results, AsyncIterable):
            async for result in results:
                outcomes.append(await asyncio.to_thread(self._persist_one, result))
        else:
            for result in results:
                outcomes.append(await asyncio.to_thread(self._persist_one, result))
        outcome = combine_all(outcomes)
        _log_outcome(outcome)
        return outcome

    def store_ideal(self, workspace_id: str, ideal: Ideal) -> None:
        with self._db.session() as conn:
            Repository(conn).store_ideal(workspace_id, ideal)

    def compute_analytics_for_fingerprint_kind(
        self, workspace_id: str, type: str, name: str
    ) -> FingerprintUsage:
        """Compute entropy/variants/count for one fingerprint name and store it."""
        with self._db.session() as conn:
            repo = Repository(conn)
            usage = analyze_cohort(
                type, name, repo.fingerprints_in_workspace(workspace_id, type=type, name=name)
            )
            repo.upsert_analytics(workspace_id, usage)
        return usage

    def compute_analytics(self, workspace_id: str) -> list[FingerprintUsage]:
        """Compute analytics for every fingerprint kind in the workspace.

        Slow on large workspaces: one query per kind.
        """
        usages: list[FingerprintUsage] = []
        with self._db.session() as conn:
            repo = Repository(conn)
            for kind in repo.distinct_fingerprint_kinds(workspace_id):
                usage = analyze_cohort(
                    kind.type,
                    kind.name,
                    repo.fingerprints_in_workspace(
                        workspace_id, type=kind.type, name=kind.name
                    ),
                )
                repo.upsert_analytics(workspace_id, usage)
                usages.append(usage)
        logger.info("Computed analytics for %d fingerprint kinds in %s", len(usages), workspace_id)
        return usages

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def count(self) -> int:
        """How many snapshots are stored, across all workspaces."""
        with self._db.session() as conn:
            return Repository(conn).count_snapshots()

    def load_by_id(self, snapshot_id: str) -> RepoSnapshot | None:
        with self._db.session() as conn:
            return Repository(conn).load_by_id(snapshot_id)

    def load_by_repo_ref(self, owner: str, name: str, commit_sha: str) -> RepoSnapshot | None:
        with self._db.session() as conn:
            return Repository(conn).load_by_repo_ref(owner, name, commit_sha)

    def load_in_workspace(self, workspace_id: str) -> list[RepoSnapshot]:
        with self._db.session() as conn:
            return Repository(conn).load_in_workspace(workspace_id)

    def fingerprints_in_workspace(
        self,
        workspace_id: str,
        distinct: bool = False,
        type: str | None = None,
        name: str | None = None,
    ) -> list[Fingerprint]:
        with self._db.session() as conn:
            return Repository(conn).fingerprints_in_workspace(workspace_id, distinct, type, name)

    def fingerprints_for_snapshot(self, snapshot_id: str) -> list[Fingerprint]:
        with self._db.session() as conn:
            return Repository(conn).fingerprints_for_snapshot(snapshot_id)

    def distinct_fingerprint_kinds(self, workspace_id: str) -> list[FingerprintKind]:
        with self._db.session() as conn:
            return Repository(conn).distinct_fingerprint_kinds(workspace_id)

    def fetch_ideal(self, workspace_id: str, type: str, name: str) -> ConcreteIdeal | None:
        with self._db.session() as conn:
            return Repository(conn).fetch_ideal(workspace_id, type, name)

    def fingerprint_usage_for_type(
        self, workspace_id: str, type: str | None = None
    ) -> list[FingerprintUsage]:
        with self._db.session() as conn:
            return Repository(conn).fingerprint_usage_for_type(workspace_id, type)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _persist_one(self, result: AnalysisResult) -> PersistResult:
        analysis = result.analysis
        if analysis is None:
            return PersistResult.failure("missing analysis", BUILD_STEP, "No analysis")
        ref = analysis.id
        if ref is None:
            return PersistResult.failure("missing repoRef", BUILD_STEP, "No RepoRef")
        if not ref.url or not ref.sha:
            return PersistResult.failure(
                f"missing repoUrl. Repo is named {ref.repo}",
                BUILD_STEP,
                f"Incomplete RepoRef {json.dumps(ref.to_dict())}",
            )

        sid = snapshot_id(ref)
        try:
            snapshot = RepoSnapshot(
                id=sid,
                workspace_id=result.workspace_id,
                owner=ref.owner,
                name=ref.repo,
                url=ref.url,
                commit_sha=ref.sha,
                analysis=analysis.to_json(),
                query=result.query,
                timestamp=result.timestamp.isoformat(sep=" ") if result.timestamp else None,
            )
            with self._db.session() as conn:
                Repository(conn).replace_snapshot(snapshot, analysis.fingerprints)
        except (sqlite3.Error, TypeError, ValueError) as exc:
            logger.warning("Failed to persist %s: %s", ref.url, exc)
            return PersistResult.failure(ref.url, PERSIST_STEP, str(exc))

        logger.debug("Persisted %s as %s", ref.url, sid)
        return PersistResult.success(sid)


def _log_outcome(outcome: PersistResult) -> None:
    logger.info(
        "Persisted %d of %d analyses (%d failed)",
        len(outcome.succeeded),
        outcome.attempted_count,
        len(outcome.failed),
    )
