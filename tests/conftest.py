"""Shared pytest fixtures."""

from __future__ import annotations

import pytest

from orgscope.db.connection import Database
from orgscope.db.models import AnalysisResult, Fingerprint, ProjectAnalysis, RepoRef
from orgscope.db.schema import initialize
from orgscope.persist.store import AnalysisStore


@pytest.fixture
def database(tmp_path):
    """File-based Database in tmp_path with schema initialized."""
    db = Database(tmp_path / ".orgscope.db")
    with db.session() as conn:
        initialize(conn)
    return db


@pytest.fixture
def tmp_db(database):
    """Open connection to the initialized database, closed after test."""
    conn = database.connect()
    yield conn
    conn.close()


@pytest.fixture
def store(database):
    return AnalysisStore(database)


def make_analysis(
    repo: str = "rowsdower",
    owner: str = "satellite-of-love",
    sha: str = "dead0x",
    fingerprints: list[Fingerprint] | None = None,
    workspace_id: str = "TJVC",
    url: str | None = "",
) -> AnalysisResult:
    """AnalysisResult for one repo; pass url=None for an incomplete ref."""
    if url == "":
        url = f"https://github.com/{owner}/{repo}"
    return AnalysisResult(
        workspace_id=workspace_id,
        analysis=ProjectAnalysis(
            id=RepoRef(owner=owner, repo=repo, url=url, sha=sha),
            fingerprints=list(fingerprints or []),
        ),
    )


@pytest.fixture
def analysis_factory():
    return make_analysis
