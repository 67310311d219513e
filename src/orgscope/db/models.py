"""Domain models for the orgscope database layer."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Union

UNKNOWN_TYPE = "unknown"


@dataclass
class Fingerprint:
    """A typed, content-addressed fact about a repository.

    ``type`` is the owning aspect's name (``feature_name`` in storage) and
    ``sha`` is a hash over ``data``. Two fingerprints with the same
    ``(type, name, sha)`` are the same value.
    """

    type: str
    name: str
    sha: str
    data: Any = None


@dataclass
class RepoRef:
    owner: str | None
    repo: str | None
    url: str | None = None
    sha: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"owner": self.owner, "repo": self.repo, "url": self.url, "sha": self.sha}


@dataclass
class ProjectAnalysis:
    """Analyzer output for one repository: its reference plus fingerprints."""

    id: RepoRef | None
    fingerprints: list[Fingerprint] = field(default_factory=list)
    raw: dict[str, Any] | None = None  # original payload when parsed from the wire

    def to_json(self) -> str:
        """Serialize for the opaque ``analysis`` column."""
        if self.raw is not None:
            return json.dumps(self.raw, allow_nan=False)
        return json.dumps(
            {
                "id": self.id.to_dict() if self.id else None,
                "fingerprints": [fingerprint_to_dict(fp) for fp in self.fingerprints],
            },
            allow_nan=False,
        )


@dataclass
class AnalysisResult:
    """One analysis handed to the persistence layer."""

    workspace_id: str
    analysis: ProjectAnalysis | None
    timestamp: datetime | None = None
    query: str | None = None  # provenance of a spidered repo


@dataclass
class RepoSnapshot:
    """A stored analysis of one repository at one commit."""

    id: str
    workspace_id: str
    owner: str | None
    name: str | None
    url: str
    commit_sha: str
    analysis: str = "{}"
    query: str | None = None
    provider_id: str = "github"
    timestamp: str | None = None

    @property
    def analysis_dict(self) -> dict:
        return json.loads(self.analysis)


@dataclass
class ConcreteIdeal:
    """Target value for a fingerprint name within a workspace."""

    fingerprint: Fingerprint
    reason: str = ""


@dataclass
class EliminationIdeal:
    """Target is the absence of the fingerprint."""

    type: str
    name: str
    reason: str = ""


Ideal = Union[ConcreteIdeal, EliminationIdeal]


@dataclass(frozen=True)
class FingerprintKind:
    type: str
    name: str


@dataclass
class FingerprintUsage:
    """Spread of one fingerprint name across a workspace."""

    type: str
    name: str
    entropy: float
    variants: int
    count: int


# ------------------------------------------------------------------
# Identity helpers
# ------------------------------------------------------------------


def fingerprint_type(fp: Fingerprint) -> str:
    return fp.type or UNKNOWN_TYPE


def fingerprint_id(fp: Fingerprint) -> str:
    """Composite content-address: ``type_name_sha``."""
    return f"{fingerprint_type(fp)}_{fp.name}_{fp.sha}"


def snapshot_id(ref: RepoRef) -> str:
    """Deterministic snapshot id for a repo at a commit.

    Re-analysing the same commit yields the same id, which makes persistence
    a full replace rather than a second row. The URL is kept intact so
    distinct repositories never share an id.
    """
    return f"{ref.url}_{ref.sha}"


# ------------------------------------------------------------------
# Wire format
# ------------------------------------------------------------------


def fingerprint_to_dict(fp: Fingerprint) -> dict[str, Any]:
    return {"type": fp.type, "name": fp.name, "sha": fp.sha, "data": fp.data}


def fingerprint_from_dict(raw: dict[str, Any]) -> Fingerprint:
    return Fingerprint(
        type=raw.get("type") or UNKNOWN_TYPE,
        name=str(raw["name"]),
        sha=str(raw["sha"]),
        data=raw.get("data"),
    )


def analysis_result_from_dict(raw: dict[str, Any], workspace_id: str | None = None) -> AnalysisResult:
    """Build an AnalysisResult from its JSON form.

    Accepts camelCase keys as produced by analyzers (``workspaceId``) as well
    as snake_case. *workspace_id* is used when the payload does not name one.

    Raises:
        KeyError: If a fingerprint lacks ``name`` or ``sha``.
    """
    analysis_raw = raw.get("analysis")
    analysis: ProjectAnalysis | None = None
    if analysis_raw is not None:
        ref_raw = analysis_raw.get("id")
        ref = (
            RepoRef(
                owner=ref_raw.get("owner"),
                repo=ref_raw.get("repo"),
                url=ref_raw.get("url"),
                sha=ref_raw.get("sha"),
            )
            if ref_raw
            else None
        )
        fps_raw = analysis_raw.get("fingerprints") or []
        if isinstance(fps_raw, dict):
            fps_raw = list(fps_raw.values())
        analysis = ProjectAnalysis(
            id=ref,
            fingerprints=[fingerprint_from_dict(f) for f in fps_raw],
            raw=analysis_raw,
        )

    ts = raw.get("timestamp")
    return AnalysisResult(
        workspace_id=raw.get("workspaceId") or raw.get("workspace_id") or workspace_id or "local",
        analysis=analysis,
        timestamp=datetime.fromisoformat(ts) if ts else None,
        query=raw.get("query"),
    )
