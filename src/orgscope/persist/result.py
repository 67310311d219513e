"""Outcome of persisting analysis results."""

from __future__ import annotations

from dataclasses import dataclass, field
from functools import reduce
from collections.abc import Iterable

BUILD_STEP = "build object to persist"
PERSIST_STEP = "persist in DB"


@dataclass(frozen=True)
class PersistFailure:
    """One analysis that could not be stored.

    Attributes:
        repo_url: URL of the repository, or a description when it is missing.
        while_trying_to: The step that failed.
        message: The underlying reason.
    """

    repo_url: str
    while_trying_to: str
    message: str


@dataclass(frozen=True)
class PersistResult:
    attempted_count: int = 0
    succeeded: tuple[str, ...] = field(default_factory=tuple)
    failed: tuple[PersistFailure, ...] = field(default_factory=tuple)

    @classmethod
    def success(cls, snapshot_id: str) -> PersistResult:
        return cls(attempted_count=1, succeeded=(snapshot_id,))

    @classmethod
    def failure(cls, repo_url: str, while_trying_to: str, message: str) -> PersistResult:
        return cls(
            attempted_count=1,
            failed=(PersistFailure(repo_url, while_trying_to, message),),
        )

    def __add__(self, other: PersistResult) -> PersistResult:
        return combine_persist_results(self, other)


EMPTY_PERSIST_RESULT = PersistResult()


def combine_persist_results(r1: PersistResult, r2: PersistResult) -> PersistResult:
    """Concatenate outcomes; associative, with EMPTY_PERSIST_RESULT as identity."""
    return PersistResult(
        attempted_count=r1.attempted_count + r2.attempted_count,
        succeeded=r1.succeeded + r2.succeeded,
        failed=r1.failed + r2.failed,
    )


def combine_all(results: Iterable[PersistResult]) -> PersistResult:
    return reduce(combine_persist_results, results, EMPTY_PERSIST_RESULT)
