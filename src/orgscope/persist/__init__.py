"""Persistence of analysis results."""

from orgscope.persist.result import (
    EMPTY_PERSIST_RESULT,
    PersistFailure,
    PersistResult,
    combine_persist_results,
)
from orgscope.persist.store import AnalysisStore

__all__ = [
    "AnalysisStore",
    "EMPTY_PERSIST_RESULT",
    "PersistFailure",
    "PersistResult",
    "combine_persist_results",
]
