"""Exception types raised by orgscope."""

from __future__ import annotations


class OrgscopeError(Exception):
    """Base class for orgscope errors."""


class TreeDepthError(OrgscopeError):
    """A query returned a tree whose depth disagrees with its declared levels.

    This is a defect in query construction, not a transient condition.
    """

    def __init__(self, actual_levels: int, declared_levels: int) -> None:
        super().__init__(
            f"Tree has {actual_levels} levels but {declared_levels} were declared"
        )
        self.actual_levels = actual_levels
        self.declared_levels = declared_levels


class UnsupportedIdealError(OrgscopeError):
    """Raised for ideal kinds the store cannot persist (elimination ideals)."""
