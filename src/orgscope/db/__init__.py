"""orgscope database layer."""

from orgscope.db.connection import Database
from orgscope.db.migrations import MIGRATIONS, run_migrations
from orgscope.db.repository import ALL_WORKSPACES, Repository
from orgscope.db.schema import initialize

__all__ = [
    "ALL_WORKSPACES",
    "Database",
    "Repository",
    "initialize",
    "run_migrations",
    "MIGRATIONS",
]
