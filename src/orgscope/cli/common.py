"""Helpers shared by the orgscope commands."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console

from orgscope.cli.errors import err_config, err_no_db
from orgscope.config import ConfigError, OrgscopeConfig, load_config
from orgscope.db.connection import Database
from orgscope.db.schema import initialize

console = Console()


def load_settings() -> OrgscopeConfig:
    """Load config, turning validation failures into a clean exit."""
    try:
        return load_config()
    except ConfigError as exc:
        console.print(err_config(str(exc)))
        raise typer.Exit(1) from exc


def resolve_db(db: Path | None, cfg: OrgscopeConfig) -> Path:
    return db if db is not None else Path(cfg.database.path)


def open_database(db_path: Path) -> Database:
    """Return a Database for an existing file, with the schema brought up to date."""
    if not db_path.exists():
        console.print(err_no_db(str(db_path)))
        raise typer.Exit(1)
    database = Database(db_path)
    with database.session() as conn:
        initialize(conn)
    return database
