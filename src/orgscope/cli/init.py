"""orgscope init — create the database and its schema."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer

from orgscope.cli.common import console, load_settings, resolve_db
from orgscope.config import ensure_global_config
from orgscope.db.connection import Database
from orgscope.db.schema import initialize


def init_cmd(
    db: Annotated[
        Path | None,
        typer.Option("--db", help="Path to the database (default from config: .orgscope.db)."),
    ] = None,
    global_config: Annotated[
        bool,
        typer.Option("--global-config", help="Also create ~/.orgscope/config.yaml if missing."),
    ] = False,
) -> None:
    """Create the orgscope database (existing data is preserved)."""
    cfg = load_settings()
    db_path = resolve_db(db, cfg)
    existed = db_path.exists()

    db_path.parent.mkdir(parents=True, exist_ok=True)
    with Database(db_path).session() as conn:
        initialize(conn)

    if existed:
        console.print(
            f"[yellow]⚠[/]  {db_path} already exists — schema is up to date.", soft_wrap=True
        )
    else:
        console.print(f"  [green]✓[/] {db_path}")

    if global_config:
        cfg_path = ensure_global_config()
        console.print(f"  [green]✓[/] {cfg_path} (global config)")

    console.print("\nNext steps:")
    console.print("  1. orgscope persist analyses.jsonl        (store analysis results)")
    console.print("  2. orgscope tree <type> <name>            (sunburst JSON for one fingerprint)")
    console.print("  3. orgscope analytics                     (entropy per fingerprint)")
