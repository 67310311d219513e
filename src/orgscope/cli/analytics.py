"""orgscope analytics — entropy and variant counts per fingerprint name."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.table import Table

from orgscope.cli.common import console, load_settings, open_database, resolve_db
from orgscope.persist.store import AnalysisStore


def analytics_cmd(
    db: Annotated[
        Path | None,
        typer.Option("--db", help="Path to the database."),
    ] = None,
    workspace: Annotated[
        str | None,
        typer.Option("--workspace", "-w", help="Workspace id."),
    ] = None,
    type: Annotated[str | None, typer.Option("--type", "-t", help="Only show this aspect.")] = None,
    compute: Annotated[
        bool,
        typer.Option("--compute/--no-compute", help="Recompute before showing stored analytics."),
    ] = True,
) -> None:
    """Compute and show fingerprint analytics for a workspace."""
    cfg = load_settings()
    store = AnalysisStore(open_database(resolve_db(db, cfg)))
    workspace_id = workspace or cfg.workspace.id

    if compute:
        with console.status(f"Computing analytics for {workspace_id} …"):
            store.compute_analytics(workspace_id)

    usages = store.fingerprint_usage_for_type(workspace_id, type)
    if not usages:
        console.print(f"[dim]No analytics for workspace '{workspace_id}'.[/]")
        return

    registry = cfg.aspect_registry()
    table = Table(title=f"Fingerprint analytics — {workspace_id}", title_justify="left")
    table.add_column("Aspect", style="bold")
    table.add_column("Name")
    table.add_column("Repos", justify="right")
    table.add_column("Variants", justify="right")
    table.add_column("Entropy", justify="right")
    for usage in usages:
        table.add_row(
            registry.display_name(usage.type),
            usage.name,
            str(usage.count),
            str(usage.variants),
            f"{usage.entropy:.3f}",
        )
    console.print(table)
