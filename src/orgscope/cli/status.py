"""orgscope status and show commands.

status: database overview, counts per workspace and configured aspects.
show:   one snapshot and its fingerprints, by id or by owner/name/sha.
"""

from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Annotated

import typer
from rich.panel import Panel
from rich.table import Table

from orgscope.cli.common import console, load_settings, open_database, resolve_db
from orgscope.cli.errors import err_snapshot_not_found
from orgscope.config import OrgscopeConfig
from orgscope.db.repository import Repository
from orgscope.persist.store import AnalysisStore


def status_cmd(
    db: Annotated[
        Path | None,
        typer.Option("--db", help="Path to the database."),
    ] = None,
    workspace: Annotated[
        str | None,
        typer.Option("--workspace", "-w", help="Workspace id, or '*' for all workspaces."),
    ] = None,
) -> None:
    """Show database and workspace overview."""
    cfg = load_settings()
    db_path = resolve_db(db, cfg)
    workspace_id = workspace or cfg.workspace.id

    if not db_path.exists():
        console.print(
            Panel(
                "[yellow]No database found.[/]\n"
                "  Run:  orgscope init",
                title="[bold]Database[/]",
                expand=False,
            )
        )
        return

    database = open_database(db_path)
    store = AnalysisStore(database)
    with database.session() as conn:
        fingerprint_count = Repository(conn).count_fingerprints()
        last_persist = _last_persist(conn)

    size_mb = db_path.stat().st_size / (1024 * 1024)
    lines = [
        f"Database:      {db_path} ({size_mb:.1f} MB)",
        f"Snapshots:     [bold]{store.count()}[/]  (all workspaces)",
        f"Fingerprints:  [bold]{fingerprint_count:,}[/]  (distinct values)",
    ]
    if last_persist:
        lines.append(f"Last persist:  [dim]{last_persist[:16]}[/]")
    console.print(Panel("\n".join(lines), title="[bold]Database[/]", expand=False))

    repos = store.load_in_workspace(workspace_id)
    kinds = store.distinct_fingerprint_kinds(workspace_id)
    console.print(
        Panel(
            f"Repositories:       [bold]{len(repos)}[/]\n"
            f"Fingerprint kinds:  [bold]{len(kinds)}[/]",
            title=f"[bold]Workspace[/] [dim]{workspace_id}[/]",
            expand=False,
        )
    )

    _show_aspects_panel(cfg)


def show_cmd(
    snapshot: Annotated[
        str,
        typer.Argument(help="Snapshot id, or owner/name@sha."),
    ],
    db: Annotated[
        Path | None,
        typer.Option("--db", help="Path to the database."),
    ] = None,
) -> None:
    """Show one stored snapshot and its fingerprints."""
    cfg = load_settings()
    store = AnalysisStore(open_database(resolve_db(db, cfg)))

    found = None
    if "@" in snapshot and "/" in snapshot.split("@", 1)[0]:
        repo_part, sha = snapshot.split("@", 1)
        owner, name = repo_part.split("/", 1)
        found = store.load_by_repo_ref(owner, name, sha)
    if found is None:
        found = store.load_by_id(snapshot)
    if found is None:
        console.print(err_snapshot_not_found(snapshot))
        raise typer.Exit(1)

    console.print(
        Panel(
            f"Id:         {found.id}\n"
            f"Workspace:  {found.workspace_id}\n"
            f"URL:        {found.url}\n"
            f"Commit:     {found.commit_sha}\n"
            f"Stored:     [dim]{found.timestamp}[/]"
            + (f"\nQuery:      {found.query}" if found.query else ""),
            title=f"[bold]{found.owner}/{found.name}[/]",
            expand=False,
        )
    )

    registry = cfg.aspect_registry()
    table = Table(show_header=True, header_style="bold")
    table.add_column("Aspect")
    table.add_column("Name")
    table.add_column("Value")
    for fp in store.fingerprints_for_snapshot(found.id):
        table.add_row(registry.display_name(fp.type), fp.name, registry.display_value(fp))
    console.print(table)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _show_aspects_panel(cfg: OrgscopeConfig) -> None:
    aspects = cfg.aspect_registry().aspects
    if not aspects:
        console.print(
            Panel(
                "[dim]No aspects configured.[/]\n"
                "  Declare them under aspects: in orgscope.yaml",
                title="[bold]Aspects[/]",
                expand=False,
            )
        )
        return

    table = Table(show_header=False, box=None, padding=(0, 1))
    table.add_column("Name", style="bold")
    table.add_column("Display name")
    table.add_column("Pattern", style="dim")
    for aspect in aspects:
        table.add_row(aspect.name, aspect.display_name, aspect.name_pattern or "")
    console.print(Panel(table, title="[bold]Aspects[/]", expand=False))


def _last_persist(conn: sqlite3.Connection) -> str | None:
    row = conn.execute("SELECT MAX(timestamp) FROM repo_snapshots").fetchone()
    return row[0] if row and row[0] else None
