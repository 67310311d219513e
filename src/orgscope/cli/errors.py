"""orgscope rich error messages — actionable feedback.

Every error shown to the user must contain:
  1. What went wrong (clear cause)
  2. The exact action the user should take to fix it

Usage:
    from orgscope.cli.errors import err_no_db
    console.print(err_no_db(".orgscope.db"))
    raise typer.Exit(1)
"""

from __future__ import annotations


def err_no_db(db_path: str = ".orgscope.db") -> str:
    """No database at *db_path*."""
    return (
        f"[red]Error:[/] No database found at '{db_path}'.\n"
        "  Run:  orgscope init"
    )


def err_config(message: str) -> str:
    """orgscope.yaml or the global config failed validation."""
    return (
        f"[red]Error:[/] Invalid configuration.\n"
        f"  {message}\n"
        "  Fix orgscope.yaml (or ~/.orgscope/config.yaml) and retry."
    )


def err_unreadable_input(path: str, reason: str) -> str:
    """An analysis file could not be read or decoded."""
    return (
        f"[red]Error:[/] Cannot read analyses from '{path}': {reason}\n"
        "  Expected a JSON object, a JSON array, or JSON Lines (.jsonl)."
    )


def err_tree_shape(message: str) -> str:
    """Tree depth disagrees with its declared levels, a query defect."""
    return (
        f"[red]Error:[/] The tree query produced a malformed tree: {message}\n"
        "  Re-run with --log-level DEBUG to see the query and the full tree, and report it."
    )


def err_query_failed(message: str) -> str:
    return (
        f"[red]Error:[/] Tree query failed: {message}\n"
        "  Check that the database is initialised:  orgscope init"
    )


def err_snapshot_not_found(ref: str) -> str:
    """No snapshot for an id or owner/name@sha."""
    return (
        f"[yellow]Snapshot not found:[/] '{ref}'.\n"
        "  Run:  orgscope status  to see what has been persisted."
    )


def err_ideal_not_found(type: str, name: str, workspace: str) -> str:
    return (
        f"[yellow]No ideal set[/] for {type}/{name} in workspace '{workspace}'.\n"
        f"  Run:  orgscope ideal set {type} {name} <sha> --data '<json>'"
    )


def err_invalid_json_option(option: str, reason: str) -> str:
    return (
        f"[red]Error:[/] {option} is not valid JSON: {reason}\n"
        f"  Example:  {option} '{{\"version\": \"1.2.3\"}}'"
    )
