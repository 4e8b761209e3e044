"""CLI commands for stored sessions."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from zelo.config.loader import ConfigError, load_config
from zelo.errors import ZeloError
from zelo.session import ExportFormat, SessionStatus, create_session_store, export_session
from zelo.session.store import SessionStore

console = Console()
err_console = Console(stderr=True)


def _open_store(config_path: str | None) -> SessionStore:
    path = Path(config_path) if config_path else None
    try:
        config = load_config(path)
    except ConfigError as e:
        err_console.print(f"[red]Failed to load config: {e}[/red]")
        raise typer.Exit(1) from e
    return create_session_store(config.storage)


def list_sessions(status: str = "all", limit: int = 20, config_path: str | None = None) -> None:
    """Print stored sessions as a table."""
    if status not in ("active", "stopped", "all"):
        err_console.print(f"[red]Unknown status: {status}[/red] (use active, stopped or all)")
        raise typer.Exit(2)

    store = _open_store(config_path)
    status_filter = None if status == "all" else SessionStatus(status)
    try:
        sessions = store.list(status_filter, limit)
    except ZeloError as e:
        err_console.print(f"[red]{e}[/red]")
        raise typer.Exit(1) from e

    if not sessions:
        console.print("[dim]No sessions found.[/dim]")
        return

    table = Table(title="Sessions")
    table.add_column("ID", style="cyan")
    table.add_column("Status")
    table.add_column("Language")
    table.add_column("Started")
    table.add_column("Segments", justify="right")
    table.add_column("Duration", justify="right")

    for session in sessions:
        state = "[green]active[/green]" if session.is_active else "[dim]stopped[/dim]"
        duration = f"{session.duration:.1f}s" if session.duration is not None else "-"
        table.add_row(
            session.id,
            state,
            session.language,
            session.started_at.strftime("%Y-%m-%d %H:%M:%S"),
            str(session.segment_count),
            duration,
        )

    console.print(table)


def export_session_command(
    session_id: str, fmt: str = "json", config_path: str | None = None
) -> None:
    """Write a stored session to stdout in the requested format."""
    try:
        export_format = ExportFormat(fmt)
    except ValueError as e:
        err_console.print(f"[red]Unknown format: {fmt}[/red] (use json, txt or srt)")
        raise typer.Exit(2) from e

    store = _open_store(config_path)
    try:
        session = store.find(session_id)
    except ZeloError as e:
        err_console.print(f"[red]{e}[/red]")
        raise typer.Exit(1) from e
    if session is None:
        err_console.print(f"[red]Session not found: {session_id}[/red]")
        raise typer.Exit(1)

    typer.echo(export_session(session, export_format), nl=False)


def delete_session(session_id: str, config_path: str | None = None) -> None:
    """Delete a stored session."""
    store = _open_store(config_path)
    try:
        store.delete(session_id)
    except ZeloError as e:
        err_console.print(f"[red]{e}[/red]")
        raise typer.Exit(1) from e
    console.print(f"[green]Deleted session {session_id}[/green]")
