"""Main CLI application using Typer."""

import sys

import typer
from rich.console import Console

from zelo import __version__

# Create Typer app
app = typer.Typer(
    name="zelo",
    help="Zelo - live audio transcription relay with MCP tools",
    no_args_is_help=True,
)

console = Console()


@app.command()
def version():
    """Show zelo version."""
    console.print(f"zelo version {__version__}")


@app.command()
def init(
    config_path: str = typer.Option(None, "--config", "-c", help="Config file to write"),
    force: bool = typer.Option(False, "--force", "-f", help="Overwrite existing config"),
    storage: str = typer.Option(
        "json", "--storage", help="Storage backend: json, sqlite or postgres"
    ),
):
    """Write a starter zelo configuration."""
    from zelo.cli.init_cmd import init_command

    init_command(config_path=config_path, force=force, storage=storage)


@app.command()
def serve(
    config_path: str = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to config file (default: ~/.zelo/zelo.yaml)",
    ),
    stdio: bool = typer.Option(
        False,
        "--stdio",
        help="Serve MCP over stdio, with the audio server in the background",
    ),
):
    """Start the transcription server."""
    from zelo.cli.serve_cmd import serve_command

    serve_command(config_path=config_path, stdio=stdio)


@app.command()
def status(
    url: str = typer.Option(
        "http://localhost:8080", "--url", "-u", help="Base URL of a running server"
    ),
):
    """Check a running server's health."""
    from zelo.cli.serve_cmd import status_command

    status_command(url=url)


# Session commands
sessions_app = typer.Typer(help="Inspect and manage stored sessions")
app.add_typer(sessions_app, name="sessions")


@sessions_app.command("list")
def sessions_list(
    status: str = typer.Option("all", "--status", "-s", help="active, stopped or all"),
    limit: int = typer.Option(20, "--limit", "-n", help="Maximum sessions to show"),
    config_path: str = typer.Option(None, "--config", "-c", help="Path to config file"),
):
    """List stored sessions."""
    from zelo.cli.sessions_cmd import list_sessions

    list_sessions(status=status, limit=limit, config_path=config_path)


@sessions_app.command("export")
def sessions_export(
    session_id: str = typer.Argument(..., help="Session id"),
    fmt: str = typer.Option("json", "--format", "-f", help="json, txt or srt"),
    config_path: str = typer.Option(None, "--config", "-c", help="Path to config file"),
):
    """Export a stored session to stdout."""
    from zelo.cli.sessions_cmd import export_session_command

    export_session_command(session_id, fmt=fmt, config_path=config_path)


@sessions_app.command("delete")
def sessions_delete(
    session_id: str = typer.Argument(..., help="Session id"),
    config_path: str = typer.Option(None, "--config", "-c", help="Path to config file"),
):
    """Delete a stored session."""
    from zelo.cli.sessions_cmd import delete_session

    delete_session(session_id, config_path=config_path)


def main():
    """Entry point for the CLI."""
    try:
        app()
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted by user[/yellow]")
        sys.exit(130)


if __name__ == "__main__":
    main()
