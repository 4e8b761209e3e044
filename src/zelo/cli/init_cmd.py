"""Initialize command - write a starter configuration file."""

import os
from pathlib import Path

import typer
from rich.console import Console
from rich.panel import Panel

from zelo.config.loader import DEFAULT_CONFIG_PATH, save_config
from zelo.config.schema import StorageConfig, ZeloConfig

console = Console()


def init_command(
    config_path: str | None = None,
    force: bool = False,
    storage: str = "json",
) -> None:
    """Write a default configuration file.

    Args:
        config_path: Destination (default: ~/.zelo/zelo.yaml)
        force: Overwrite an existing file
        storage: Storage backend to configure (json, sqlite or postgres)
    """
    path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH

    if path.exists() and not force:
        console.print(f"[yellow]Config already exists at {path}[/yellow]")
        console.print("Use [bold]--force[/bold] to overwrite.")
        raise typer.Exit(1)

    if storage not in ("json", "sqlite", "postgres"):
        console.print(
            f"[red]Unknown storage backend: {storage}[/red] (use json, sqlite or postgres)"
        )
        raise typer.Exit(2)

    config = ZeloConfig(storage=StorageConfig(backend=storage))
    save_config(config, path)

    key_env = config.provider.deepgram.api_key_env
    key_state = "[green]set[/green]" if os.environ.get(key_env) else "[yellow]not set[/yellow]"
    console.print(
        Panel(
            f"Config written to [bold]{path}[/bold]\n"
            f"Storage: {storage}\n"
            f"{key_env}: {key_state}",
            title="zelo init",
        )
    )
    console.print("Run [bold]zelo serve[/bold] to start the server.")
