"""Server commands."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

import httpx
from rich.console import Console

# stdout carries MCP traffic in --stdio mode.
console = Console(stderr=True)

logger = logging.getLogger(__name__)


def serve_command(config_path: str | None = None, stdio: bool = False) -> None:
    """Start the transcription server.

    Args:
        config_path: Optional path to config file
        stdio: Run the MCP stdio transport in the foreground
    """
    import uvicorn

    from zelo.config.loader import ConfigError, load_config
    from zelo.logging_setup import configure_logging
    from zelo.runtime import build_runtime
    from zelo.server.app import create_app

    path = Path(config_path) if config_path else None
    try:
        config = load_config(path)
    except ConfigError as e:
        console.print(f"[red]Failed to load config: {e}[/red]")
        raise SystemExit(1) from e

    configure_logging(config.logging)
    runtime = build_runtime(config)
    app = create_app(runtime)

    console.print(
        f"[green]Starting zelo on {config.server.host}:{config.server.port}[/green]"
    )
    console.print(f"Provider: {config.provider.name}  Storage: {config.storage.backend}")

    if not stdio:
        console.print("\nPress Ctrl+C to stop")
        uvicorn.run(
            app,
            host=config.server.host,
            port=config.server.port,
            log_level=config.logging.level.lower(),
        )
        return

    server = uvicorn.Server(
        uvicorn.Config(
            app,
            host=config.server.host,
            port=config.server.port,
            log_level=config.logging.level.lower(),
        )
    )
    asyncio.run(_serve_with_stdio(server, runtime))


async def _serve_with_stdio(server, runtime) -> None:
    from zelo.mcp.server import create_mcp_server
    from zelo.mcp.transports import run_stdio_server

    http_task = asyncio.create_task(server.serve())
    try:
        await run_stdio_server(create_mcp_server(runtime.tools))
    finally:
        logger.info("Stdio client closed, shutting down audio server")
        server.should_exit = True
        await http_task


def status_command(url: str = "http://localhost:8080") -> None:
    """Check a running server's health endpoint."""
    try:
        response = httpx.get(f"{url.rstrip('/')}/health", timeout=2.0)
        response.raise_for_status()
    except httpx.HTTPError as e:
        console.print(f"[red]Server not reachable at {url}: {e}[/red]")
        raise SystemExit(1) from e

    data = response.json()
    console.print(f"[green]Server healthy[/green] (version {data.get('version', '?')})")
    console.print(f"  Provider: {data.get('provider', '?')}")
    console.print(f"  Active sessions: {data.get('activeSessions', 0)}")
