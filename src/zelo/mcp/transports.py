"""MCP transport entry points."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from mcp.server.stdio import stdio_server

if TYPE_CHECKING:
    from mcp.server import Server

logger = logging.getLogger(__name__)


async def run_stdio_server(server: Server) -> None:
    """Run MCP server over stdio, one JSON-RPC message per line.

    Args:
        server: Configured MCP Server instance
    """
    logger.info("Serving MCP over stdio")
    async with stdio_server() as (read_stream, write_stream):
        await server.run(read_stream, write_stream, server.create_initialization_options())
    logger.info("MCP stdio stream closed")
