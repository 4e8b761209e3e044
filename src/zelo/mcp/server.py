"""MCP server exposing the transcription tools through the ``mcp`` library."""

from __future__ import annotations

import logging
from typing import Any

from mcp.server import Server
from mcp.types import TextContent
from mcp.types import Tool as MCPTool

from zelo.errors import ZeloError
from zelo.mcp.protocol import SERVER_NAME
from zelo.mcp.tools import TranscriptionTools, render_result

logger = logging.getLogger(__name__)


def create_mcp_server(tools: TranscriptionTools, server_name: str = SERVER_NAME) -> Server:
    """Create an MCP Server that exposes the transcription tools.

    Args:
        tools: Tool registry bound to the running orchestrator
        server_name: Name for the MCP server

    Returns:
        Configured MCP Server instance
    """
    server = Server(server_name)

    @server.list_tools()
    async def list_tools() -> list[MCPTool]:
        """Return all registered tools in MCP format."""
        return [
            MCPTool(
                name=spec.name,
                description=spec.description,
                inputSchema=spec.input_schema(),
            )
            for spec in tools.specs
        ]

    @server.call_tool()
    async def call_tool(name: str, arguments: dict[str, Any] | None) -> list[TextContent]:
        """Execute a tool and return its JSON result.

        Failures propagate so the library reports them as an error result.
        """
        try:
            result = await tools.call(name, arguments or {})
        except ZeloError as e:
            logger.warning("Tool %s failed (code %d): %s", name, e.code, e)
            raise
        except Exception as e:
            logger.error("Tool %s failed: %s", name, e)
            raise
        return [TextContent(type="text", text=render_result(result))]

    return server
