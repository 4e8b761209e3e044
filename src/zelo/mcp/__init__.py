"""Model Context Protocol (MCP) surface for the transcription tools.

Provides:
- Tool registry with validated arguments (:class:`TranscriptionTools`)
- JSON-RPC dispatcher used by the HTTP ``/mcp`` endpoint
- ``mcp`` library server and its stdio transport
"""

from zelo.mcp.dispatcher import MCPDispatcher
from zelo.mcp.server import create_mcp_server
from zelo.mcp.tools import TranscriptionTools

__all__ = [
    "MCPDispatcher",
    "TranscriptionTools",
    "create_mcp_server",
]
