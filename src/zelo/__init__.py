"""Zelo - Live speech-to-text relay with session persistence.

Zelo streams live audio to a cloud speech-to-text provider over a single
persistent websocket, accumulates the returned transcript fragments into
session records, and exposes those records through MCP tools.

Key modules:

- :mod:`zelo.session` - Segment/Session model, export formats and session stores
- :mod:`zelo.providers` - Streaming provider abstraction and the Deepgram client
- :mod:`zelo.transcription` - Session orchestrator and session service
- :mod:`zelo.audio` - Audio ingress relay for inbound websocket audio
- :mod:`zelo.mcp` - JSON-RPC protocol models, tool registry and MCP server
- :mod:`zelo.server` - FastAPI application (health, JSON-RPC, audio websocket)
"""

__version__ = "0.1.0"
