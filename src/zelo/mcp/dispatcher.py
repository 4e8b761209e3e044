"""JSON-RPC method dispatch for the HTTP MCP endpoint."""

import json
import logging
from typing import Any

from pydantic import ValidationError

from zelo import __version__
from zelo.errors import ZeloError
from zelo.mcp.protocol import (
    PROTOCOL_VERSION,
    SERVER_NAME,
    ErrorCode,
    MCPRequest,
    MCPResponse,
    ToolCallParams,
    create_error_response,
    create_text_content,
    error_response_for,
)
from zelo.mcp.tools import TranscriptionTools, UnknownToolError, render_result

logger = logging.getLogger(__name__)


class MCPDispatcher:
    """Routes JSON-RPC requests to the transcription tools.

    Handles ``initialize``, ``notifications/initialized``, ``tools/list``
    and ``tools/call``. Notifications produce no response.
    """

    def __init__(self, tools: TranscriptionTools):
        self.tools = tools

    async def handle_raw(self, body: str | bytes) -> MCPResponse | None:
        """Parse a request body and dispatch it; malformed JSON yields a parse error."""
        try:
            payload = json.loads(body)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            return create_error_response(None, ErrorCode.PARSE_ERROR, f"Parse error: {e}")
        return await self.handle(payload)

    async def handle(self, payload: Any) -> MCPResponse | None:
        if not isinstance(payload, dict):
            return create_error_response(
                None, ErrorCode.INVALID_REQUEST, "Request must be a JSON object"
            )

        try:
            request = MCPRequest.model_validate(payload)
        except ValidationError as e:
            return create_error_response(
                payload.get("id"), ErrorCode.INVALID_REQUEST, f"Invalid request: {e}"
            )

        if request.method == "notifications/initialized":
            logger.info("MCP client initialized")
            return None

        if request.method == "initialize":
            return MCPResponse.from_result(request.id, self.initialize_result())
        if request.method == "tools/list":
            return MCPResponse.from_result(request.id, {"tools": self.list_tools()})
        if request.method == "tools/call":
            return await self._call_tool(request)

        if request.is_notification:
            logger.debug("Ignoring notification %s", request.method)
            return None
        return create_error_response(
            request.id, ErrorCode.METHOD_NOT_FOUND, f"Method not found: {request.method}"
        )

    def initialize_result(self) -> dict[str, Any]:
        return {
            "protocolVersion": PROTOCOL_VERSION,
            "serverInfo": {"name": SERVER_NAME, "version": __version__},
            "capabilities": {"tools": {}},
        }

    def list_tools(self) -> list[dict[str, Any]]:
        return [
            {
                "name": spec.name,
                "description": spec.description,
                "inputSchema": spec.input_schema(),
            }
            for spec in self.tools.specs
        ]

    async def _call_tool(self, request: MCPRequest) -> MCPResponse:
        try:
            params = ToolCallParams.model_validate(request.params)
        except ValidationError as e:
            return create_error_response(request.id, ErrorCode.INVALID_PARAMS, str(e))

        try:
            result = await self.tools.call(params.name, params.arguments)
        except UnknownToolError as e:
            return create_error_response(request.id, ErrorCode.METHOD_NOT_FOUND, str(e))
        except ValidationError as e:
            return create_error_response(
                request.id, ErrorCode.INVALID_PARAMS, f"Invalid arguments for {params.name}: {e}"
            )
        except ZeloError as e:
            logger.warning("Tool %s failed: %s", params.name, e)
            return error_response_for(request.id, e)
        except Exception as e:
            logger.exception("Tool %s raised an unexpected error", params.name)
            return create_error_response(request.id, ErrorCode.SERVER_ERROR, str(e))

        return MCPResponse.success(request.id, [create_text_content(render_result(result))])
