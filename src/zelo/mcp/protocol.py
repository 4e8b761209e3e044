"""JSON-RPC 2.0 models for the MCP tool surface."""

from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from zelo.errors import ZeloError

PROTOCOL_VERSION = "2024-11-05"
SERVER_NAME = "zelo-transcription"


class ErrorCode(int, Enum):
    """JSON-RPC 2.0 and transcription-specific error codes."""

    # Standard JSON-RPC 2.0 errors
    PARSE_ERROR = -32700
    INVALID_REQUEST = -32600
    METHOD_NOT_FOUND = -32601
    INVALID_PARAMS = -32602
    INTERNAL_ERROR = -32603

    # Server errors (-32000 to -32099)
    SERVER_ERROR = -32000
    SESSION_NOT_FOUND = -32001
    SESSION_ALREADY_STOPPED = -32002
    PROVIDER_NOT_CONFIGURED = -32003
    CREDENTIALS_MISSING = -32004


class ContentItem(BaseModel):
    """Content item in a tool result."""

    type: Literal["text"] = "text"
    text: str


class ToolCallParams(BaseModel):
    """Parameters for tools/call method."""

    name: str = Field(..., description="Tool name to execute")
    arguments: dict[str, Any] = Field(default_factory=dict, description="Tool arguments")


class MCPRequest(BaseModel):
    """JSON-RPC 2.0 request. Notifications carry no id."""

    jsonrpc: Literal["2.0"] = "2.0"
    id: str | int | None = Field(None, description="Request identifier")
    method: str = Field(..., description="Method name (e.g., 'tools/call')")
    params: dict[str, Any] = Field(default_factory=dict, description="Method parameters")

    @property
    def is_notification(self) -> bool:
        return self.id is None

    def get_tool_params(self) -> ToolCallParams | None:
        """Extract tool call parameters if method is 'tools/call'."""
        if self.method == "tools/call":
            return ToolCallParams(**self.params)
        return None


class MCPResult(BaseModel):
    """Result payload of a tools/call response."""

    # Plain result objects (initialize, tools/list) must not validate as this model.
    model_config = ConfigDict(extra="forbid")

    content: list[ContentItem] = Field(default_factory=list, description="Response content items")
    isError: bool = Field(False, description="Whether this is an error")  # noqa: N815


class MCPError(BaseModel):
    """JSON-RPC 2.0 error object."""

    code: int = Field(..., description="Error code")
    message: str = Field(..., description="Error message")
    data: dict[str, Any] | None = Field(None, description="Additional error data")


class MCPResponse(BaseModel):
    """JSON-RPC 2.0 response."""

    jsonrpc: Literal["2.0"] = "2.0"
    id: str | int | None = Field(None, description="Request identifier (matches request)")
    result: MCPResult | dict[str, Any] | None = None
    error: MCPError | None = None

    def is_success(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, request_id: str | int | None, content: list[ContentItem]) -> "MCPResponse":
        """Create a tool result response."""
        return cls(id=request_id, result=MCPResult(content=content))

    @classmethod
    def from_result(cls, request_id: str | int | None, result: dict[str, Any]) -> "MCPResponse":
        """Create a response carrying a plain result object (initialize, tools/list)."""
        return cls(id=request_id, result=result)

    @classmethod
    def from_error(
        cls,
        request_id: str | int | None,
        code: int,
        message: str,
        error_type: str | None = None,
    ) -> "MCPResponse":
        """Create an error response."""
        data = {"type": error_type} if error_type else None
        return cls(id=request_id, error=MCPError(code=code, message=message, data=data))

    def to_wire(self) -> dict[str, Any]:
        """Serialize for transport, leaving out whichever of result/error is unset."""
        return self.model_dump(mode="json", exclude_none=True)


def create_text_content(text: str) -> ContentItem:
    """Helper to create text content item."""
    return ContentItem(text=text)


def create_error_response(
    request_id: str | int | None,
    code: ErrorCode,
    message: str,
) -> MCPResponse:
    """Helper to create error response with ErrorCode enum."""
    return MCPResponse.from_error(
        request_id=request_id,
        code=code.value,
        message=message,
        error_type=code.name,
    )


def error_response_for(request_id: str | int | None, error: ZeloError) -> MCPResponse:
    """Map a domain error to a JSON-RPC error response using its code."""
    return MCPResponse.from_error(
        request_id=request_id,
        code=error.code,
        message=error.message,
        error_type=type(error).__name__,
    )
