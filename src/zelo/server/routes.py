"""HTTP and websocket routes for the transcription server."""

from fastapi import APIRouter, Request, Response, WebSocket
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from zelo import __version__
from zelo.audio.relay import AudioIngressRelay
from zelo.mcp.dispatcher import MCPDispatcher
from zelo.runtime import Runtime


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
    provider: str
    activeSessions: int  # noqa: N815


def create_router(runtime: Runtime) -> APIRouter:
    """Create the API router bound to a runtime.

    Args:
        runtime: Wired runtime

    Returns:
        Configured API router
    """
    router = APIRouter()
    dispatcher = MCPDispatcher(runtime.tools)
    relay = AudioIngressRelay(runtime.orchestrator)

    @router.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        """Health check endpoint."""
        active = [s for s in runtime.orchestrator.list_active_sessions() if s.is_active]
        return HealthResponse(
            status="healthy",
            version=__version__,
            provider=runtime.orchestrator.provider_name,
            activeSessions=len(active),
        )

    @router.post("/mcp")
    async def mcp_endpoint(request: Request) -> Response:
        """JSON-RPC 2.0 endpoint for the MCP tools."""
        body = await request.body()
        response = await dispatcher.handle_raw(body)
        if response is None:
            return Response(status_code=202)
        return JSONResponse(content=response.to_wire())

    @router.websocket("/audio/{session_id}")
    async def audio_stream(websocket: WebSocket, session_id: str) -> None:
        """Binary PCM audio ingress for an active session."""
        await relay.handle(websocket, session_id)

    return router
