"""Relays binary audio frames from a client websocket into an active session."""

import contextlib
import logging
import uuid

from fastapi import WebSocket, WebSocketDisconnect
from starlette.websockets import WebSocketState

from zelo.errors import SessionNotFound
from zelo.transcription.orchestrator import TranscriptionOrchestrator

logger = logging.getLogger(__name__)

# RFC 6455 close codes
CLOSE_GOING_AWAY = 1001
CLOSE_UNSUPPORTED_DATA = 1003

TEXT_PREVIEW_CHARS = 100


def is_valid_session_id(session_id: str) -> bool:
    try:
        uuid.UUID(session_id)
    except ValueError:
        return False
    return True


class AudioIngressRelay:
    """Forwards 16 kHz mono 16-bit PCM frames to the orchestrator.

    One relay serves every connection; each call to :meth:`handle` owns a
    single client socket until the client leaves or the session ends.
    """

    def __init__(self, orchestrator: TranscriptionOrchestrator):
        self.orchestrator = orchestrator

    async def handle(self, websocket: WebSocket, session_id: str) -> None:
        """Run the receive loop for one client connection."""
        await websocket.accept()

        if not is_valid_session_id(session_id):
            logger.warning("Rejecting audio connection with invalid session id: %s", session_id)
            await websocket.close(code=CLOSE_UNSUPPORTED_DATA)
            return

        logger.info("Audio client connected for session %s", session_id)
        frames = 0

        try:
            while True:
                message = await websocket.receive()
                if message["type"] == "websocket.disconnect":
                    break

                audio = message.get("bytes")
                if audio is not None:
                    if not audio:
                        continue
                    if not await self._forward(websocket, session_id, audio):
                        return
                    frames += 1
                    continue

                text = message.get("text")
                if text is not None:
                    logger.warning(
                        "Ignoring text frame on audio socket for session %s: %s",
                        session_id,
                        text[:TEXT_PREVIEW_CHARS],
                    )
        except WebSocketDisconnect:
            pass

        logger.info(
            "Audio client disconnected from session %s after %d frame(s)", session_id, frames
        )

    async def _forward(self, websocket: WebSocket, session_id: str, audio: bytes) -> bool:
        """Send one chunk; returns False once the socket has been closed."""
        try:
            await self.orchestrator.send_audio(session_id, audio)
        except SessionNotFound:
            logger.info("Session %s is not active, closing audio socket", session_id)
            if websocket.client_state is not WebSocketState.DISCONNECTED:
                with contextlib.suppress(RuntimeError):
                    await websocket.close(code=CLOSE_GOING_AWAY)
            return False
        except Exception as e:
            # Provider hiccups drop the chunk but keep the client connected.
            logger.error("Failed to forward audio for session %s: %s", session_id, e)
        return True
