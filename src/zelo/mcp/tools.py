"""Transcription tools exposed over MCP.

Each tool validates its arguments with a pydantic model, calls the core
and returns a JSON-serializable dict. Argument names follow the wire
format (camelCase); the core keeps its own signatures.
"""

from __future__ import annotations

import json
import logging
import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from zelo.config.schema import ZeloConfig
from zelo.errors import ProviderNotConfigured
from zelo.session.export import ExportFormat
from zelo.session.models import Segment, Session, SessionStatus
from zelo.transcription.orchestrator import TranscriptionOrchestrator
from zelo.transcription.sessions import SessionService

logger = logging.getLogger(__name__)

RECENT_SEGMENTS = 5


class UnknownToolError(LookupError):
    """No tool is registered under the requested name."""

    def __init__(self, name: str):
        super().__init__(f"Unknown tool: {name}")
        self.name = name


class _ToolArgs(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class StartTranscriptionArgs(_ToolArgs):
    language: str = Field(
        default="pt-BR", description="Language code for transcription (e.g. pt-BR, en-US)"
    )
    provider: str = Field(default="deepgram", description="Transcription provider to use")


class SessionIdArgs(_ToolArgs):
    session_id: uuid.UUID = Field(..., alias="sessionId", description="Session id (UUID)")


class GetTranscriptionArgs(SessionIdArgs):
    from_segment: int = Field(
        default=0, alias="fromSegment", description="Index of the first segment to return"
    )
    limit: int = Field(default=50, description="Maximum number of segments to return", ge=0)


class ListSessionsArgs(_ToolArgs):
    status: Literal["active", "stopped", "all"] = Field(
        default="all", description="Filter sessions by status"
    )
    limit: int = Field(default=20, description="Maximum number of sessions to return", ge=0)


class ExportSessionArgs(SessionIdArgs):
    format: ExportFormat = Field(default=ExportFormat.JSON, description="Export format")


@dataclass(frozen=True)
class ToolSpec:
    """A registered tool: its wire name, description and argument model."""

    name: str
    description: str
    args_model: type[_ToolArgs]
    handler: Callable[[Any], Awaitable[dict[str, Any]]]

    def input_schema(self) -> dict[str, Any]:
        return self.args_model.model_json_schema(by_alias=True)


def segment_to_dict(segment: Segment) -> dict[str, Any]:
    return {
        "id": segment.id,
        "text": segment.text,
        "startTime": segment.start_time,
        "endTime": segment.end_time,
        "confidence": segment.confidence or 0,
        "speaker": segment.speaker or 0,
        "isFinal": segment.is_final,
    }


def session_summary(session: Session) -> dict[str, Any]:
    summary: dict[str, Any] = {
        "sessionId": session.id,
        "status": session.status.value,
        "language": session.language,
        "provider": session.provider,
        "startedAt": session.started_at.isoformat(),
        "segmentCount": session.segment_count,
    }
    if session.stopped_at is not None:
        summary["stoppedAt"] = session.stopped_at.isoformat()
    if session.duration is not None:
        summary["duration"] = session.duration
    return summary


def render_result(result: dict[str, Any]) -> str:
    """Tool results travel as sorted-key JSON text."""
    return json.dumps(result, sort_keys=True, ensure_ascii=False)


class TranscriptionTools:
    """Registry of the transcription tools bound to one runtime."""

    def __init__(
        self,
        orchestrator: TranscriptionOrchestrator,
        sessions: SessionService,
        config: ZeloConfig | None = None,
    ):
        self.orchestrator = orchestrator
        self.sessions = sessions
        self.config = config or ZeloConfig()
        self._tools: dict[str, ToolSpec] = {}

        self._register(
            "start_transcription",
            "Start a new real-time transcription session",
            StartTranscriptionArgs,
            self.start_transcription,
        )
        self._register(
            "stop_transcription",
            "Stop an active transcription session and persist it",
            SessionIdArgs,
            self.stop_transcription,
        )
        self._register(
            "get_transcription",
            "Get transcript segments of a session, paginated",
            GetTranscriptionArgs,
            self.get_transcription,
        )
        self._register(
            "list_sessions",
            "List transcription sessions, active first",
            ListSessionsArgs,
            self.list_sessions,
        )
        self._register(
            "get_session_status",
            "Get details of a session with its most recent segments",
            SessionIdArgs,
            self.get_session_status,
        )
        self._register(
            "export_session",
            "Export a session as JSON, plain text or SubRip subtitles",
            ExportSessionArgs,
            self.export_session,
        )

    def _register(
        self,
        name: str,
        description: str,
        args_model: type[_ToolArgs],
        handler: Callable[[Any], Awaitable[dict[str, Any]]],
    ) -> None:
        self._tools[name] = ToolSpec(name, description, args_model, handler)

    @property
    def specs(self) -> list[ToolSpec]:
        return list(self._tools.values())

    def get(self, name: str) -> ToolSpec:
        try:
            return self._tools[name]
        except KeyError:
            raise UnknownToolError(name) from None

    async def call(self, name: str, arguments: dict[str, Any] | None = None) -> dict[str, Any]:
        """Validate arguments and run a tool.

        Raises:
            UnknownToolError: If no tool has that name
            pydantic.ValidationError: If the arguments are invalid
            ZeloError: Whatever the core raises
        """
        spec = self.get(name)
        args = spec.args_model.model_validate(arguments or {})
        logger.debug("Calling tool %s", name)
        return await spec.handler(args)

    def audio_endpoint(self, session_id: str) -> str:
        server = self.config.server
        return f"ws://{server.public_host}:{server.port}/audio/{session_id}"

    async def start_transcription(self, args: StartTranscriptionArgs) -> dict[str, Any]:
        if args.provider != self.orchestrator.provider_name:
            raise ProviderNotConfigured(args.provider)

        language = args.language
        if "language" not in args.model_fields_set:
            language = self.config.transcription.default_language

        session = await self.orchestrator.start(language)
        return {
            "sessionId": session.id,
            "status": session.status.value,
            "language": session.language,
            "provider": session.provider,
            "wsEndpoint": self.audio_endpoint(session.id),
        }

    async def stop_transcription(self, args: SessionIdArgs) -> dict[str, Any]:
        session = await self.orchestrator.stop(str(args.session_id))
        return {
            "sessionId": session.id,
            "status": session.status.value,
            "duration": session.duration or 0,
            "segmentCount": session.segment_count,
            "language": session.language,
            "provider": session.provider,
        }

    async def get_transcription(self, args: GetTranscriptionArgs) -> dict[str, Any]:
        session_id = str(args.session_id)
        limit = args.limit
        if "limit" not in args.model_fields_set:
            limit = self.config.transcription.default_page_size

        segments, total = await self.orchestrator.get_transcription(
            session_id, args.from_segment, limit
        )
        return {
            "sessionId": session_id,
            "segments": [segment_to_dict(segment) for segment in segments],
            "totalSegments": total,
            "fromSegment": args.from_segment,
            "returnedCount": len(segments),
        }

    async def list_sessions(self, args: ListSessionsArgs) -> dict[str, Any]:
        status = None if args.status == "all" else SessionStatus(args.status)
        limit = args.limit
        if "limit" not in args.model_fields_set:
            limit = self.config.transcription.default_list_limit

        sessions = await self.sessions.list_sessions(status=status, limit=limit)
        return {
            "sessions": [session_summary(session) for session in sessions],
            "count": len(sessions),
        }

    async def get_session_status(self, args: SessionIdArgs) -> dict[str, Any]:
        session = await self.sessions.get_session(str(args.session_id))
        result = session_summary(session)
        result["recentSegments"] = [
            segment_to_dict(segment) for segment in session.segments[-RECENT_SEGMENTS:]
        ]
        last_error = self.orchestrator.last_error(session.id)
        if last_error:
            result["lastError"] = last_error
        return result

    async def export_session(self, args: ExportSessionArgs) -> dict[str, Any]:
        session_id = str(args.session_id)
        data = await self.sessions.export_session(session_id, args.format)
        return {"sessionId": session_id, "format": args.format.value, "data": data}
