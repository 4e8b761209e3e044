"""Session queries spanning the active registry and the store."""

from __future__ import annotations

import asyncio
import logging

from zelo.errors import SessionAlreadyActive
from zelo.session.export import ExportFormat, export_session
from zelo.session.models import Session, SessionStatus
from zelo.session.store import SessionStore
from zelo.transcription.orchestrator import TranscriptionOrchestrator

logger = logging.getLogger(__name__)


class SessionService:
    """Lists, exports and deletes sessions whether they are live or persisted."""

    def __init__(self, orchestrator: TranscriptionOrchestrator, store: SessionStore):
        self.orchestrator = orchestrator
        self.store = store

    async def list_sessions(
        self,
        status: SessionStatus | None = None,
        limit: int = 20,
    ) -> list[Session]:
        """List in-memory sessions first, then stored ones, up to ``limit``."""
        if limit <= 0:
            return []

        sessions = [
            session
            for session in self.orchestrator.list_active_sessions()
            if status is None or session.status == status
        ]
        if len(sessions) >= limit:
            return sessions[:limit]

        seen = {session.id for session in sessions}
        # Over-fetch by the number of in-memory ids that may also be on disk.
        stored = await asyncio.to_thread(self.store.list, status, limit + len(seen))
        for session in stored:
            if session.id in seen:
                continue
            sessions.append(session)
            if len(sessions) >= limit:
                break

        return sessions

    async def get_session(self, session_id: str) -> Session:
        """
        Raises:
            SessionNotFound: If the session is neither active nor stored
        """
        return await self.orchestrator.resolve(session_id)

    async def export_session(self, session_id: str, fmt: ExportFormat | str) -> str:
        session = await self.get_session(session_id)
        return export_session(session, fmt)

    async def delete_session(self, session_id: str) -> None:
        """Delete a stored session.

        Raises:
            SessionAlreadyActive: If the session is still running
            SessionNotFound: If there is no stored record
        """
        active = self.orchestrator.get_active_session(session_id)
        if active is not None and active.is_active:
            raise SessionAlreadyActive(session_id)

        await asyncio.to_thread(self.store.delete, session_id)
        logger.info("Deleted session %s", session_id)
