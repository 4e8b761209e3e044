"""Active-session registry bridging provider events into sessions."""

from __future__ import annotations

import asyncio
import contextlib
import logging

from zelo.errors import RepositoryError, SessionAlreadyStopped, SessionNotFound
from zelo.providers.base import ErrorCallback, ProviderPool, SegmentCallback
from zelo.session.models import Segment, Session
from zelo.session.store import SessionStore

logger = logging.getLogger(__name__)

DEFAULT_PERSIST_THRESHOLD = 10


class TranscriptionOrchestrator:
    """Owns the in-memory active sessions and wires provider callbacks into them.

    Registry state is only touched on the event loop that started the
    sessions. Provider callbacks may fire on any thread and are marshalled
    onto that loop with ``call_soon_threadsafe``, which also preserves
    their arrival order. Check-and-mark transitions (start registration,
    stop) happen synchronously before any await, so a segment can never be
    appended after a stop has taken effect.
    """

    def __init__(
        self,
        providers: ProviderPool,
        store: SessionStore,
        persist_threshold: int = DEFAULT_PERSIST_THRESHOLD,
    ):
        """
        Initialize the orchestrator.

        Args:
            providers: Pool leasing streaming providers to sessions
            store: Session store used for periodic and final persistence
            persist_threshold: Persist an active session after this many new segments
        """
        self.providers = providers
        self.store = store
        self.persist_threshold = persist_threshold

        self._start_lock = asyncio.Lock()
        self._loop: asyncio.AbstractEventLoop | None = None
        self._sessions: dict[str, Session] = {}
        self._unsaved: dict[str, int] = {}
        self._persist_tasks: dict[str, asyncio.Task] = {}
        self._save_locks: dict[str, asyncio.Lock] = {}
        self._last_errors: dict[str, str] = {}

    @property
    def provider_name(self) -> str:
        return self.providers.name

    async def start(self, language: str) -> Session:
        """Create and register a new active session.

        The provider only validates credentials here; its connection opens
        when the first audio chunk arrives.

        Raises:
            CredentialsMissing: If the provider has no API key
            ProviderCapacityExceeded: If the pool is full and sharing is disabled
        """
        async with self._start_lock:
            self._loop = asyncio.get_running_loop()
            session = Session(language=language, provider=self.providers.name)
            provider = self.providers.acquire(session.id)

            try:
                await provider.connect(
                    language,
                    on_segment=self._segment_callback(session.id),
                    on_error=self._error_callback(session.id),
                )
            except Exception:
                self.providers.release(session.id)
                raise

            self._sessions[session.id] = session
            self._unsaved[session.id] = 0

        logger.info(
            "Started session %s (language=%s, provider=%s)",
            session.id,
            language,
            session.provider,
        )
        return session

    async def stop(self, session_id: str) -> Session:
        """Stop a session, close the provider stream and persist the final state.

        Raises:
            SessionNotFound: If the session is not in the active registry
            SessionAlreadyStopped: If the session was already stopped
            RepositoryError: If the final save fails (the session stays in memory)
        """
        session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFound(session_id)
        if not session.stop():
            raise SessionAlreadyStopped(session_id)

        provider = self.providers.get(session_id)
        self.providers.release(session_id)
        if provider is not None:
            try:
                await provider.disconnect()
            except Exception as e:
                logger.error("Provider disconnect failed for session %s: %s", session_id, e)

        pending = self._persist_tasks.get(session_id)
        if pending is not None:
            with contextlib.suppress(asyncio.CancelledError):
                await pending

        try:
            await self._save(session)
        except RepositoryError as e:
            logger.error("Final save failed for session %s: %s", session_id, e)
            raise

        self._sessions.pop(session_id, None)
        self._unsaved.pop(session_id, None)
        self._last_errors.pop(session_id, None)
        self._save_locks.pop(session_id, None)

        logger.info(
            "Stopped session %s (%d segments, %.1fs)",
            session_id,
            session.segment_count,
            session.duration or 0.0,
        )
        return session

    async def send_audio(self, session_id: str, audio: bytes) -> None:
        """Forward an audio chunk to the session's provider.

        Raises:
            SessionNotFound: If the session is not active
            ProviderNotConnected: If the provider connection cannot be established
        """
        session = self._sessions.get(session_id)
        provider = self.providers.get(session_id)
        if session is None or not session.is_active or provider is None:
            raise SessionNotFound(session_id)
        await provider.send(audio)

    async def get_transcription(
        self,
        session_id: str,
        from_index: int = 0,
        limit: int = 50,
    ) -> tuple[list[Segment], int]:
        """Return a clamped page of segments and the total segment count.

        Active sessions are read from memory, others from the store.

        Raises:
            SessionNotFound: If the session is neither active nor stored
        """
        session = await self.resolve(session_id)
        return session.slice_segments(from_index, limit)

    async def resolve(self, session_id: str) -> Session:
        """Find a session in memory first, then in the store.

        Raises:
            SessionNotFound: If the session is unknown
        """
        session = self._sessions.get(session_id)
        if session is not None:
            return session
        session = await asyncio.to_thread(self.store.find, session_id)
        if session is None:
            raise SessionNotFound(session_id)
        return session

    def list_active_sessions(self) -> list[Session]:
        """Snapshot of the sessions held in memory."""
        return list(self._sessions.values())

    def get_active_session(self, session_id: str) -> Session | None:
        return self._sessions.get(session_id)

    def unsaved_count(self, session_id: str) -> int:
        """Segments appended since the last successful save."""
        return self._unsaved.get(session_id, 0)

    def last_error(self, session_id: str) -> str | None:
        """Most recent provider error reported for an active session."""
        return self._last_errors.get(session_id)

    async def persist_if_needed(self, session_id: str) -> bool:
        """Persist the session if its unsaved count reached the threshold.

        Returns:
            True if a save happened and succeeded
        """
        pending = self._persist_tasks.get(session_id)
        if pending is not None:
            with contextlib.suppress(asyncio.CancelledError):
                await pending

        session = self._sessions.get(session_id)
        if session is None or self._unsaved.get(session_id, 0) < self.persist_threshold:
            return False
        # Registered like a background save so stop() waits for it.
        return await self._schedule_persist(session_id)

    async def wait_for_persistence(self) -> None:
        """Wait until every in-flight background save has finished."""
        pending = list(self._persist_tasks.values())
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

    async def aclose(self) -> None:
        """Stop every active session, logging failures."""
        for session_id in list(self._sessions):
            session = self._sessions.get(session_id)
            if session is None or not session.is_active:
                continue
            try:
                await self.stop(session_id)
            except Exception as e:
                logger.error("Failed to stop session %s during shutdown: %s", session_id, e)
        await self.wait_for_persistence()

    def _segment_callback(self, session_id: str) -> SegmentCallback:
        def on_segment(segment: Segment) -> None:
            loop = self._loop
            if loop is None or loop.is_closed():
                return
            loop.call_soon_threadsafe(self._handle_segment, session_id, segment)

        return on_segment

    def _error_callback(self, session_id: str) -> ErrorCallback:
        def on_error(error: Exception) -> None:
            loop = self._loop
            if loop is None or loop.is_closed():
                logger.error("Provider error for session %s: %s", session_id, error)
                return
            loop.call_soon_threadsafe(self._handle_error, session_id, error)

        return on_error

    def _handle_segment(self, session_id: str, segment: Segment) -> None:
        session = self._sessions.get(session_id)
        if session is None or not session.add_segment(segment):
            return

        count = self._unsaved.get(session_id, 0) + 1
        self._unsaved[session_id] = count
        if count >= self.persist_threshold:
            self._schedule_persist(session_id)

    def _handle_error(self, session_id: str, error: Exception) -> None:
        # Errors never end the session; it stays active until stopped.
        logger.error("Provider error for session %s: %s", session_id, error)
        if session_id in self._sessions:
            self._last_errors[session_id] = str(error)

    def _schedule_persist(self, session_id: str) -> asyncio.Task:
        pending = self._persist_tasks.get(session_id)
        if pending is not None:
            return pending
        task = asyncio.create_task(self._persist(session_id))
        self._persist_tasks[session_id] = task

        def _done(finished: asyncio.Task) -> None:
            if self._persist_tasks.get(session_id) is finished:
                del self._persist_tasks[session_id]
            session = self._sessions.get(session_id)
            if (
                not finished.cancelled()
                and finished.result()
                and session is not None
                and session.is_active
                and self._unsaved.get(session_id, 0) >= self.persist_threshold
            ):
                self._schedule_persist(session_id)

        task.add_done_callback(_done)
        return task

    async def _persist(self, session_id: str) -> bool:
        session = self._sessions.get(session_id)
        if session is None:
            return False

        try:
            captured = await self._save(session)
        except RepositoryError as e:
            # Counter is left as is so the next trigger retries the backlog.
            logger.warning("Periodic save failed for session %s: %s", session_id, e)
            return False

        if session_id in self._unsaved:
            self._unsaved[session_id] = max(self._unsaved[session_id] - captured, 0)
        logger.debug("Persisted session %s (%d segments)", session_id, session.segment_count)
        return True

    async def _save(self, session: Session) -> int:
        """Save a snapshot taken on the loop, so the worker thread never reads live state.

        Saves of one session are serialized and the snapshot is taken once
        the lock is held, so a save started after ``stop`` always writes the
        stopped state and the final record is never overwritten by an older one.

        Returns:
            The unsaved count the snapshot covers
        """
        lock = self._save_locks.setdefault(session.id, asyncio.Lock())
        async with lock:
            captured = self._unsaved.get(session.id, 0)
            snapshot = Session.from_record(session.to_record())
            try:
                await asyncio.to_thread(self.store.save, snapshot)
            except RepositoryError:
                raise
            except Exception as e:
                raise RepositoryError(f"Failed to save session {session.id}: {e}") from e
        return captured
