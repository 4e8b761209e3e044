"""Session store abstraction and the JSON-file backend."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Protocol

from pydantic import ValidationError

from zelo.errors import RepositoryError, SessionNotFound
from zelo.session.models import Session, SessionRecord, SessionStatus

logger = logging.getLogger(__name__)


class SessionStore(Protocol):
    """Durable storage for session records, one record per session id.

    Implementations are blocking; async callers run them in a worker thread.
    Concurrent calls for distinct session ids must be safe.
    """

    def save(self, session: Session) -> None:
        """Persist every field of the session, replacing any prior record.

        Raises:
            RepositoryError: On serialization or I/O failure
        """
        ...

    def find(self, session_id: str) -> Session | None:
        """Return the stored session, or None if there is no record.

        Raises:
            RepositoryError: If the record exists but cannot be read
        """
        ...

    def list(self, status: SessionStatus | None = None, limit: int = 20) -> list[Session]:
        """Return up to ``limit`` stored sessions matching the optional status."""
        ...

    def delete(self, session_id: str) -> None:
        """Remove a stored session.

        Raises:
            SessionNotFound: If there is no record for the id
        """
        ...


class JSONFileSessionStore:
    """Stores each session as ``<session_id>.json`` inside a directory."""

    def __init__(self, directory: str | Path = "./sessions"):
        """Initialize the store, creating the directory if needed.

        Args:
            directory: Directory holding the session files
        """
        self.directory = Path(directory)
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise RepositoryError(f"Failed to create {self.directory}: {e}") from e

    def _path_for(self, session_id: str) -> Path:
        # Ids are used as file names; anything with a path separator is rejected.
        if not session_id or Path(session_id).name != session_id:
            raise RepositoryError(f"Invalid session id: {session_id!r}")
        return self.directory / f"{session_id}.json"

    def save(self, session: Session) -> None:
        path = self._path_for(session.id)
        try:
            payload = json.dumps(
                session.to_record().model_dump(mode="json"), indent=2, sort_keys=True
            )
        except (ValueError, TypeError) as e:
            raise RepositoryError(f"Failed to encode session {session.id}: {e}") from e

        # Write to a sibling temp file and rename so readers never see a partial record.
        try:
            fd, tmp_name = tempfile.mkstemp(
                dir=self.directory, prefix=f".{session.id}.", suffix=".tmp"
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(payload)
                os.replace(tmp_name, path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise RepositoryError(f"Failed to write file at {path}: {e}") from e

        logger.debug("Saved session %s (%d segments)", session.id, session.segment_count)

    def _read(self, path: Path) -> Session:
        try:
            data = path.read_text(encoding="utf-8")
        except OSError as e:
            raise RepositoryError(f"Failed to read file at {path}: {e}") from e
        try:
            record = SessionRecord.model_validate_json(data)
        except ValidationError as e:
            raise RepositoryError(f"Failed to decode session at {path}: {e}") from e
        return Session.from_record(record)

    def find(self, session_id: str) -> Session | None:
        path = self._path_for(session_id)
        if not path.exists():
            return None
        return self._read(path)

    def list(self, status: SessionStatus | None = None, limit: int = 20) -> list[Session]:
        try:
            files = sorted(self.directory.glob("*.json"))
        except OSError as e:
            raise RepositoryError(f"Failed to list directory {self.directory}: {e}") from e

        sessions: list[Session] = []
        if limit <= 0:
            return sessions

        for path in files:
            try:
                session = self._read(path)
            except RepositoryError as e:
                logger.warning("Skipping unreadable session file %s: %s", path.name, e)
                continue

            if status is not None and session.status != status:
                continue

            sessions.append(session)
            if len(sessions) >= limit:
                break

        return sessions

    def delete(self, session_id: str) -> None:
        path = self._path_for(session_id)
        if not path.exists():
            raise SessionNotFound(session_id)
        try:
            path.unlink()
        except FileNotFoundError as e:
            raise SessionNotFound(session_id) from e
        except OSError as e:
            raise RepositoryError(f"Failed to delete session {session_id}: {e}") from e
