"""SQLite storage backend for transcription sessions."""

from __future__ import annotations

import json
import sqlite3
from datetime import datetime
from pathlib import Path

from zelo.errors import RepositoryError, SessionNotFound
from zelo.session.models import Segment, Session, SessionStatus, TranscriptionWord


class SQLiteSessionStore:
    """SQLite-based storage for sessions and their segments."""

    def __init__(self, db_path: str | Path):
        """Initialize storage with database path.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._initialize_db()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    def _initialize_db(self) -> None:
        """Create tables and indexes if they don't exist."""
        try:
            with self._connect() as conn:
                conn.execute("PRAGMA journal_mode = WAL")
                conn.execute("""
                    CREATE TABLE IF NOT EXISTS sessions (
                        id TEXT PRIMARY KEY,
                        language TEXT NOT NULL,
                        provider TEXT NOT NULL,
                        status TEXT NOT NULL,
                        started_at TEXT NOT NULL,
                        stopped_at TEXT
                    )
                """)

                conn.execute("""
                    CREATE TABLE IF NOT EXISTS segments (
                        session_id TEXT NOT NULL,
                        position INTEGER NOT NULL,
                        segment_id TEXT NOT NULL,
                        text TEXT NOT NULL,
                        start_time REAL NOT NULL,
                        end_time REAL NOT NULL,
                        confidence REAL,
                        speaker INTEGER,
                        is_final INTEGER NOT NULL,
                        timestamp TEXT NOT NULL,
                        words_json TEXT NOT NULL,
                        PRIMARY KEY (session_id, position),
                        FOREIGN KEY (session_id) REFERENCES sessions(id) ON DELETE CASCADE
                    )
                """)

                conn.execute("CREATE INDEX IF NOT EXISTS idx_sessions_status ON sessions(status)")
                conn.execute(
                    "CREATE INDEX IF NOT EXISTS idx_sessions_started ON sessions(started_at)"
                )
                conn.commit()
        except sqlite3.Error as e:
            raise RepositoryError(f"Failed to initialize {self.db_path}: {e}") from e

    def save(self, session: Session) -> None:
        """Replace the session row and all of its segment rows in one transaction."""
        stopped_at = session.stopped_at.isoformat() if session.stopped_at else None
        try:
            rows = [
                (
                    session.id,
                    position,
                    segment.id,
                    segment.text,
                    segment.start_time,
                    segment.end_time,
                    segment.confidence,
                    segment.speaker,
                    int(segment.is_final),
                    segment.timestamp.isoformat(),
                    json.dumps([word.model_dump() for word in segment.words]),
                )
                for position, segment in enumerate(session.segments)
            ]
        except (TypeError, ValueError) as e:
            raise RepositoryError(f"Failed to encode session {session.id}: {e}") from e

        try:
            with self._connect() as conn:
                conn.execute(
                    """
                    INSERT INTO sessions (id, language, provider, status, started_at, stopped_at)
                    VALUES (?, ?, ?, ?, ?, ?)
                    ON CONFLICT(id) DO UPDATE SET
                        language = excluded.language,
                        provider = excluded.provider,
                        status = excluded.status,
                        started_at = excluded.started_at,
                        stopped_at = excluded.stopped_at
                """,
                    (
                        session.id,
                        session.language,
                        session.provider,
                        session.status.value,
                        session.started_at.isoformat(),
                        stopped_at,
                    ),
                )
                conn.execute("DELETE FROM segments WHERE session_id = ?", (session.id,))
                conn.executemany(
                    """
                    INSERT INTO segments
                    (session_id, position, segment_id, text, start_time, end_time,
                     confidence, speaker, is_final, timestamp, words_json)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                    rows,
                )
                conn.commit()
        except sqlite3.Error as e:
            raise RepositoryError(f"Failed to save session {session.id}: {e}") from e

    def _load_segments(self, conn: sqlite3.Connection, session_id: str) -> list[Segment]:
        cursor = conn.execute(
            "SELECT * FROM segments WHERE session_id = ? ORDER BY position ASC", (session_id,)
        )
        segments = []
        for row in cursor.fetchall():
            words = tuple(TranscriptionWord(**word) for word in json.loads(row["words_json"]))
            segments.append(
                Segment(
                    id=row["segment_id"],
                    text=row["text"],
                    words=words,
                    start_time=row["start_time"],
                    end_time=row["end_time"],
                    confidence=row["confidence"],
                    speaker=row["speaker"],
                    is_final=bool(row["is_final"]),
                    timestamp=datetime.fromisoformat(row["timestamp"]),
                )
            )
        return segments

    def _row_to_session(self, conn: sqlite3.Connection, row: sqlite3.Row) -> Session:
        try:
            return Session.restore(
                session_id=row["id"],
                language=row["language"],
                provider=row["provider"],
                status=SessionStatus(row["status"]),
                segments=self._load_segments(conn, row["id"]),
                started_at=datetime.fromisoformat(row["started_at"]),
                stopped_at=(
                    datetime.fromisoformat(row["stopped_at"]) if row["stopped_at"] else None
                ),
            )
        except (ValueError, TypeError, KeyError) as e:
            raise RepositoryError(f"Failed to decode session {row['id']}: {e}") from e

    def find(self, session_id: str) -> Session | None:
        """Get a session by ID.

        Args:
            session_id: Session identifier

        Returns:
            Session or None if not found
        """
        try:
            with self._connect() as conn:
                row = conn.execute("SELECT * FROM sessions WHERE id = ?", (session_id,)).fetchone()
                if not row:
                    return None
                return self._row_to_session(conn, row)
        except sqlite3.Error as e:
            raise RepositoryError(f"Failed to read session {session_id}: {e}") from e

    def list(self, status: SessionStatus | None = None, limit: int = 20) -> list[Session]:
        """List sessions, most recently started first.

        Args:
            status: Optional status filter
            limit: Maximum number of sessions to return

        Returns:
            List of sessions
        """
        if limit <= 0:
            return []

        query = "SELECT * FROM sessions"
        params: list = []
        if status is not None:
            query += " WHERE status = ?"
            params.append(SessionStatus(status).value)
        query += " ORDER BY started_at DESC, id ASC LIMIT ?"
        params.append(limit)

        try:
            with self._connect() as conn:
                rows = conn.execute(query, params).fetchall()
                return [self._row_to_session(conn, row) for row in rows]
        except sqlite3.Error as e:
            raise RepositoryError(f"Failed to list sessions: {e}") from e

    def delete(self, session_id: str) -> None:
        """Delete a session and all its segments.

        Args:
            session_id: Session identifier

        Raises:
            SessionNotFound: If no session exists with that id
        """
        try:
            with self._connect() as conn:
                cursor = conn.execute("DELETE FROM sessions WHERE id = ?", (session_id,))
                conn.commit()
                deleted = cursor.rowcount
        except sqlite3.Error as e:
            raise RepositoryError(f"Failed to delete session {session_id}: {e}") from e

        if deleted == 0:
            raise SessionNotFound(session_id)
