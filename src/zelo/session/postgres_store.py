"""PostgreSQL storage backend for transcription sessions, on SQLAlchemy Core."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    create_engine,
    delete,
    insert,
    select,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.engine import Connection, Engine, Row
from sqlalchemy.exc import SQLAlchemyError

from zelo.errors import RepositoryError, SessionNotFound
from zelo.session.models import Segment, Session, SessionStatus, TranscriptionWord

logger = logging.getLogger(__name__)

metadata = MetaData()

sessions_table = Table(
    "sessions",
    metadata,
    Column("id", String(64), primary_key=True),
    Column("language", String(32), nullable=False),
    Column("provider", String(64), nullable=False),
    Column("status", String(16), nullable=False),
    Column("started_at", DateTime(timezone=True), nullable=False),
    Column("stopped_at", DateTime(timezone=True)),
    Index("idx_sessions_status", "status"),
    Index("idx_sessions_started", "started_at"),
)

segments_table = Table(
    "segments",
    metadata,
    Column(
        "session_id",
        String(64),
        ForeignKey("sessions.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column("position", Integer, primary_key=True),
    Column("segment_id", String(128), nullable=False),
    Column("text", Text, nullable=False),
    Column("start_time", Float, nullable=False),
    Column("end_time", Float, nullable=False),
    Column("confidence", Float),
    Column("speaker", Integer),
    Column("is_final", Boolean, nullable=False),
    Column("timestamp", DateTime(timezone=True), nullable=False),
    Column("words", JSON().with_variant(JSONB(), "postgresql"), nullable=False),
)


def _as_utc(value: datetime) -> datetime:
    # Backends without a zone-aware column type hand back naive UTC values.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class PostgresSessionStore:
    """PostgreSQL-based storage for sessions and their segments.

    Uses the same ``sessions``/``segments`` layout as the SQLite store.
    Any SQLAlchemy URL works; production deployments use
    ``postgresql+psycopg://``.
    """

    def __init__(self, dsn: str, engine: Engine | None = None):
        """Initialize storage and create the tables if needed.

        Args:
            dsn: SQLAlchemy database URL
            engine: Pre-built engine to use instead of creating one from ``dsn``
        """
        self.dsn = dsn
        try:
            self.engine = engine or create_engine(dsn, pool_pre_ping=True)
            metadata.create_all(self.engine)
        except SQLAlchemyError as e:
            raise RepositoryError(f"Failed to initialize database: {e}") from e

    def save(self, session: Session) -> None:
        """Replace the session row and all of its segment rows in one transaction."""
        try:
            rows = [
                {
                    "session_id": session.id,
                    "position": position,
                    "segment_id": segment.id,
                    "text": segment.text,
                    "start_time": segment.start_time,
                    "end_time": segment.end_time,
                    "confidence": segment.confidence,
                    "speaker": segment.speaker,
                    "is_final": segment.is_final,
                    "timestamp": segment.timestamp,
                    "words": [word.model_dump() for word in segment.words],
                }
                for position, segment in enumerate(session.segments)
            ]
        except (TypeError, ValueError) as e:
            raise RepositoryError(f"Failed to encode session {session.id}: {e}") from e

        try:
            with self.engine.begin() as conn:
                conn.execute(
                    delete(segments_table).where(segments_table.c.session_id == session.id)
                )
                conn.execute(delete(sessions_table).where(sessions_table.c.id == session.id))
                conn.execute(
                    insert(sessions_table).values(
                        id=session.id,
                        language=session.language,
                        provider=session.provider,
                        status=session.status.value,
                        started_at=session.started_at,
                        stopped_at=session.stopped_at,
                    )
                )
                if rows:
                    conn.execute(insert(segments_table), rows)
        except SQLAlchemyError as e:
            raise RepositoryError(f"Failed to save session {session.id}: {e}") from e

    def _load_segments(self, conn: Connection, session_id: str) -> list[Segment]:
        result = conn.execute(
            select(segments_table)
            .where(segments_table.c.session_id == session_id)
            .order_by(segments_table.c.position)
        )
        return [
            Segment(
                id=row.segment_id,
                text=row.text,
                words=tuple(TranscriptionWord(**word) for word in row.words),
                start_time=row.start_time,
                end_time=row.end_time,
                confidence=row.confidence,
                speaker=row.speaker,
                is_final=row.is_final,
                timestamp=_as_utc(row.timestamp),
            )
            for row in result
        ]

    def _row_to_session(self, conn: Connection, row: Row) -> Session:
        try:
            return Session.restore(
                session_id=row.id,
                language=row.language,
                provider=row.provider,
                status=SessionStatus(row.status),
                segments=self._load_segments(conn, row.id),
                started_at=_as_utc(row.started_at),
                stopped_at=_as_utc(row.stopped_at) if row.stopped_at else None,
            )
        except (ValueError, TypeError, KeyError) as e:
            raise RepositoryError(f"Failed to decode session {row.id}: {e}") from e

    def find(self, session_id: str) -> Session | None:
        try:
            with self.engine.connect() as conn:
                row = conn.execute(
                    select(sessions_table).where(sessions_table.c.id == session_id)
                ).first()
                if row is None:
                    return None
                return self._row_to_session(conn, row)
        except SQLAlchemyError as e:
            raise RepositoryError(f"Failed to read session {session_id}: {e}") from e

    def list(self, status: SessionStatus | None = None, limit: int = 20) -> list[Session]:
        """List sessions, most recently started first."""
        if limit <= 0:
            return []

        query = select(sessions_table)
        if status is not None:
            query = query.where(sessions_table.c.status == SessionStatus(status).value)
        query = query.order_by(sessions_table.c.started_at.desc(), sessions_table.c.id).limit(
            limit
        )

        try:
            with self.engine.connect() as conn:
                rows = conn.execute(query).all()
                return [self._row_to_session(conn, row) for row in rows]
        except SQLAlchemyError as e:
            raise RepositoryError(f"Failed to list sessions: {e}") from e

    def delete(self, session_id: str) -> None:
        """Delete a session and all its segments.

        Raises:
            SessionNotFound: If no session exists with that id
        """
        try:
            with self.engine.begin() as conn:
                conn.execute(
                    delete(segments_table).where(segments_table.c.session_id == session_id)
                )
                deleted = conn.execute(
                    delete(sessions_table).where(sessions_table.c.id == session_id)
                ).rowcount
        except SQLAlchemyError as e:
            raise RepositoryError(f"Failed to delete session {session_id}: {e}") from e

        if deleted == 0:
            raise SessionNotFound(session_id)

    def close(self) -> None:
        """Dispose of the engine's connection pool."""
        self.engine.dispose()
        logger.debug("Disposed session store engine")
