"""Transcript segments and the session aggregate."""

import uuid
from collections.abc import Iterable
from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


def utcnow() -> datetime:
    """Timezone-aware current UTC time."""
    return datetime.now(timezone.utc)


class TranscriptionWord(BaseModel):
    """Word-level annotation reported by the provider."""

    model_config = ConfigDict(frozen=True)

    word: str
    punctuated_word: str | None = None
    start: float | None = None
    end: float | None = None
    confidence: float | None = None
    speaker: int | None = None


class Segment(BaseModel):
    """One transcript fragment, interim or final. Immutable, compared by value."""

    model_config = ConfigDict(frozen=True)

    id: str
    text: str
    words: tuple[TranscriptionWord, ...] = ()
    start_time: float
    end_time: float
    confidence: float | None = None
    speaker: int | None = None
    is_final: bool = False
    timestamp: datetime = Field(default_factory=utcnow)


class SessionStatus(str, Enum):
    """Session lifecycle states."""

    ACTIVE = "active"
    STOPPED = "stopped"


class SessionRecord(BaseModel):
    """Full serialized form of a session, as persisted by the stores."""

    id: str
    language: str
    provider: str
    status: SessionStatus
    started_at: datetime
    stopped_at: datetime | None = None
    segments: list[Segment] = Field(default_factory=list)


class Session:
    """A transcription run aggregating segments and lifecycle state.

    Segments may only be appended while the session is active, and the
    session moves from active to stopped exactly once.
    """

    def __init__(self, language: str, provider: str, session_id: str | None = None):
        self.id = session_id or str(uuid.uuid4())
        self.language = language
        self.provider = provider
        self._status = SessionStatus.ACTIVE
        self._segments: list[Segment] = []
        self.started_at = utcnow()
        self._stopped_at: datetime | None = None

    @classmethod
    def restore(
        cls,
        session_id: str,
        language: str,
        provider: str,
        status: SessionStatus,
        segments: Iterable[Segment],
        started_at: datetime,
        stopped_at: datetime | None,
    ) -> "Session":
        """Rebuild a session in an arbitrary state, setting every field verbatim.

        Used by the stores. Nothing is derived here: a stopped session keeps
        the stop time it was persisted with.
        """
        session = cls.__new__(cls)
        session.id = session_id
        session.language = language
        session.provider = provider
        session._status = SessionStatus(status)
        session._segments = list(segments)
        session.started_at = started_at
        session._stopped_at = stopped_at
        return session

    @classmethod
    def from_record(cls, record: SessionRecord) -> "Session":
        return cls.restore(
            session_id=record.id,
            language=record.language,
            provider=record.provider,
            status=record.status,
            segments=record.segments,
            started_at=record.started_at,
            stopped_at=record.stopped_at,
        )

    def to_record(self) -> SessionRecord:
        return SessionRecord(
            id=self.id,
            language=self.language,
            provider=self.provider,
            status=self._status,
            started_at=self.started_at,
            stopped_at=self._stopped_at,
            segments=list(self._segments),
        )

    @property
    def status(self) -> SessionStatus:
        return self._status

    @property
    def is_active(self) -> bool:
        return self._status is SessionStatus.ACTIVE

    @property
    def segments(self) -> tuple[Segment, ...]:
        """Snapshot of the segments in arrival order."""
        return tuple(self._segments)

    @property
    def segment_count(self) -> int:
        return len(self._segments)

    @property
    def stopped_at(self) -> datetime | None:
        return self._stopped_at

    @property
    def duration(self) -> float | None:
        """Seconds between start and stop, or None while active."""
        if self._stopped_at is None:
            return None
        return (self._stopped_at - self.started_at).total_seconds()

    def add_segment(self, segment: Segment) -> bool:
        """Append a segment. Returns False (and does nothing) once stopped."""
        if self._status is not SessionStatus.ACTIVE:
            return False
        self._segments.append(segment)
        return True

    def stop(self) -> bool:
        """Stop the session. Returns False if it was already stopped."""
        if self._status is not SessionStatus.ACTIVE:
            return False
        self._status = SessionStatus.STOPPED
        self._stopped_at = utcnow()
        return True

    def slice_segments(self, from_index: int, limit: int) -> tuple[list[Segment], int]:
        """Return segments ``[from_index, from_index + limit)`` clamped to bounds, plus the total."""
        total = len(self._segments)
        start = min(max(from_index, 0), total)
        end = min(start + max(limit, 0), total)
        return self._segments[start:end], total

    def __repr__(self) -> str:
        return (
            f"Session(id={self.id!r}, status={self._status.value!r}, "
            f"segments={len(self._segments)})"
        )
