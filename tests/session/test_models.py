"""Tests for the session aggregate and segment model."""

from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from zelo.session.models import Segment, Session, SessionStatus, TranscriptionWord


class TestSegment:
    def test_segment_is_immutable(self, make_segment):
        """Test segments cannot be mutated after creation."""
        segment = make_segment("hello")
        with pytest.raises(ValidationError):
            segment.text = "changed"

    def test_segment_value_equality(self):
        """Test segments compare by value."""
        stamp = datetime(2026, 1, 1, tzinfo=timezone.utc)
        words = (TranscriptionWord(word="oi", speaker=2),)
        a = Segment(id="s1", text="oi", words=words, start_time=0, end_time=1, timestamp=stamp)
        b = Segment(id="s1", text="oi", words=words, start_time=0, end_time=1, timestamp=stamp)
        assert a == b

    def test_timestamp_is_timezone_aware(self, make_segment):
        segment = make_segment()
        assert segment.timestamp.tzinfo is not None


class TestSession:
    def test_new_session_is_active(self):
        """Test a new session starts active with no segments."""
        session = Session(language="pt-BR", provider="deepgram")

        assert session.status == SessionStatus.ACTIVE
        assert session.is_active
        assert session.segments == ()
        assert session.stopped_at is None
        assert session.duration is None

    def test_session_ids_are_unique(self):
        ids = {Session(language="en", provider="deepgram").id for _ in range(50)}
        assert len(ids) == 50

    def test_add_segment_preserves_order(self, make_segment):
        """Test segments keep arrival order."""
        session = Session(language="en", provider="deepgram")
        for text in ["one", "two", "three"]:
            assert session.add_segment(make_segment(text))

        assert [s.text for s in session.segments] == ["one", "two", "three"]
        assert session.segment_count == 3

    def test_add_segment_after_stop_is_ignored(self, make_segment):
        """Test a stopped session rejects new segments."""
        session = Session(language="en", provider="deepgram")
        session.add_segment(make_segment("kept"))
        session.stop()

        assert session.add_segment(make_segment("late")) is False
        assert [s.text for s in session.segments] == ["kept"]

    def test_stop_happens_once(self):
        """Test stop sets stopped_at only on the first call."""
        session = Session(language="en", provider="deepgram")

        assert session.stop() is True
        first = session.stopped_at
        assert session.stop() is False

        assert session.status == SessionStatus.STOPPED
        assert session.stopped_at == first
        assert session.duration is not None
        assert session.duration >= 0

    def test_segments_view_is_a_snapshot(self, make_segment):
        session = Session(language="en", provider="deepgram")
        snapshot = session.segments
        session.add_segment(make_segment())
        assert snapshot == ()

    def test_restore_keeps_fields_verbatim(self, make_segment):
        """Test restore sets stopped_at without deriving it."""
        started = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)
        stopped = started + timedelta(seconds=42)
        segment = make_segment("persisted")

        session = Session.restore(
            session_id="abc",
            language="en-US",
            provider="deepgram",
            status=SessionStatus.STOPPED,
            segments=[segment],
            started_at=started,
            stopped_at=stopped,
        )

        assert session.id == "abc"
        assert session.stopped_at == stopped
        assert session.duration == 42.0
        assert session.segments == (segment,)

    def test_record_roundtrip(self, make_segment):
        session = Session(language="en", provider="deepgram")
        session.add_segment(make_segment("a"))
        session.stop()

        restored = Session.from_record(session.to_record())
        assert restored.to_record() == session.to_record()


class TestSliceSegments:
    @pytest.fixture
    def session(self, make_segment):
        session = Session(language="en", provider="deepgram")
        for i in range(5):
            session.add_segment(make_segment(f"s{i}"))
        return session

    def test_slice_within_bounds(self, session):
        segments, total = session.slice_segments(1, 2)
        assert [s.text for s in segments] == ["s1", "s2"]
        assert total == 5

    def test_slice_clamps_end(self, session):
        segments, total = session.slice_segments(3, 50)
        assert [s.text for s in segments] == ["s3", "s4"]
        assert total == 5

    def test_slice_past_end_is_empty(self, session):
        segments, total = session.slice_segments(10, 5)
        assert segments == []
        assert total == 5

    def test_negative_start_clamps_to_zero(self, session):
        segments, _ = session.slice_segments(-3, 2)
        assert [s.text for s in segments] == ["s0", "s1"]

    def test_zero_limit(self, session):
        segments, total = session.slice_segments(0, 0)
        assert segments == []
        assert total == 5
