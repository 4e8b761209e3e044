"""Streaming provider abstraction and the capacity-checked provider pool."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Protocol

from zelo.errors import ProviderCapacityExceeded
from zelo.session.models import Segment

logger = logging.getLogger(__name__)

SegmentCallback = Callable[[Segment], None]
ErrorCallback = Callable[[Exception], None]


class TranscriptionProvider(Protocol):
    """Protocol for streaming speech-to-text providers."""

    name: str

    @property
    def is_connected(self) -> bool:
        """Whether the streaming connection is currently open."""
        ...

    async def connect(
        self,
        language: str,
        on_segment: SegmentCallback,
        on_error: ErrorCallback,
    ) -> None:
        """Validate credentials and register callbacks.

        The network connection is opened lazily by the first ``send``.

        Args:
            language: Language code (e.g., "en-US", "pt-BR")
            on_segment: Called for every transcript segment, in arrival order
            on_error: Called for errors raised by the background message stream
        """
        ...

    async def send(self, audio: bytes) -> None:
        """Stream a chunk of 16 kHz mono 16-bit PCM audio."""
        ...

    async def disconnect(self) -> None:
        """Close the stream gracefully. No-op if not connected."""
        ...


class ProviderPool:
    """Fixed-capacity pool of provider instances, leased per session.

    With the default capacity of 1 every session shares the same provider,
    so audio from concurrent sessions interleaves on one connection. That
    single-tenancy limit is logged rather than hidden; raising the capacity
    gives each session its own connection.

    Each ``connect`` on a shared provider also restarts its segment
    numbering, so segment ids such as ``deepgram-1`` can repeat across the
    sessions sharing one live connection.
    """

    def __init__(
        self,
        factory: Callable[[], TranscriptionProvider],
        capacity: int = 1,
        share_when_full: bool = True,
    ):
        """
        Initialize the pool.

        Args:
            factory: Creates one provider instance
            capacity: Number of provider instances
            share_when_full: Reuse the least-leased instance when every slot is taken
                instead of raising ProviderCapacityExceeded
        """
        if capacity < 1:
            raise ValueError("Provider pool capacity must be at least 1")
        self.capacity = capacity
        self.share_when_full = share_when_full
        self._providers = [factory() for _ in range(capacity)]
        self._leases: dict[str, int] = {}

    @property
    def name(self) -> str:
        return self._providers[0].name

    @property
    def providers(self) -> list[TranscriptionProvider]:
        return list(self._providers)

    def _lease_counts(self) -> list[int]:
        counts = [0] * self.capacity
        for index in self._leases.values():
            counts[index] += 1
        return counts

    def acquire(self, session_id: str) -> TranscriptionProvider:
        """Lease a provider for a session.

        Raises:
            ProviderCapacityExceeded: If every slot is leased and sharing is disabled
        """
        if session_id in self._leases:
            return self._providers[self._leases[session_id]]

        counts = self._lease_counts()
        index = min(range(self.capacity), key=lambda i: counts[i])
        if counts[index] > 0:
            if not self.share_when_full:
                raise ProviderCapacityExceeded(self.capacity)
            logger.warning(
                "Provider capacity %d reached: session %s shares a %s connection with %d other session(s)",
                self.capacity,
                session_id,
                self._providers[index].name,
                counts[index],
            )

        self._leases[session_id] = index
        return self._providers[index]

    def get(self, session_id: str) -> TranscriptionProvider | None:
        """Return the provider leased to a session, if any."""
        index = self._leases.get(session_id)
        return None if index is None else self._providers[index]

    def release(self, session_id: str) -> None:
        """Return a session's lease to the pool."""
        self._leases.pop(session_id, None)

    def in_use(self) -> int:
        """Number of sessions currently holding a lease."""
        return len(self._leases)
