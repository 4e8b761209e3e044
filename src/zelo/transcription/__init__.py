"""Live transcription: the active-session orchestrator and session queries.

Components:

- :class:`TranscriptionOrchestrator` - Registry of active sessions fed by providers
- :class:`SessionService` - Listing, export and deletion across memory and store
"""

from zelo.transcription.orchestrator import TranscriptionOrchestrator
from zelo.transcription.sessions import SessionService

__all__ = ["SessionService", "TranscriptionOrchestrator"]
