"""Transcript model and session persistence.

Components:

- :class:`Segment` / :class:`Session` - Transcript fragment and session aggregate
- :func:`export_session` - JSON, plain text and SubRip rendering
- :class:`JSONFileSessionStore` - One JSON file per session
- :class:`SQLiteSessionStore` - SQLite backend with one row per segment
- :class:`PostgresSessionStore` - PostgreSQL backend with the same layout
"""

from zelo.config.schema import StorageConfig
from zelo.session.export import ExportFormat, export_session
from zelo.session.models import (
    Segment,
    Session,
    SessionRecord,
    SessionStatus,
    TranscriptionWord,
)
from zelo.session.postgres_store import PostgresSessionStore
from zelo.session.sqlite_store import SQLiteSessionStore
from zelo.session.store import JSONFileSessionStore, SessionStore


def create_session_store(config: StorageConfig) -> SessionStore:
    """Create the session store selected by configuration.

    Args:
        config: Storage configuration

    Returns:
        Session store instance
    """
    if config.backend == "sqlite":
        return SQLiteSessionStore(config.sqlite_path)
    if config.backend == "json":
        return JSONFileSessionStore(config.directory)
    if config.backend == "postgres":
        return PostgresSessionStore(config.postgres_dsn)
    raise ValueError(f"Unknown storage backend: {config.backend}")


__all__ = [
    "ExportFormat",
    "JSONFileSessionStore",
    "PostgresSessionStore",
    "SQLiteSessionStore",
    "Segment",
    "Session",
    "SessionRecord",
    "SessionStatus",
    "SessionStore",
    "TranscriptionWord",
    "create_session_store",
    "export_session",
]
