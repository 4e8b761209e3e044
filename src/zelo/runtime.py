"""Wiring of the store, provider pool, orchestrator and tools for one process."""

from dataclasses import dataclass

from zelo.config.schema import ZeloConfig
from zelo.mcp.tools import TranscriptionTools
from zelo.providers import create_provider_pool
from zelo.providers.base import ProviderPool
from zelo.session import create_session_store
from zelo.session.store import SessionStore
from zelo.transcription.orchestrator import TranscriptionOrchestrator
from zelo.transcription.sessions import SessionService


@dataclass
class Runtime:
    """Everything the transports need, built once per process."""

    config: ZeloConfig
    store: SessionStore
    provider_pool: ProviderPool
    orchestrator: TranscriptionOrchestrator
    sessions: SessionService
    tools: TranscriptionTools


def build_runtime(
    config: ZeloConfig,
    store: SessionStore | None = None,
    provider_pool: ProviderPool | None = None,
) -> Runtime:
    """Build the runtime from configuration.

    Args:
        config: Zelo configuration
        store: Store to use instead of the configured backend
        provider_pool: Provider pool to use instead of the configured provider

    Returns:
        Wired runtime
    """
    store = store if store is not None else create_session_store(config.storage)
    provider_pool = (
        provider_pool if provider_pool is not None else create_provider_pool(config.provider)
    )
    orchestrator = TranscriptionOrchestrator(
        provider_pool,
        store,
        persist_threshold=config.transcription.persist_threshold,
    )
    sessions = SessionService(orchestrator, store)
    tools = TranscriptionTools(orchestrator, sessions, config)
    return Runtime(
        config=config,
        store=store,
        provider_pool=provider_pool,
        orchestrator=orchestrator,
        sessions=sessions,
        tools=tools,
    )
