"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from zelo import __version__
from zelo.runtime import Runtime
from zelo.server.routes import create_router

logger = logging.getLogger(__name__)


def create_app(runtime: Runtime) -> FastAPI:
    """Create and configure FastAPI application.

    Args:
        runtime: Wired runtime shared with the stdio transport

    Returns:
        Configured FastAPI app
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info(
            "Transcription server ready (provider=%s, storage=%s)",
            runtime.orchestrator.provider_name,
            runtime.config.storage.backend,
        )
        yield
        # Stop and persist whatever is still running.
        await runtime.orchestrator.aclose()
        logger.info("Transcription server stopped")

    app = FastAPI(
        title="Zelo Transcription",
        description="Live audio transcription relay with an MCP tool surface",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.runtime = runtime

    app.include_router(create_router(runtime))

    return app
