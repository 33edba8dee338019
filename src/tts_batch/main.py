"""
FastAPI Application Entry Point.

This module creates and configures the FastAPI application instance for
the tts-batch service. It sets up routing, logging and shutdown handling.

Usage:
    # Run with uvicorn (pip install "tts-batch[server]")
    uvicorn tts_batch.main:app --host 0.0.0.0 --port 8000

    # Or use the module directly
    python -m uvicorn tts_batch.main:app --reload
"""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI

from tts_batch import __version__
from tts_batch.api.dependencies import get_narration_service
from tts_batch.api.routes import router
from tts_batch.core.logging import configure_logging, get_logger, info

_LOG = get_logger("tts-batch.main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    info(_LOG, "startup", version=__version__)
    yield
    # In-flight runs are cancelled, their current batch fails.
    await get_narration_service().shutdown()


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    This factory function:
        1. Configures structured logging (TTS_BATCH_LOG_LEVEL etc.)
        2. Creates a FastAPI instance with the service title
        3. Registers the API router
        4. Cancels in-flight runs on shutdown

    Returns:
        FastAPI: Configured application instance ready to serve requests.
    """
    configure_logging()

    app = FastAPI(title="tts-batch", version=__version__, lifespan=lifespan)
    app.include_router(router)

    return app


# Global application instance for ASGI servers (uvicorn, gunicorn, etc.)
app = create_app()
