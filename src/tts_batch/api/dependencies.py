"""
FastAPI Dependency Injection Providers.

This module provides shared resources for API endpoints using FastAPI's
dependency injection system.

Architecture:
    1. get_settings() - Loads and caches application configuration
    2. get_narration_service() - Creates/returns the singleton NarrationService

    The service holds the run registry, so every request must see the
    same instance.

Usage in Route Handlers:
    from fastapi import Depends
    from tts_batch.api.dependencies import get_narration_service

    @router.get("/v1/runs/{run_id}")
    async def get_run(run_id: str, service: NarrationService = Depends(get_narration_service)):
        return service.get_run(run_id).to_dict()

See Also:
    - core/config.py: Settings class and load_settings_or_default()
    - services/narration_service.py: NarrationService and get_service()
"""
from __future__ import annotations

from functools import lru_cache

from tts_batch.core.config import Settings, load_settings_or_default
from tts_batch.services.narration_service import NarrationService, get_service


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Load and cache application settings.

    The path comes from TTS_BATCH_SETTINGS (default
    ``config/settings.yaml``); built-in defaults are used when the file
    does not exist.
    """
    return load_settings_or_default()


def get_narration_service() -> NarrationService:
    """Get the singleton NarrationService instance."""
    return get_service(get_settings())
