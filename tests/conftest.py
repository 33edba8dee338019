"""Shared fixtures."""
from __future__ import annotations

import pytest


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    """Keep tests independent of the developer's settings, keys and terminal."""
    monkeypatch.setenv("TTS_BATCH_SETTINGS", str(tmp_path / "missing-settings.yaml"))
    monkeypatch.setenv("TTS_BATCH_NO_COLOR", "1")
    for name in (
        "TTS_BATCH_PROVIDER",
        "TTS_BATCH_MAX_TEXT_CHARS",
        "TTS_BATCH_LOG_LEVEL",
        "TTS_BATCH_LOG_DIR",
        "MINIMAX_API_KEY",
        "MINIMAX_GROUP_ID",
        "ELEVENLABS_API_KEY",
    ):
        monkeypatch.delenv(name, raising=False)

    from tts_batch.api.dependencies import get_settings
    from tts_batch.services.narration_service import reset_service

    get_settings.cache_clear()
    reset_service()
    yield
    get_settings.cache_clear()
    reset_service()


@pytest.fixture
def settings():
    from tts_batch.core.config import Settings

    return Settings(raw={})


@pytest.fixture
def fake_settings():
    """Settings whose default provider is the offline fake."""
    from tts_batch.core.config import Settings

    return Settings(raw={"scheduler": {"default_provider": "fake"}})
