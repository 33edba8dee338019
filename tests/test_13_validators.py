"""Tests for request validation."""
from __future__ import annotations

import pytest


class TestValidateText:
    def test_strips_and_normalizes(self):
        from tts_batch.services.validators import validate_text

        assert validate_text("  Hello.\r\nWorld.  ") == "Hello.\nWorld."

    @pytest.mark.parametrize("text", [None, "", "   \n\t"])
    def test_required(self, text):
        from tts_batch.services.validators import ValidationError, validate_text

        with pytest.raises(ValidationError) as exc_info:
            validate_text(text)
        assert exc_info.value.code == "TEXT_REQUIRED"

    def test_too_long(self):
        from tts_batch.services.validators import ValidationError, validate_text

        with pytest.raises(ValidationError) as exc_info:
            validate_text("x" * 11, max_length=10)
        assert exc_info.value.code == "TEXT_TOO_LONG"
        assert "11 > 10" in exc_info.value.message


class TestValidateProvider:
    def test_normalizes_case(self):
        from tts_batch.services.validators import validate_provider

        assert validate_provider(" MiniMax ") == "minimax"

    @pytest.mark.parametrize("value, code", [(None, "PROVIDER_REQUIRED"), ("polly", "PROVIDER_UNKNOWN")])
    def test_rejected(self, value, code):
        from tts_batch.services.validators import ValidationError, validate_provider

        with pytest.raises(ValidationError) as exc_info:
            validate_provider(value)
        assert exc_info.value.code == code


class TestValidateVoiceAndModel:
    def test_voice_falls_back_to_profile(self):
        from tts_batch.core.config import PROVIDER_PROFILES
        from tts_batch.services.validators import validate_voice

        profile = PROVIDER_PROFILES["minimax"]
        assert validate_voice("  ", profile) == profile.default_voice
        assert validate_voice("custom", profile) == "custom"

    def test_required_voice_missing(self):
        from dataclasses import replace

        from tts_batch.core.config import PROVIDER_PROFILES
        from tts_batch.services.validators import ValidationError, validate_voice

        profile = replace(PROVIDER_PROFILES["elevenlabs"], default_voice="", voice_required=True)
        with pytest.raises(ValidationError) as exc_info:
            validate_voice(None, profile)
        assert exc_info.value.code == "VOICE_REQUIRED"
        assert "ElevenLabs" in exc_info.value.message

    def test_model(self):
        from tts_batch.services.validators import ValidationError, validate_model

        assert validate_model("  ") is None
        assert validate_model(" speech-02-hd ") == "speech-02-hd"
        with pytest.raises(ValidationError, match="Model exceeds"):
            validate_model("m" * 101)


class TestValidateBatchSettings:
    def test_none_means_profile(self):
        from tts_batch.services.validators import validate_batch_settings

        validate_batch_settings(None, None)
        validate_batch_settings(1, 0.0)

    @pytest.mark.parametrize("size, delay, code", [(0, None, "BATCH_SIZE_INVALID"), (None, -0.5, "DELAY_INVALID")])
    def test_rejected(self, size, delay, code):
        from tts_batch.services.validators import ValidationError, validate_batch_settings

        with pytest.raises(ValidationError) as exc_info:
            validate_batch_settings(size, delay)
        assert exc_info.value.code == code
