"""
Input Validation for Run Requests.

Validation happens before a run is created so that a rejected request
leaves no partial state behind: no chunks, no jobs, no task.

Validation Rules:
    - Text: required (non-blank), at most ``limits.max_text_chars``
    - Provider: one of the known provider profiles
    - Voice: at most 200 characters; falls back to the profile default
    - Model: optional, at most 100 characters
    - Batch size / delay: positive size, non-negative delay

Error Handling:
    All validation functions raise ValidationError with:
        - message: Human-readable error description
        - code: Machine-readable error code (e.g., "TEXT_TOO_LONG")

    Codes follow the pattern ``{FIELD}_REQUIRED``, ``{FIELD}_TOO_LONG``,
    ``{FIELD}_INVALID`` / ``{FIELD}_UNKNOWN``.

Usage:
    from tts_batch.services.validators import validate_text, ValidationError

    try:
        text = validate_text(request.text, max_length=config.limits.max_text_chars)
    except ValidationError as e:
        raise ConfigurationError(e.message, details={"code": e.code})

See Also:
    - api/schemas.py: request models with basic field constraints
    - narration_service.py: calls these before chunking
"""
from __future__ import annotations

from typing import Optional

from tts_batch.core.config import PROVIDER_PROFILES, Defaults, ProviderProfile
from tts_batch.core.logging import get_logger, warn
from tts_batch.utils.text import prepare_text

_LOG = get_logger("tts-batch.validators")

MAX_VOICE_LENGTH = 200
MAX_MODEL_LENGTH = 100


class ValidationError(Exception):
    """
    Exception raised when input validation fails.

    Attributes:
        message: Human-readable error description.
        code: Machine-readable error code.
    """

    def __init__(self, message: str, code: str = "VALIDATION_ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)


def validate_text(text: Optional[str], max_length: int = Defaults.LIMITS_MAX_TEXT_CHARS) -> str:
    """
    Validate and prepare manuscript text.

    Returns:
        Text with surrounding whitespace stripped and line endings
        normalized.

    Raises:
        ValidationError: TEXT_REQUIRED or TEXT_TOO_LONG.
    """
    if not text or not text.strip():
        raise ValidationError("Text is required", "TEXT_REQUIRED")

    text = prepare_text(text)

    if len(text) > max_length:
        raise ValidationError(
            f"Text exceeds maximum length ({len(text)} > {max_length})",
            "TEXT_TOO_LONG",
        )

    return text


def validate_provider(provider: Optional[str]) -> str:
    """
    Validate a provider name.

    Returns:
        Normalized (lowercase) provider key.

    Raises:
        ValidationError: PROVIDER_REQUIRED or PROVIDER_UNKNOWN.
    """
    if not provider or not provider.strip():
        raise ValidationError("Provider is required", "PROVIDER_REQUIRED")

    key = provider.strip().lower()
    if key not in PROVIDER_PROFILES:
        warn(_LOG, "unknown_provider", provider=provider)
        raise ValidationError(
            f"Unsupported provider: {provider} (known: {', '.join(sorted(PROVIDER_PROFILES))})",
            "PROVIDER_UNKNOWN",
        )
    return key


def validate_voice(voice: Optional[str], profile: ProviderProfile) -> str:
    """
    Resolve and validate the voice for a provider.

    A blank voice falls back to the profile default.

    Raises:
        ValidationError: VOICE_REQUIRED or VOICE_TOO_LONG.
    """
    resolved = (voice or "").strip() or profile.default_voice
    if profile.voice_required and not resolved:
        raise ValidationError(
            f"Missing required field 'voice' for {profile.display_name}",
            "VOICE_REQUIRED",
        )
    if len(resolved) > MAX_VOICE_LENGTH:
        raise ValidationError(
            f"Voice exceeds maximum length ({len(resolved)} > {MAX_VOICE_LENGTH})",
            "VOICE_TOO_LONG",
        )
    return resolved


def validate_model(model: Optional[str]) -> Optional[str]:
    if not model or not model.strip():
        return None
    model = model.strip()
    if len(model) > MAX_MODEL_LENGTH:
        raise ValidationError(
            f"Model exceeds maximum length ({len(model)} > {MAX_MODEL_LENGTH})",
            "MODEL_TOO_LONG",
        )
    return model


def validate_batch_settings(
    batch_size: Optional[int],
    inter_batch_delay_s: Optional[float],
) -> None:
    """
    Validate explicit batch overrides (None means "use the profile").

    Raises:
        ValidationError: BATCH_SIZE_INVALID or DELAY_INVALID.
    """
    if batch_size is not None and batch_size <= 0:
        raise ValidationError(
            f"batch_size must be positive, got {batch_size}",
            "BATCH_SIZE_INVALID",
        )
    if inter_batch_delay_s is not None and inter_batch_delay_s < 0:
        raise ValidationError(
            f"inter_batch_delay_s must be non-negative, got {inter_batch_delay_s}",
            "DELAY_INVALID",
        )
