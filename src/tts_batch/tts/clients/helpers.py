"""
Helper Functions for Provider Clients.

    - raise_for_provider_status: turn a non-2xx response into GenerationError
    - decode_hex_audio: hex string payload to bytes
    - body_excerpt: short, single-line view of a response body for messages
"""
from __future__ import annotations

import httpx

from tts_batch.tts.client import GenerationError

_EXCERPT_CHARS = 300


def body_excerpt(response: httpx.Response, limit: int = _EXCERPT_CHARS) -> str:
    try:
        text = response.text
    except UnicodeDecodeError:
        return f"<{len(response.content)} bytes>"
    text = " ".join(text.split())
    return text if len(text) <= limit else text[:limit] + "..."


def raise_for_provider_status(provider: str, response: httpx.Response) -> None:
    """
    Raise GenerationError for any non-success HTTP status.

    The message carries status code, reason and a body excerpt, which is
    what ends up on the failed chunk.
    """
    if response.is_success:
        return
    raise GenerationError(
        f"{provider} API error: {response.status_code} {response.reason_phrase}. "
        f"Body: {body_excerpt(response)}"
    )


def decode_hex_audio(provider: str, payload: str) -> bytes:
    """Decode a hex audio string; malformed hex is a provider failure."""
    try:
        return bytes.fromhex(payload)
    except ValueError as e:
        raise GenerationError(f"{provider} returned invalid hex audio: {e}") from e
