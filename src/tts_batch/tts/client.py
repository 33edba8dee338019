"""
Generation Client Base Class and Factory.

This module provides:
    - VoiceParams: per-chunk voice selection passed to a client
    - ArtifactRef: generated MP3 plus its filename and duration estimate
    - GenerationResult: success/failure value returned for every chunk
    - BaseGenerationClient: abstract provider client
    - get_client(): factory keyed by provider name

Failure Contract:
    ``BaseGenerationClient.generate()`` never raises. Transport errors,
    provider error payloads, timeouts, and empty or non-MP3 audio all come
    back as ``GenerationResult.failure(message)``. The batch scheduler
    relies on this to keep one chunk's failure from touching its siblings.

Implementing a New Provider:
    1. Create clients/<name>_client.py
    2. Inherit from BaseGenerationClient, set ``name``
    3. Implement ``_synthesize()`` returning MP3 bytes, raising
       GenerationError (or letting httpx errors escape) on failure
    4. Register in _create_client() and add a ProviderProfile

See Also:
    - tts/clients/: provider implementations
    - tts/scheduler.py: the only caller of generate()
"""
from __future__ import annotations

import os
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx

from tts_batch.core.config import ConfigValidationError, Defaults, PROVIDER_PROFILES, Settings
from tts_batch.core.logging import debug, get_logger
from tts_batch.utils.audio import MP3_EXTENSION, MP3_MIME, looks_like_mp3, sanitize_token
from tts_batch.utils.text import estimate_duration_seconds
from tts_batch.utils.timeit import timeit


class GenerationError(Exception):
    """Provider rejected a request or answered with an unusable payload."""
    pass


@dataclass(frozen=True)
class VoiceParams:
    """
    Voice selection for one generation call.

    Attributes:
        voice: Provider voice id.
        model: Provider model id, or None for the provider default.
        chunk_index: Index of the chunk being generated (used in filenames).
    """
    voice: str
    model: Optional[str] = None
    chunk_index: int = 0


@dataclass(frozen=True)
class ArtifactRef:
    """
    Generated audio for one chunk, held in memory.

    Attributes:
        audio_bytes: MP3 data exactly as returned by the provider.
        filename: ``{provider}-{voice}-chunk{index}-{epoch_ms}.mp3``
        duration_estimate_seconds: Display-only estimate from text length.
        content_type: Always ``audio/mpeg``.
    """
    audio_bytes: bytes
    filename: str
    duration_estimate_seconds: int
    content_type: str = MP3_MIME

    @property
    def size(self) -> int:
        return len(self.audio_bytes)

    def to_dict(self) -> Dict[str, Any]:
        """Metadata only; audio bytes are served separately."""
        return {
            "filename": self.filename,
            "duration_estimate_seconds": self.duration_estimate_seconds,
            "content_type": self.content_type,
            "size": self.size,
        }


@dataclass(frozen=True)
class GenerationResult:
    """
    Outcome of one generation call.

    Exactly one of ``artifact`` (when ok) or ``error`` (when not ok) is set.
    ``seconds`` is the provider latency when a call was actually made.
    """
    ok: bool
    artifact: Optional[ArtifactRef] = None
    error: Optional[str] = None
    seconds: Optional[float] = None

    @classmethod
    def success(cls, artifact: ArtifactRef, seconds: Optional[float] = None) -> "GenerationResult":
        return cls(ok=True, artifact=artifact, seconds=seconds)

    @classmethod
    def failure(cls, error: str, seconds: Optional[float] = None) -> "GenerationResult":
        return cls(ok=False, error=error or "unknown error", seconds=seconds)


class BaseGenerationClient:
    """
    Abstract base class for provider clients.

    Subclasses implement ``_synthesize()`` and may override
    ``is_configured()``. Each call opens its own ``httpx.AsyncClient``;
    tests inject an ``httpx.MockTransport`` through ``transport``.

    Attributes:
        name: Provider key, also the filename prefix.
        settings: Application settings.
        timeout_s: Per-request timeout.
    """
    name: str = "base"

    def __init__(
        self,
        settings: Settings,
        timeout_s: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = settings
        self.timeout_s = float(timeout_s if timeout_s is not None else Defaults.CLIENT_TIMEOUT_S)
        self.logger = get_logger(f"tts-batch.client.{self.name}")
        self._transport = transport
        self._section = settings.provider_section(self.name)

    def _setting(self, key: str, env: Optional[str] = None, default: Optional[str] = None) -> Optional[str]:
        """Value from ``providers.<name>.<key>``, else the env var, else default."""
        value = self._section.get(key)
        if value:
            return str(value)
        if env and os.getenv(env):
            return os.environ[env]
        return default

    def _http(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout_s, transport=self._transport)

    def is_configured(self) -> bool:
        """Whether credentials needed for real calls are present."""
        return True

    async def _synthesize(self, text: str, params: VoiceParams) -> bytes:
        """
        Call the provider and return MP3 bytes.

        Raises:
            GenerationError: Provider-level failure.
            httpx.HTTPError: Transport failure.
        """
        raise NotImplementedError

    def make_filename(self, params: VoiceParams) -> str:
        voice = sanitize_token(params.voice) if params.voice else "unknown"
        epoch_ms = int(time.time() * 1000)
        return f"{self.name}-{voice}-chunk{params.chunk_index}-{epoch_ms}{MP3_EXTENSION}"

    async def generate(self, text: str, params: VoiceParams) -> GenerationResult:
        """
        Generate audio for one chunk. Never raises.

        Args:
            text: Chunk text.
            params: Voice selection and chunk index.

        Returns:
            GenerationResult carrying an ArtifactRef or an error message.
        """
        if not self.is_configured():
            return GenerationResult.failure(f"{self.name} client not configured")

        t = timeit("generate", meta={"chunk": params.chunk_index})
        try:
            with t:
                audio = await self._synthesize(text, params)
        except GenerationError as e:
            return GenerationResult.failure(str(e), seconds=t.seconds)
        except httpx.TimeoutException:
            return GenerationResult.failure(
                f"{self.name} request timed out after {self.timeout_s:.0f}s", seconds=t.seconds
            )
        except httpx.HTTPError as e:
            return GenerationResult.failure(f"{self.name} transport error: {e}", seconds=t.seconds)
        except Exception as e:
            return GenerationResult.failure(f"{type(e).__name__}: {e}", seconds=t.seconds)

        if not audio:
            return GenerationResult.failure(f"{self.name} returned empty audio", seconds=t.seconds)
        if not looks_like_mp3(audio):
            return GenerationResult.failure(f"{self.name} returned malformed audio (not MP3)", seconds=t.seconds)

        artifact = ArtifactRef(
            audio_bytes=audio,
            filename=self.make_filename(params),
            duration_estimate_seconds=estimate_duration_seconds(text),
        )
        debug(
            self.logger, "generated",
            chunk=params.chunk_index,
            chars=len(text),
            bytes=artifact.size,
            seconds=round(t.seconds, 3),
        )
        return GenerationResult.success(artifact, seconds=t.seconds)


# =============================================================================
# Client Factory
# =============================================================================

def _create_client(
    provider: str,
    settings: Settings,
    timeout_s: Optional[float],
    transport: Optional[httpx.AsyncBaseTransport],
) -> BaseGenerationClient:
    """Instantiate the client class for a known provider."""
    if provider == "minimax":
        from tts_batch.tts.clients.minimax_client import MiniMaxClient
        return MiniMaxClient(settings, timeout_s=timeout_s, transport=transport)

    if provider == "elevenlabs":
        from tts_batch.tts.clients.elevenlabs_client import ElevenLabsClient
        return ElevenLabsClient(settings, timeout_s=timeout_s, transport=transport)

    if provider == "fake":
        from tts_batch.tts.clients.fake_client import FakeClient
        return FakeClient(settings)

    raise ConfigValidationError(f"no client registered for provider '{provider}'")


def get_client(
    provider: str,
    settings: Settings,
    timeout_s: Optional[float] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> BaseGenerationClient:
    """
    Create a generation client for ``provider``.

    A missing API key is not an error here: the client is built and every
    call fails per chunk with "client not configured".

    Raises:
        ConfigValidationError: Unknown provider.
    """
    key = (provider or "").strip().lower()
    if key not in PROVIDER_PROFILES:
        known = ", ".join(sorted(PROVIDER_PROFILES))
        raise ConfigValidationError(f"unknown provider '{provider}' (known: {known})")
    return _create_client(key, settings, timeout_s, transport)
