"""
Provider Client Implementations.

Each client is a subclass of BaseGenerationClient implementing
``_synthesize()`` for one speech provider.

Available Clients:
    - MiniMaxClient: MiniMax t2a_v2 endpoint, hex-encoded MP3 in JSON
    - ElevenLabsClient: ElevenLabs text-to-speech, raw MP3 body
    - FakeClient: offline deterministic client for tests and dry runs

Usage:
    from tts_batch.tts.client import get_client
    client = get_client("minimax", settings)

See Also:
    - tts/client.py: BaseGenerationClient and get_client()
"""
from __future__ import annotations

from typing import TYPE_CHECKING

__all__ = [
    "MiniMaxClient",
    "ElevenLabsClient",
    "FakeClient",
]


def __getattr__(name: str):
    if name == "MiniMaxClient":
        from tts_batch.tts.clients.minimax_client import MiniMaxClient
        return MiniMaxClient
    if name == "ElevenLabsClient":
        from tts_batch.tts.clients.elevenlabs_client import ElevenLabsClient
        return ElevenLabsClient
    if name == "FakeClient":
        from tts_batch.tts.clients.fake_client import FakeClient
        return FakeClient
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


if TYPE_CHECKING:
    from tts_batch.tts.clients.elevenlabs_client import ElevenLabsClient
    from tts_batch.tts.clients.fake_client import FakeClient
    from tts_batch.tts.clients.minimax_client import MiniMaxClient
