"""
Fake Client.

Offline provider used by tests, ``--dry-run`` style local development and
the ``fake`` provider profile. It never touches the network and returns a
small, valid-looking MP3 payload (ID3 header plus one silent MPEG frame).

Failure injection:
    FakeClient(settings, fail_indices={3})        # chunk 3 fails
    FakeClient(settings, latency_s=0.05)          # every call sleeps

    settings.yaml:
        providers:
          fake:
            fail_indices: [3, 7]
            latency_s: 0.01
"""
from __future__ import annotations

import asyncio
from typing import Iterable, List, Optional

from tts_batch.core.config import Settings
from tts_batch.tts.client import BaseGenerationClient, GenerationError, VoiceParams

VOICES = {"fake-voice": "Fake Voice"}
MODELS = {"fake-model": "Fake Model"}

# ID3v2.3 header with empty tag, then a 128 kbps / 44.1 kHz MPEG-1 Layer III frame header
_ID3_HEADER = b"ID3\x03\x00\x00\x00\x00\x00\x00"
_FRAME = b"\xff\xfb\x90\x64" + b"\x00" * 413


class FakeClient(BaseGenerationClient):
    name = "fake"

    def __init__(
        self,
        settings: Settings,
        fail_indices: Optional[Iterable[int]] = None,
        latency_s: Optional[float] = None,
    ):
        super().__init__(settings)
        if fail_indices is None:
            fail_indices = self._section.get("fail_indices") or ()
        if latency_s is None:
            latency_s = float(self._section.get("latency_s", 0.0))
        self.fail_indices = {int(i) for i in fail_indices}
        self.latency_s = latency_s
        self.calls: List[int] = []

    async def _synthesize(self, text: str, params: VoiceParams) -> bytes:
        self.calls.append(params.chunk_index)
        if self.latency_s > 0:
            await asyncio.sleep(self.latency_s)
        if params.chunk_index in self.fail_indices:
            raise GenerationError(f"fake provider rejected chunk {params.chunk_index}")
        return _ID3_HEADER + _FRAME
