"""
ElevenLabs Client.

POST ``/v1/text-to-speech/{voice_id}`` with the multilingual v2 model and
``mp3_44100_128`` output. The response body is the MP3 itself.

Configuration:
    settings.yaml:
        providers:
          elevenlabs:
            api_key: ...          # or ELEVENLABS_API_KEY
            base_url: https://api.elevenlabs.io
"""
from __future__ import annotations

from tts_batch.core.config import Defaults
from tts_batch.tts.client import BaseGenerationClient, VoiceParams
from tts_batch.tts.clients.helpers import raise_for_provider_status

OUTPUT_FORMAT = "mp3_44100_128"

VOICES = {
    "21m00Tcm4TlvDq8ikWAM": "Rachel",
    "AZnzlk1XvdvUeBnXmlld": "Domi",
    "EXAVITQu4vr4xnSDxMaL": "Bella",
    "ErXwobaYiN019PkySvjV": "Antoni",
    "MF3mGyEYCl7XYWbV9V6O": "Elli",
    "TxGEqnHWrfWFTfGW9XjX": "Josh",
}

MODELS = {
    "eleven_multilingual_v2": "Multilingual v2",
}


class ElevenLabsClient(BaseGenerationClient):
    name = "elevenlabs"

    @property
    def api_key(self) -> str | None:
        return self._setting("api_key", env="ELEVENLABS_API_KEY")

    @property
    def base_url(self) -> str:
        return (self._setting("base_url", default=Defaults.ELEVENLABS_BASE_URL) or "").rstrip("/")

    def is_configured(self) -> bool:
        return bool(self.api_key)

    async def _synthesize(self, text: str, params: VoiceParams) -> bytes:
        async with self._http() as http:
            response = await http.post(
                f"{self.base_url}/v1/text-to-speech/{params.voice}",
                params={"output_format": OUTPUT_FORMAT},
                headers={"xi-api-key": self.api_key or "", "Accept": "audio/mpeg"},
                json={"text": text, "model_id": params.model or Defaults.ELEVENLABS_MODEL},
            )
        raise_for_provider_status(self.name, response)
        return response.content
