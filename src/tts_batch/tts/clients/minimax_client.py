"""
MiniMax Client.

Calls the MiniMax ``t2a_v2`` endpoint with a non-streaming request. The
audio comes back hex-encoded inside a JSON envelope, so a 200 response
still has to be inspected: a non-zero ``base_resp.status_code`` or a
missing ``data.audio`` is a failed chunk, never an empty success.

Configuration:
    settings.yaml:
        providers:
          minimax:
            api_key: ...          # or MINIMAX_API_KEY
            group_id: ...         # or MINIMAX_GROUP_ID
            base_url: https://api.minimaxi.chat

Request Body:
    {
        "model": "speech-02-hd",
        "text": "...",
        "stream": false,
        "subtitle_enable": false,
        "voice_setting": {"voice_id": "...", "speed": 1, "vol": 1, "pitch": 0},
        "audio_setting": {"sample_rate": 32000, "bitrate": 128000, "format": "mp3", "channel": 1}
    }
"""
from __future__ import annotations

from typing import Any, Dict

from tts_batch.core.config import Defaults
from tts_batch.tts.client import BaseGenerationClient, GenerationError, VoiceParams
from tts_batch.tts.clients.helpers import body_excerpt, decode_hex_audio, raise_for_provider_status

VOICES = {
    "English_radiant_girl": "Radiant Girl",
    "English_captivating_female1": "Captivating Female",
    "English_Steady_Female_1": "Steady Women",
    "English_CaptivatingStoryteller": "Captivating Storyteller",
    "English_Deep-VoicedGentleman": "Man With Deep Voice",
    "English_magnetic_voiced_man": "Magnetic-voiced Male",
    "English_ReservedYoungMan": "Reserved Young Man",
    "English_expressive_narrator": "Expressive Narrator",
    "English_compelling_lady1": "Compelling Lady",
    "English_CalmWoman": "Calm Woman",
    "English_Graceful_Lady": "Graceful Lady",
    "English_MaturePartner": "Mature Partner",
    "English_Wiselady": "Wise Lady",
    "English_patient_man_v1": "Patient Man",
    "English_Female_Narrator": "Female Narrator",
    "English_Trustworth_Man": "Trustworthy Man",
    "English_Gentle-voiced_man": "Gentle-voiced Man",
    "English_Upbeat_Woman": "Upbeat Woman",
    "English_Friendly_Female_3": "Friendly Women",
}

MODELS = {
    "speech-02-hd": "Speech 02 HD",
    "speech-02-turbo": "Speech 02 Turbo",
    "speech-01-hd": "Speech 01 HD",
    "speech-01-turbo": "Speech 01 Turbo",
}


class MiniMaxClient(BaseGenerationClient):
    name = "minimax"

    @property
    def api_key(self) -> str | None:
        return self._setting("api_key", env="MINIMAX_API_KEY")

    @property
    def group_id(self) -> str | None:
        return self._setting("group_id", env="MINIMAX_GROUP_ID")

    @property
    def base_url(self) -> str:
        return (self._setting("base_url", default=Defaults.MINIMAX_BASE_URL) or "").rstrip("/")

    def is_configured(self) -> bool:
        return bool(self.api_key and self.group_id)

    def build_payload(self, text: str, params: VoiceParams) -> Dict[str, Any]:
        return {
            "model": params.model or Defaults.MINIMAX_MODEL,
            "text": text,
            "stream": False,
            "subtitle_enable": False,
            "voice_setting": {"voice_id": params.voice, "speed": 1, "vol": 1, "pitch": 0},
            "audio_setting": {"sample_rate": 32000, "bitrate": 128000, "format": "mp3", "channel": 1},
        }

    async def _synthesize(self, text: str, params: VoiceParams) -> bytes:
        async with self._http() as http:
            response = await http.post(
                f"{self.base_url}/v1/t2a_v2",
                params={"GroupId": self.group_id},
                headers={"Authorization": f"Bearer {self.api_key}"},
                json=self.build_payload(text, params),
            )
        raise_for_provider_status(self.name, response)

        try:
            body = response.json()
        except ValueError as e:
            raise GenerationError(f"minimax returned non-JSON body: {body_excerpt(response)}") from e

        base_resp = body.get("base_resp") or {}
        status_code = base_resp.get("status_code", 0)
        if status_code:
            raise GenerationError(
                f"minimax error {status_code}: {base_resp.get('status_msg') or 'unknown'}"
            )

        audio_hex = (body.get("data") or {}).get("audio")
        if not audio_hex:
            raise GenerationError(f"no audio data from minimax. Response: {body_excerpt(response)}")
        return decode_hex_audio(self.name, audio_hex)
