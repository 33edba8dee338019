"""Tests for provider clients using httpx.MockTransport."""
from __future__ import annotations

import asyncio
import json

import httpx
import pytest

MP3 = b"ID3\x03\x00\x00\x00\x00\x00\x00" + b"\xff\xfb\x90\x64" + b"\x00" * 32


def _settings(**providers):
    from tts_batch.core.config import Settings

    return Settings(raw={"providers": providers})


def _params(voice: str = "English_radiant_girl", index: int = 4):
    from tts_batch.tts.client import VoiceParams

    return VoiceParams(voice=voice, model=None, chunk_index=index)


class TestMiniMaxClient:
    CREDS = {"api_key": "mm-key", "group_id": "g-1"}

    def test_success_decodes_hex_audio(self):
        from tts_batch.tts.client import get_client

        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["auth"] = request.headers["Authorization"]
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"data": {"audio": MP3.hex()}, "base_resp": {"status_code": 0}})

        client = get_client("minimax", _settings(minimax=self.CREDS), transport=httpx.MockTransport(handler))
        result = asyncio.run(client.generate("Hello there.", _params()))

        assert result.ok, result.error
        assert result.artifact.audio_bytes == MP3
        assert result.artifact.filename.startswith("minimax-English_radiant_girl-chunk4-")
        assert result.artifact.filename.endswith(".mp3")
        assert seen["url"].startswith("https://api.minimaxi.chat/v1/t2a_v2?GroupId=g-1")
        assert seen["auth"] == "Bearer mm-key"
        assert seen["body"]["voice_setting"]["voice_id"] == "English_radiant_girl"
        assert seen["body"]["model"] == "speech-02-hd"

    def test_provider_error_payload(self):
        from tts_batch.tts.client import get_client

        def handler(request):
            return httpx.Response(200, json={"base_resp": {"status_code": 1002, "status_msg": "rate limit"}})

        client = get_client("minimax", _settings(minimax=self.CREDS), transport=httpx.MockTransport(handler))
        result = asyncio.run(client.generate("Hello.", _params()))
        assert not result.ok
        assert result.error == "minimax error 1002: rate limit"

    def test_missing_audio(self):
        from tts_batch.tts.client import get_client

        def handler(request):
            return httpx.Response(200, json={"data": {}, "base_resp": {"status_code": 0}})

        client = get_client("minimax", _settings(minimax=self.CREDS), transport=httpx.MockTransport(handler))
        result = asyncio.run(client.generate("Hello.", _params()))
        assert not result.ok
        assert "no audio data" in result.error

    def test_http_error_status(self):
        from tts_batch.tts.client import get_client

        def handler(request):
            return httpx.Response(429, text="Too many requests")

        client = get_client("minimax", _settings(minimax=self.CREDS), transport=httpx.MockTransport(handler))
        result = asyncio.run(client.generate("Hello.", _params()))
        assert not result.ok
        assert "429" in result.error
        assert "Too many requests" in result.error

    def test_not_configured(self):
        from tts_batch.tts.client import get_client

        client = get_client("minimax", _settings())
        assert not client.is_configured()
        result = asyncio.run(client.generate("Hello.", _params()))
        assert result.error == "minimax client not configured"

    def test_env_credentials(self, monkeypatch):
        from tts_batch.tts.client import get_client

        monkeypatch.setenv("MINIMAX_API_KEY", "k")
        monkeypatch.setenv("MINIMAX_GROUP_ID", "g")
        assert get_client("minimax", _settings()).is_configured()


class TestElevenLabsClient:
    def test_success_returns_raw_body(self):
        from tts_batch.tts.client import get_client

        seen = {}

        def handler(request):
            seen["path"] = request.url.path
            seen["query"] = dict(request.url.params)
            seen["key"] = request.headers["xi-api-key"]
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, content=MP3, headers={"content-type": "audio/mpeg"})

        client = get_client(
            "elevenlabs",
            _settings(elevenlabs={"api_key": "el-key"}),
            transport=httpx.MockTransport(handler),
        )
        result = asyncio.run(client.generate("Hi.", _params(voice="21m00Tcm4TlvDq8ikWAM", index=0)))

        assert result.ok
        assert seen["path"] == "/v1/text-to-speech/21m00Tcm4TlvDq8ikWAM"
        assert seen["query"] == {"output_format": "mp3_44100_128"}
        assert seen["key"] == "el-key"
        assert seen["body"] == {"text": "Hi.", "model_id": "eleven_multilingual_v2"}

    def test_non_mp3_body_fails(self):
        from tts_batch.tts.client import get_client

        def handler(request):
            return httpx.Response(200, content=b"<html>maintenance</html>")

        client = get_client(
            "elevenlabs",
            _settings(elevenlabs={"api_key": "el-key"}),
            transport=httpx.MockTransport(handler),
        )
        result = asyncio.run(client.generate("Hi.", _params()))
        assert not result.ok
        assert "not MP3" in result.error

    def test_empty_body_fails(self):
        from tts_batch.tts.client import get_client

        client = get_client(
            "elevenlabs",
            _settings(elevenlabs={"api_key": "el-key"}),
            transport=httpx.MockTransport(lambda request: httpx.Response(200, content=b"")),
        )
        result = asyncio.run(client.generate("Hi.", _params()))
        assert result.error == "elevenlabs returned empty audio"

    def test_transport_error_is_a_result(self):
        from tts_batch.tts.client import get_client

        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        client = get_client(
            "elevenlabs",
            _settings(elevenlabs={"api_key": "el-key"}),
            transport=httpx.MockTransport(handler),
        )
        result = asyncio.run(client.generate("Hi.", _params()))
        assert not result.ok
        assert "transport error" in result.error

    def test_timeout_is_a_result(self):
        from tts_batch.tts.client import get_client

        def handler(request):
            raise httpx.ReadTimeout("slow", request=request)

        client = get_client(
            "elevenlabs",
            _settings(elevenlabs={"api_key": "el-key"}),
            timeout_s=5,
            transport=httpx.MockTransport(handler),
        )
        result = asyncio.run(client.generate("Hi.", _params()))
        assert result.error == "elevenlabs request timed out after 5s"


class TestFactory:
    def test_unknown_provider(self, settings):
        from tts_batch.core.config import ConfigValidationError
        from tts_batch.tts.client import get_client

        with pytest.raises(ConfigValidationError):
            get_client("polly", settings)

    def test_fake_client_settings(self):
        from tts_batch.tts.client import get_client

        client = get_client("fake", _settings(fake={"fail_indices": [2]}))
        ok = asyncio.run(client.generate("a", _params(index=1)))
        bad = asyncio.run(client.generate("b", _params(index=2)))
        assert ok.ok and ok.artifact.size > 0
        assert not bad.ok
        assert client.calls == [1, 2]

    def test_artifact_metadata(self):
        from tts_batch.tts.client import get_client

        client = get_client("fake", _settings())
        result = asyncio.run(client.generate("Hello world, fifteen chars plus.", _params(index=0)))
        meta = result.artifact.to_dict()
        assert meta["content_type"] == "audio/mpeg"
        assert meta["duration_estimate_seconds"] >= 1
        assert "audio_bytes" not in meta
        assert result.artifact.size == len(result.artifact.audio_bytes)
