"""Tests for the Gemini speech synthesis adapter."""

import base64
import json

import httpx
import pytest

from narrator.exceptions import SynthesisError
from narrator.services.speech_service import GeminiSpeechSynthesizer


def audio_response(pcm: bytes) -> dict:
    encoded = base64.b64encode(pcm).decode()
    return {
        "candidates": [
            {"content": {"parts": [{"inlineData": {"mimeType": "audio/L16;rate=24000", "data": encoded}}]}}
        ]
    }


class TestGeminiSpeechSynthesizer:
    @pytest.mark.asyncio
    async def test_requests_audio_with_prebuilt_voice(self):
        seen = {}

        def handler(request):
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json=audio_response(b"\x01\x00\x02\x00"))

        synthesizer = GeminiSpeechSynthesizer(api_key="k", transport=httpx.MockTransport(handler))
        pcm = await synthesizer.synthesize("Olá mundo.", "Kore")

        assert pcm == b"\x01\x00\x02\x00"
        config = seen["body"]["generationConfig"]
        assert config["responseModalities"] == ["AUDIO"]
        assert config["speechConfig"]["voiceConfig"]["prebuiltVoiceConfig"]["voiceName"] == "Kore"
        assert seen["body"]["contents"][0]["parts"][0]["text"] == "Olá mundo."

    @pytest.mark.asyncio
    async def test_missing_audio_returns_empty(self):
        transport = httpx.MockTransport(
            lambda request: httpx.Response(200, json={"candidates": [{"content": {"parts": [{"text": "no"}]}}]})
        )
        synthesizer = GeminiSpeechSynthesizer(api_key="k", transport=transport)
        assert await synthesizer.synthesize("Olá", "Zephyr") == b""

    @pytest.mark.asyncio
    async def test_http_error_raises(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(429, text="quota"))
        synthesizer = GeminiSpeechSynthesizer(api_key="k", transport=transport)
        with pytest.raises(SynthesisError) as exc_info:
            await synthesizer.synthesize("Olá", "Zephyr")
        assert exc_info.value.reason == "HTTP 429"

    @pytest.mark.asyncio
    async def test_non_json_body_raises(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(200, text="<html>gateway</html>"))
        synthesizer = GeminiSpeechSynthesizer(api_key="k", transport=transport)
        with pytest.raises(SynthesisError) as exc_info:
            await synthesizer.synthesize("Olá", "Zephyr")
        assert exc_info.value.reason == "malformed response"
