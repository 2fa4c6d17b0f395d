"""Speech synthesis collaborator.

Synthesizers return raw 16-bit little-endian mono PCM at settings.tts_sample_rate.
An empty byte string means the service produced no audio for the text.
"""

import base64
import logging
from typing import Protocol

import httpx

from narrator.config import get_settings
from narrator.exceptions import SynthesisError

logger = logging.getLogger(__name__)


class SpeechSynthesizer(Protocol):
    async def synthesize(self, text: str, voice: str) -> bytes:
        ...


class GeminiSpeechSynthesizer:
    """SpeechSynthesizer backed by the Gemini TTS model."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        settings = get_settings()
        self.api_key = api_key if api_key is not None else settings.gemini_api_key
        self.model = model or settings.tts_model
        self.api_base = settings.gemini_api_base
        self.timeout = settings.ai_request_timeout_s
        self._transport = transport

    async def synthesize(self, text: str, voice: str) -> bytes:
        """Synthesize one sentence with a prebuilt voice.

        Raises:
            SynthesisError: On HTTP errors, timeouts or undecodable audio
        """
        if not self.api_key:
            raise SynthesisError(reason="Gemini API key not configured")

        payload = {
            "contents": [{"parts": [{"text": text}]}],
            "generationConfig": {
                "responseModalities": ["AUDIO"],
                "speechConfig": {
                    "voiceConfig": {"prebuiltVoiceConfig": {"voiceName": voice}},
                },
            },
        }
        url = f"{self.api_base}/models/{self.model}:generateContent?key={self.api_key}"

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(url, headers={"Content-Type": "application/json"}, json=payload)
        except httpx.TimeoutException as e:
            logger.error("[TTS] Gemini API timeout")
            raise SynthesisError(reason="request timed out") from e
        except httpx.HTTPError as e:
            logger.error(f"[TTS] Gemini request failed: {e}")
            raise SynthesisError(reason=str(e)) from e

        if response.status_code != 200:
            logger.error(f"[TTS] Gemini API error: {response.status_code} - {response.text}")
            raise SynthesisError(reason=f"HTTP {response.status_code}")

        try:
            candidates = response.json().get("candidates", [])
            parts = candidates[0].get("content", {}).get("parts", []) if candidates else []
            data = next((p["inlineData"].get("data") for p in parts if "inlineData" in p), None)
        except (ValueError, KeyError, IndexError, AttributeError, TypeError) as e:
            logger.error(f"[TTS] Malformed Gemini response: {e}")
            raise SynthesisError(reason="malformed response") from e

        if not data:
            logger.warning(f"[TTS] No audio in response for {text[:40]!r}")
            return b""

        try:
            return base64.b64decode(data)
        except ValueError as e:
            raise SynthesisError(reason=f"invalid audio payload: {e}") from e
