"""Tests for the Gemini translation adapter (httpx MockTransport, no network)."""

import json

import httpx
import pytest

from narrator.exceptions import TranslationError
from narrator.services.translation_service import GeminiTranslator, clean_translation


def gemini_text_response(text: str) -> dict:
    return {"candidates": [{"content": {"parts": [{"text": text}]}, "finishReason": "STOP"}]}


class TestCleanTranslation:
    def test_strips_whitespace_and_quotes(self):
        assert clean_translation('  "Buy Now!"\n') == "Buy Now!"

    def test_keeps_inner_quotes(self):
        assert clean_translation('Say "hi" now') == 'Say "hi" now'


class TestGeminiTranslator:
    @pytest.mark.asyncio
    async def test_posts_prompt_and_returns_text(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json=gemini_text_response('"Buy now!"'))

        translator = GeminiTranslator(api_key="k", model="m", transport=httpx.MockTransport(handler))
        result = await translator.translate("Compre agora!", "en", kind="cta")

        assert result == "Buy now!"
        assert "/models/m:generateContent?key=k" in seen["url"]
        prompt = seen["body"]["contents"][0]["parts"][0]["text"]
        assert "English" in prompt
        assert "call-to-action" in prompt
        assert '"Compre agora!"' in prompt

    @pytest.mark.asyncio
    async def test_script_prompt(self):
        seen = {}

        def handler(request):
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json=gemini_text_response("Hello"))

        translator = GeminiTranslator(api_key="k", transport=httpx.MockTransport(handler))
        await translator.translate("Olá", "es")
        assert "natural e fluida" in seen["body"]["contents"][0]["parts"][0]["text"]

    @pytest.mark.asyncio
    async def test_http_error_raises(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(503, text="overloaded"))
        translator = GeminiTranslator(api_key="k", transport=transport)

        with pytest.raises(TranslationError) as exc_info:
            await translator.translate("Olá", "de")
        assert "HTTP 503" in exc_info.value.message
        assert exc_info.value.location.language == "de"

    @pytest.mark.asyncio
    async def test_timeout_raises(self):
        def handler(request):
            raise httpx.ReadTimeout("slow", request=request)

        translator = GeminiTranslator(api_key="k", transport=httpx.MockTransport(handler))
        with pytest.raises(TranslationError):
            await translator.translate("Olá", "fr")

    @pytest.mark.asyncio
    async def test_non_json_body_raises(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(200, text="<html>gateway</html>"))
        translator = GeminiTranslator(api_key="k", transport=transport)

        with pytest.raises(TranslationError) as exc_info:
            await translator.translate("Olá", "es")
        assert exc_info.value.reason == "malformed response"

    @pytest.mark.asyncio
    async def test_empty_candidates_raise(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(200, json={"candidates": []}))
        translator = GeminiTranslator(api_key="k", transport=transport)
        with pytest.raises(TranslationError):
            await translator.translate("Olá", "it")

    @pytest.mark.asyncio
    async def test_missing_api_key(self):
        with pytest.raises(TranslationError):
            await GeminiTranslator(api_key="").translate("Olá", "en")
