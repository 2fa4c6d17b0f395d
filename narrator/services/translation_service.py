"""Translation collaborator.

The assembler and CTA batch builder only depend on the Translator protocol;
GeminiTranslator is the shipped adapter over the Gemini generateContent API.
"""

import logging
from typing import Literal, Protocol

import httpx

from narrator.config import get_settings
from narrator.constants.catalog import language_name
from narrator.exceptions import TranslationError

logger = logging.getLogger(__name__)

TranslationKind = Literal["script", "element", "cta"]

_PROMPTS: dict[str, str] = {
    "script": (
        "Traduza o seguinte texto para {language} de forma natural e fluida. "
        "Retorne apenas o texto traduzido, sem qualquer outra formatação ou introdução:"
        '\n\n"{text}"'
    ),
    "element": (
        "Traduza o seguinte texto para {language} para um CTA em um vídeo. "
        'Retorne APENAS o texto traduzido, nada mais:\n\n"{text}"'
    ),
    "cta": (
        "Traduza o seguinte texto de forma curta e direta para {language} para um botão "
        'de call-to-action. Retorne APENAS o texto traduzido:\n\n"{text}"'
    ),
}


class Translator(Protocol):
    async def translate(self, text: str, target_language: str, *, kind: TranslationKind = "script") -> str:
        ...


def clean_translation(text: str) -> str:
    """Trim whitespace and one pair of surrounding quotes the model tends to echo."""
    cleaned = text.strip()
    if len(cleaned) >= 2 and cleaned[0] == cleaned[-1] and cleaned[0] in "\"'":
        cleaned = cleaned[1:-1].strip()
    return cleaned


class GeminiTranslator:
    """Translator backed by Gemini text generation."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        settings = get_settings()
        self.api_key = api_key if api_key is not None else settings.gemini_api_key
        self.model = model or settings.translation_model
        self.api_base = settings.gemini_api_base
        self.timeout = settings.ai_request_timeout_s
        self._transport = transport

    def _url(self) -> str:
        return f"{self.api_base}/models/{self.model}:generateContent?key={self.api_key}"

    async def translate(self, text: str, target_language: str, *, kind: TranslationKind = "script") -> str:
        """Translate text into the target language.

        Args:
            text: Source text (Portuguese in the editor)
            target_language: Language code, e.g. "en"
            kind: "script" for narration, "element"/"cta" for short overlay text

        Returns:
            Translated text, trimmed and unquoted

        Raises:
            TranslationError: On HTTP errors, timeouts or an empty response
        """
        if not self.api_key:
            raise TranslationError(target_language, "Gemini API key not configured")

        prompt = _PROMPTS[kind].format(language=language_name(target_language), text=text)
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(
                    self._url(),
                    headers={"Content-Type": "application/json"},
                    json={"contents": [{"parts": [{"text": prompt}]}]},
                )
        except httpx.TimeoutException as e:
            logger.error(f"[TRANSLATE] Gemini API timeout ({target_language})")
            raise TranslationError(target_language, "request timed out") from e
        except httpx.HTTPError as e:
            logger.error(f"[TRANSLATE] Gemini request failed ({target_language}): {e}")
            raise TranslationError(target_language, str(e)) from e

        if response.status_code != 200:
            logger.error(f"[TRANSLATE] Gemini API error: {response.status_code} - {response.text}")
            raise TranslationError(target_language, f"HTTP {response.status_code}")

        try:
            candidates = response.json().get("candidates", [])
            parts = candidates[0].get("content", {}).get("parts", []) if candidates else []
            translated = clean_translation("".join(part.get("text", "") for part in parts))
        except (ValueError, KeyError, IndexError, AttributeError, TypeError) as e:
            logger.error(f"[TRANSLATE] Malformed Gemini response ({target_language}): {e}")
            raise TranslationError(target_language, "malformed response") from e

        if not translated:
            raise TranslationError(target_language, "empty response")

        logger.debug(f"[TRANSLATE] {kind} -> {target_language}: {len(translated)} chars")
        return translated
