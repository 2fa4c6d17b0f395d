"""Narration assembly: translated script -> per-sentence speech -> one timed track.

For every requested language the assembler:
1. Translates the script and each text element (unless it is the native language)
2. Splits the script into sentences
3. Synthesizes each sentence to 16-bit PCM and decodes it
4. Assigns word timestamps proportional to character length
5. Concatenates the sentence buffers into one track

Word timing is a heuristic, not phoneme-accurate: a word's share of the
sentence duration is its share of the sentence's characters. SubtitleWord is
an opaque timing record to the rest of the pipeline, so a timed collaborator
can replace assign_word_timings() without other changes.
"""

import asyncio
import logging
import re
from dataclasses import dataclass, field

import numpy as np

from narrator.config import get_settings
from narrator.exceptions import NarratorError, SynthesisError, TranslationError
from narrator.schemas.element import TextElement, clone_elements
from narrator.schemas.envelope import ErrorLocation
from narrator.services.speech_service import SpeechSynthesizer
from narrator.services.translation_service import Translator

logger = logging.getLogger(__name__)

_SENTENCE_RE = re.compile(r"[^.!?\n\r]+[.!?\n\r]*\s*")


# ============================================================================
# Dataclasses
# ============================================================================


@dataclass(frozen=True)
class SubtitleWord:
    """One narrated word with its time span in the language track (seconds)."""

    word: str
    start_time: float
    end_time: float
    global_index: int
    sentence_index: int


@dataclass
class AudioVariant:
    """Language-specific narration track, subtitle timeline and element list."""

    language_code: str
    audio: np.ndarray  # float32, shape (channels, frames)
    sample_rate: int
    subtitles: tuple[SubtitleWord, ...] = ()
    elements: list = field(default_factory=list)

    @property
    def channels(self) -> int:
        return int(self.audio.shape[0])

    @property
    def frames(self) -> int:
        return int(self.audio.shape[1])

    @property
    def duration(self) -> float:
        return self.frames / self.sample_rate


@dataclass
class AssemblyResult:
    """Outcome of assembling a set of languages.

    Languages are independent: a failure in one never removes another's
    completed variant.
    """

    variants: dict[str, AudioVariant] = field(default_factory=dict)
    failures: dict[str, NarratorError] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failures


# ============================================================================
# Pure helpers
# ============================================================================


def split_sentences(script: str) -> list[str]:
    """Split a script on sentence punctuation and line breaks.

    Returns trimmed, non-empty sentences; punctuation stays attached.
    """
    stripped = script.strip()
    pieces = _SENTENCE_RE.findall(stripped) or [stripped]
    return [piece.strip() for piece in pieces if piece.strip()]


def decode_pcm16(data: bytes, channels: int = 1) -> np.ndarray:
    """Decode interleaved little-endian 16-bit PCM to float32 (channels, frames)."""
    usable = len(data) - (len(data) % (2 * channels))
    samples = np.frombuffer(data[:usable], dtype="<i2").astype(np.float32) / 32768.0
    return samples.reshape(-1, channels).T.copy()


def assign_word_timings(
    sentence: str,
    duration: float,
    offset: float,
    sentence_index: int,
    first_global_index: int,
) -> list[SubtitleWord]:
    """Spread a sentence's duration over its words by character length.

    Each word counts its length plus one separator, including the last word.
    The last word's end is pinned to offset + duration to absorb rounding.

    Args:
        sentence: Trimmed sentence text
        duration: Measured audio duration of the sentence in seconds
        offset: Duration of all previous sentences in the track
        sentence_index: Index of the sentence among synthesized sentences
        first_global_index: Global index of the sentence's first word

    Returns:
        Timed words; empty when the sentence has no words or no duration
    """
    words = [w for w in sentence.split() if w]
    total_chars = sum(len(w) + 1 for w in words)
    if total_chars == 0 or duration <= 0:
        return []

    timed: list[SubtitleWord] = []
    accumulated = 0
    for position, word in enumerate(words):
        start = offset + (accumulated / total_chars) * duration
        accumulated += len(word) + 1
        end = offset + (accumulated / total_chars) * duration
        timed.append(
            SubtitleWord(
                word=word,
                start_time=start,
                end_time=end,
                global_index=first_global_index + position,
                sentence_index=sentence_index,
            )
        )

    last = timed[-1]
    timed[-1] = SubtitleWord(
        word=last.word,
        start_time=last.start_time,
        end_time=offset + duration,
        global_index=last.global_index,
        sentence_index=last.sentence_index,
    )
    return timed


def concatenate_buffers(buffers: list[np.ndarray]) -> np.ndarray:
    """Join sentence buffers in order into one (channels, frames) track.

    The output has as many channels as the widest buffer; a narrower buffer
    fills each missing channel from its highest available channel index
    below it (channel c reads min(c, channels - 1)). No buffers gives a
    single silent frame.
    """
    if not buffers:
        return np.zeros((1, 1), dtype=np.float32)

    channels = max(b.shape[0] for b in buffers)
    total = sum(b.shape[1] for b in buffers)
    track = np.zeros((channels, total), dtype=np.float32)

    offset = 0
    for buffer in buffers:
        length = buffer.shape[1]
        for channel in range(channels):
            source = min(channel, buffer.shape[0] - 1)
            track[channel, offset : offset + length] = buffer[source]
        offset += length
    return track


# ============================================================================
# Assembler
# ============================================================================


class TimedAudioAssembler:
    """Builds one AudioVariant per language from a narration script."""

    def __init__(
        self,
        translator: Translator,
        synthesizer: SpeechSynthesizer,
        native_language: str | None = None,
        sample_rate: int | None = None,
        channels: int | None = None,
        max_concurrency: int | None = None,
    ):
        settings = get_settings()
        self.translator = translator
        self.synthesizer = synthesizer
        self.native_language = native_language or settings.native_language
        self.sample_rate = sample_rate or settings.tts_sample_rate
        self.channels = channels or settings.tts_channels
        self.max_concurrency = max_concurrency or settings.assembly_max_concurrency

    async def assemble(
        self,
        script: str,
        voice: str,
        languages: list[str],
        elements: list,
    ) -> AssemblyResult:
        """Assemble every language, isolating failures per language.

        Languages run concurrently up to max_concurrency; the result is only
        returned once all of them have finished.

        Args:
            script: Narration script in the native language
            voice: Voice identifier passed to the synthesizer
            languages: Language codes to produce, in order
            elements: Base element list (never modified)

        Returns:
            AssemblyResult with completed variants (in request order) and failures
        """
        if not script.strip():
            raise ValueError("Narration script is empty")
        if not languages:
            raise ValueError("At least one language is required")

        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def run(language: str) -> AudioVariant:
            async with semaphore:
                return await self.assemble_language(script, voice, language, elements)

        outcomes = await asyncio.gather(*(run(lang) for lang in languages), return_exceptions=True)

        result = AssemblyResult()
        for language, outcome in zip(languages, outcomes):
            if isinstance(outcome, NarratorError):
                logger.error(f"[ASSEMBLY] {language} failed: {outcome.message}")
                result.failures[language] = outcome
            elif isinstance(outcome, Exception):
                logger.exception(f"[ASSEMBLY] {language} failed unexpectedly", exc_info=outcome)
                result.failures[language] = NarratorError(
                    f"Narration for {language} failed: {outcome}",
                    location=ErrorLocation(language=language),
                )
            elif isinstance(outcome, BaseException):
                raise outcome
            else:
                result.variants[language] = outcome
        return result

    async def assemble_language(
        self,
        script: str,
        voice: str,
        language: str,
        elements: list,
    ) -> AudioVariant:
        """Assemble a single language variant.

        Raises:
            TranslationError: Script or element translation failed
            SynthesisError: A sentence's synthesis failed
        """
        logger.info(f"[ASSEMBLY] Building {language} variant")
        translated_script, variant_elements = await self._translate(script, language, elements)

        sentences = split_sentences(translated_script)
        buffers: list[np.ndarray] = []
        subtitles: list[SubtitleWord] = []
        cumulative = 0.0
        global_index = 0

        for sentence in sentences:
            try:
                pcm = await self.synthesizer.synthesize(sentence, voice)
            except NarratorError as e:
                if isinstance(e, SynthesisError) and e.location is not None:
                    raise
                raise SynthesisError(language, getattr(e, "reason", None) or e.message) from e
            if not pcm:
                logger.warning(f"[ASSEMBLY] No audio returned for sentence in {language}, skipping")
                continue

            buffer = decode_pcm16(pcm, self.channels)
            buffers.append(buffer)
            duration = buffer.shape[1] / self.sample_rate
            word_count = len(sentence.split())

            subtitles.extend(
                assign_word_timings(
                    sentence,
                    duration,
                    cumulative,
                    sentence_index=len(buffers) - 1,
                    first_global_index=global_index,
                )
            )
            global_index += word_count
            cumulative += duration

        audio = concatenate_buffers(buffers)
        variant = AudioVariant(
            language_code=language,
            audio=audio,
            sample_rate=self.sample_rate,
            subtitles=tuple(subtitles),
            elements=variant_elements,
        )
        logger.info(
            f"[ASSEMBLY] {language}: {len(buffers)} sentences, "
            f"{len(subtitles)} words, {variant.duration:.2f}s"
        )
        return variant

    async def _translate(self, script: str, language: str, elements: list) -> tuple[str, list]:
        """Translate the script and text elements for a language.

        The native language reuses the originals verbatim; elements are always
        deep-copied so the variant owns its list.
        """
        text_elements = [el for el in elements if isinstance(el, TextElement)]
        if language == self.native_language:
            return script, clone_elements(elements)

        try:
            translated_script = await self.translator.translate(script, language, kind="script")
            contents = await asyncio.gather(
                *(self.translator.translate(el.content, language, kind="element") for el in text_elements)
            )
        except TranslationError:
            raise
        except NarratorError as e:
            raise TranslationError(language, e.message) from e

        overrides = {
            el.id: {"content": content or el.content}
            for el, content in zip(text_elements, contents)
        }
        return translated_script, clone_elements(elements, overrides)
