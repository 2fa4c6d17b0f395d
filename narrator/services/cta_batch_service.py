"""CTA batch export: one master call-to-action stamped onto up to five videos.

Each video slot carries its own language. The master CTA is translated per
slot (short button-style prompt) right before that slot renders, so a batch
that stops early never translates the slots it did not reach. The videos keep
their own sound; there is no narration.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from narrator.config import get_settings
from narrator.exceptions import InvalidExportRequestError, NarratorError, TranslationError
from narrator.render.pipeline import BatchExportJob, CancelToken, ExportJob, PendingJob, cta_artifact_name
from narrator.schemas.element import TextElement, clone_elements, default_cta
from narrator.schemas.export import DurationPolicy
from narrator.services.translation_service import Translator

logger = logging.getLogger(__name__)

MAX_VIDEO_SLOTS = 5


@dataclass
class VideoSlot:
    """A source video and the language its CTA should be in."""

    source_path: Optional[str] = None
    language: str = "pt"


class CtaBatchBuilder:
    """Turns video slots plus a master CTA into a lazily-built export batch."""

    def __init__(self, translator: Translator, native_language: Optional[str] = None):
        settings = get_settings()
        self.translator = translator
        self.native_language = native_language or settings.native_language
        self.video_bitrate = settings.cta_video_bitrate

    async def localized_cta(self, master: TextElement, language: str) -> TextElement:
        """Copy of the master CTA with its content in the given language.

        Raises:
            TranslationError: The translation collaborator failed
        """
        content = master.content
        if language != self.native_language:
            try:
                content = await self.translator.translate(master.content, language, kind="cta")
            except TranslationError:
                raise
            except NarratorError as e:
                raise TranslationError(language, e.message) from e
        return clone_elements([master], {master.id: {"content": content}})[0]

    def build(
        self,
        slots: list[VideoSlot],
        master: Optional[TextElement] = None,
        cancel_token: Optional[CancelToken] = None,
    ) -> BatchExportJob:
        """
        Build a batch over the filled slots, in slot order.

        Args:
            slots: Up to five video slots; empty slots are ignored
            master: Master CTA element (defaults to the stock "Compre Agora!")
            cancel_token: Shared cancel flag for the batch

        Returns:
            BatchExportJob of PendingJob entries

        Raises:
            InvalidExportRequestError: No filled slots or too many slots
        """
        if len(slots) > MAX_VIDEO_SLOTS:
            raise InvalidExportRequestError(f"At most {MAX_VIDEO_SLOTS} videos per batch")
        filled = [slot for slot in slots if slot.source_path]
        if not filled:
            raise InvalidExportRequestError("Add at least one video to export")

        master = master or default_cta()
        batch = BatchExportJob(cancel_token=cancel_token or CancelToken())
        for position, slot in enumerate(filled, start=1):
            batch.jobs.append(
                PendingJob(language=slot.language, build=self._job_factory(slot, position, master))
            )
        logger.info(f"[CTA] Batch of {len(filled)} videos: {', '.join(s.language for s in filled)}")
        return batch

    def _job_factory(self, slot: VideoSlot, position: int, master: TextElement):
        async def build_job() -> ExportJob:
            cta = await self.localized_cta(master, slot.language)
            return ExportJob(
                source_path=slot.source_path,
                elements=[cta],
                language=slot.language,
                start_offset=0.0,
                duration_policy=DurationPolicy.SOURCE_LENGTH,
                original_volume=1.0,
                artifact_name=cta_artifact_name(slot.language, position),
                video_bitrate=self.video_bitrate,
            )

        return build_job
