"""Narrated exports built from the variant store.

Single export renders the selected language; "export all" renders every
stored variant in order as one batch.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from narrator.config import get_settings
from narrator.render.pipeline import BatchExportJob, CancelToken, ExportJob, PendingJob, default_anchor
from narrator.schemas.export import DurationPolicy, SubtitleAnchor
from narrator.services.variant_store import VariantStore

logger = logging.getLogger(__name__)


@dataclass
class NarratedExportOptions:
    """Export settings shared by every language of a narrated export."""

    start_offset: float = 0.0
    duration_policy: DurationPolicy = DurationPolicy.AUTOMATIC
    end_padding: float = field(default_factory=lambda: get_settings().default_end_padding_s)
    subtitle_anchor: SubtitleAnchor = field(default_factory=default_anchor)
    original_volume: float = 0.0


class NarratedExportService:
    def __init__(self, store: VariantStore, source_path: str):
        self.store = store
        self.source_path = source_path
        self.video_bitrate = get_settings().render_video_bitrate

    def job_for(self, language: str, options: NarratedExportOptions) -> ExportJob:
        """Build a job for a stored variant.

        Raises:
            VariantNotFoundError: No narration was generated for the language
        """
        variant = self.store.get(language)
        return ExportJob(
            source_path=self.source_path,
            variant=variant,
            elements=variant.elements,
            start_offset=options.start_offset,
            duration_policy=options.duration_policy,
            end_padding=options.end_padding,
            subtitle_anchor=options.subtitle_anchor,
            original_volume=options.original_volume,
            video_bitrate=self.video_bitrate,
        )

    def selected_job(self, options: NarratedExportOptions) -> ExportJob:
        return self.job_for(self.store.selected_language or "", options)

    def batch(
        self,
        options: NarratedExportOptions,
        languages: Optional[list[str]] = None,
        cancel_token: Optional[CancelToken] = None,
    ) -> BatchExportJob:
        """One job per language (default: every stored variant), looked up when it starts."""
        languages = languages if languages is not None else self.store.languages
        batch = BatchExportJob(cancel_token=cancel_token or CancelToken())
        for language in languages:
            batch.jobs.append(PendingJob(language=language, build=self._job_factory(language, options)))
        logger.info(f"[EXPORT] Narrated batch: {', '.join(languages)}")
        return batch

    def _job_factory(self, language: str, options: NarratedExportOptions):
        async def build_job() -> ExportJob:
            return self.job_for(language, options)

        return build_job
