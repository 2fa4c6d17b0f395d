"""
Export pipeline: frame-by-frame render of a source video with overlays,
karaoke subtitles and a mixed audio track.

Job lifecycle:
    IDLE -> PREPARING -> RENDERING -> FINALIZING -> COMPLETED
                                                 -> CANCELLED / FAILED

Every job resolves to exactly one of: a delivered artifact, a failure reason
(ErrorInfo) or a cancellation. Batches run their jobs strictly in sequence and
stop at the first job that does not complete.
"""

import asyncio
import logging
import math
import shutil
import tempfile
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional, Union
from uuid import uuid4

from narrator.config import get_settings
from narrator.constants.catalog import language_name
from narrator.exceptions import (
    AssetLoadError,
    ExportCancelledError,
    InvalidExportRequestError,
    NarratorError,
    VariantNotFoundError,
)
from narrator.render.audio_mixer import AudioMixBuilder
from narrator.render.encoder import EncodingProfile, StreamEncoder, select_profile
from narrator.render.layer_compositor import ImageCache, OverlayCompositor, load_image_asset
from narrator.render.source import SourceVideo
from narrator.render.subtitle_renderer import SubtitleRenderer
from narrator.schemas.element import ImageElement
from narrator.schemas.export import (
    BatchExportResult,
    DurationPolicy,
    ExportResult,
    ExportStatus,
    SubtitleAnchor,
)
from narrator.services.artifact_sink import ArtifactSink
from narrator.services.narration_assembler import AudioVariant

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[float, str], Any]


def _default_end_padding() -> float:
    return get_settings().default_end_padding_s


def default_anchor() -> SubtitleAnchor:
    settings = get_settings()
    return SubtitleAnchor(x=settings.default_subtitle_anchor_x, y=settings.default_subtitle_anchor_y)


# ============================================================================
# Dataclasses
# ============================================================================


class CancelToken:
    """Cooperative cancel flag shared by the jobs of a batch.

    Set by the invoker, polled by the frame loop once per frame.
    """

    def __init__(self):
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True

    def reset(self) -> None:
        self._cancelled = False


@dataclass
class ExportJob:
    """One source video rendered to one artifact."""

    source_path: str
    variant: Optional[AudioVariant] = None
    elements: Optional[list] = None  # defaults to the variant's elements
    language: Optional[str] = None  # defaults to the variant's language
    start_offset: float = 0.0
    duration_policy: DurationPolicy = DurationPolicy.AUTOMATIC
    end_padding: float = field(default_factory=_default_end_padding)
    subtitle_anchor: SubtitleAnchor = field(default_factory=default_anchor)
    original_volume: float = 0.0
    artifact_name: Optional[str] = None
    video_bitrate: Optional[str] = None
    cancel_token: CancelToken = field(default_factory=CancelToken)
    id: str = field(default_factory=lambda: uuid4().hex)
    status: ExportStatus = ExportStatus.IDLE
    progress: float = 0.0

    def __post_init__(self):
        if self.language is None and self.variant is not None:
            self.language = self.variant.language_code
        if self.elements is None:
            self.elements = list(self.variant.elements) if self.variant is not None else []


@dataclass
class PendingJob:
    """A batch entry built right before it renders."""

    language: str
    build: Callable[[], Awaitable[ExportJob]]


BatchEntry = Union[ExportJob, PendingJob]


@dataclass
class BatchExportJob:
    """Ordered jobs sharing one cancel token."""

    jobs: list[BatchEntry] = field(default_factory=list)
    cancel_token: CancelToken = field(default_factory=CancelToken)


# ============================================================================
# Helpers
# ============================================================================


def compute_export_duration(
    narration_duration: float,
    source_duration: float,
    start_offset: float,
    policy: DurationPolicy,
    end_padding: float,
) -> float:
    """Output duration in seconds for a job.

    Narration plus padding, never running past the end of the source. The
    source-length policy ignores narration and renders the remaining source.

    Raises:
        InvalidExportRequestError: Start offset outside [0, source_duration)
    """
    if not (0 <= start_offset < source_duration):
        raise InvalidExportRequestError(
            f"Start offset {start_offset:.3f}s is outside the source (0-{source_duration:.3f}s)"
        )
    remaining = source_duration - start_offset
    if policy == DurationPolicy.SOURCE_LENGTH:
        return remaining
    return min(narration_duration + end_padding, remaining)


def total_frame_count(duration: float, fps: Optional[int] = None) -> int:
    return math.ceil(duration * (fps or get_settings().render_fps))


def narrated_artifact_name(language: str, timestamp_ms: Optional[int] = None) -> str:
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    return f"narrated_{language}_{timestamp_ms}"


def cta_artifact_name(language: str, position: int) -> str:
    """Name for the position-th (1-based) video of a CTA batch."""
    return f"video_cta_{language}_{position}"


# ============================================================================
# Orchestrator
# ============================================================================


class ExportOrchestrator:
    """
    Runs export jobs and batches.

    Owns the image cache (element id -> bitmap), which persists across jobs.
    Source, encoder and mix builder are created through factories so the frame
    loop can run against fakes.
    """

    def __init__(
        self,
        sink: Optional[ArtifactSink] = None,
        compositor: Optional[OverlayCompositor] = None,
        subtitle_renderer: Optional[SubtitleRenderer] = None,
        source_factory: Callable[[str], Any] = SourceVideo,
        encoder_factory: Callable[..., Any] = StreamEncoder,
        mix_builder_factory: Callable[..., Any] = AudioMixBuilder,
        profile: Optional[EncodingProfile] = None,
    ):
        settings = get_settings()
        self.fps = settings.render_fps
        self.work_dir_prefix = settings.work_dir_prefix
        self.sink = sink or ArtifactSink()
        self.compositor = compositor or OverlayCompositor()
        self.subtitle_renderer = subtitle_renderer or SubtitleRenderer()
        self._source_factory = source_factory
        self._encoder_factory = encoder_factory
        self._mix_builder_factory = mix_builder_factory
        self._profile = profile

        self.image_cache: ImageCache = {}
        self.status = ExportStatus.IDLE
        self._progress_callback: Optional[ProgressCallback] = None
        self._batch_position: Optional[tuple[int, int, str]] = None

    def set_progress_callback(self, callback: Optional[ProgressCallback]) -> None:
        """Set callback receiving (percent 0-100, status message)."""
        self._progress_callback = callback

    def _update_progress(self, percent: float, message: str) -> None:
        if self._progress_callback:
            self._progress_callback(percent, message)

    def _report_frame(self, job_percent: float) -> None:
        if self._batch_position is None:
            self._update_progress(job_percent, f"Rendering: {job_percent:.0f}%")
            return
        position, total, language = self._batch_position
        overall = ((position - 1) + job_percent / 100) / total * 100
        self._update_progress(
            overall,
            f"Rendering {position}/{total} ({language_name(language)}): {job_percent:.0f}%",
        )

    def preload_images(self, elements: list) -> None:
        """Decode image elements missing from the cache; failures are skipped."""
        for element in elements:
            if not isinstance(element, ImageElement) or element.id in self.image_cache:
                continue
            try:
                self.image_cache[element.id] = load_image_asset(element)
            except AssetLoadError as e:
                logger.warning(f"[EXPORT] {e.message}, element will not be drawn")

    # =========================================================================
    # Single job
    # =========================================================================

    async def run_job(self, job: ExportJob) -> ExportResult:
        """Run one export job with a fresh cancel flag."""
        job.cancel_token.reset()
        self._batch_position = None
        return await self._run_job(job)

    async def _run_job(self, job: ExportJob) -> ExportResult:
        self.status = job.status = ExportStatus.PREPARING
        self._update_progress(0, "Preparing export")
        work_dir = Path(tempfile.mkdtemp(prefix=self.work_dir_prefix))
        source = self._source_factory(job.source_path)
        encoder = None
        frames = 0

        try:
            if job.variant is None and job.duration_policy != DurationPolicy.SOURCE_LENGTH:
                raise VariantNotFoundError(job.language)

            await source.open()
            narration_duration = job.variant.duration if job.variant is not None else 0.0
            duration = compute_export_duration(
                narration_duration,
                source.duration,
                job.start_offset,
                job.duration_policy,
                job.end_padding,
            )
            total_frames = total_frame_count(duration, self.fps)
            logger.info(
                f"[EXPORT] Job {job.id} ({job.language or 'no narration'}): "
                f"{duration:.2f}s from {job.start_offset:.2f}s, {total_frames} frames"
            )

            self.compositor.clear_resized()
            self.preload_images(job.elements)

            mix = self._mix_builder_factory(work_dir, probe=lambda _path: source.has_audio).build(
                source_path=job.source_path,
                start_offset=job.start_offset,
                duration=duration,
                variant=job.variant,
                original_volume=job.original_volume,
            )
            profile = self._profile or select_profile()
            encoder = self._encoder_factory(
                output_path=work_dir / f"{job.id}.{profile.extension}",
                width=source.width,
                height=source.height,
                mix=mix,
                duration=duration,
                profile=profile,
                video_bitrate=job.video_bitrate,
            )
            encoder.start()

            self.status = job.status = ExportStatus.RENDERING
            frames = await self._render_frames(job, source, encoder, total_frames)
            if job.cancel_token.cancelled:
                raise ExportCancelledError()

            self.status = job.status = ExportStatus.FINALIZING
            self._update_progress(100, "Finalizing")
            temp_path = await asyncio.to_thread(encoder.stop)
            encoder = None
            # Cancelled while finalizing: the temp file goes with the work dir
            if job.cancel_token.cancelled:
                raise ExportCancelledError()
            artifact_name = job.artifact_name or narrated_artifact_name(job.language or "source")
            artifact = self.sink.deliver(temp_path, artifact_name)

            self.status = job.status = ExportStatus.COMPLETED
            logger.info(f"[EXPORT] Job {job.id} completed: {artifact}")
            return ExportResult(
                job_id=job.id,
                language=job.language,
                status=ExportStatus.COMPLETED,
                artifact_path=str(artifact),
                frames_rendered=frames,
            )

        except ExportCancelledError as e:
            self.status = job.status = ExportStatus.CANCELLED
            logger.info(f"[EXPORT] Job {job.id} cancelled after {job.progress:.0f}%")
            return self._failed_result(job, ExportStatus.CANCELLED, e)

        except NarratorError as e:
            self.status = job.status = ExportStatus.FAILED
            logger.error(f"[EXPORT] Job {job.id} failed: [{e.code}] {e.message}")
            return self._failed_result(job, ExportStatus.FAILED, e)

        except Exception as e:
            self.status = job.status = ExportStatus.FAILED
            logger.exception(f"[EXPORT] Job {job.id} failed unexpectedly")
            return self._failed_result(job, ExportStatus.FAILED, NarratorError(str(e)))

        finally:
            if encoder is not None:
                encoder.abort()
            source.close()
            shutil.rmtree(work_dir, ignore_errors=True)

    async def _render_frames(self, job: ExportJob, source: Any, encoder: Any, total_frames: int) -> int:
        """Frame loop. Returns the number of frames handed to the encoder."""
        frames = 0
        for index in range(total_frames):
            if job.cancel_token.cancelled:
                raise ExportCancelledError()

            video_time = job.start_offset + index / self.fps
            if video_time > source.duration:
                logger.info(f"[EXPORT] Reached end of source at frame {index}, stopping early")
                break

            frame = await source.seek(video_time)
            self.compositor.composite(frame, job.elements, self.image_cache)
            if job.variant is not None:
                self.subtitle_renderer.render(frame, job.variant.subtitles, index / self.fps, job.subtitle_anchor)
            encoder.write_frame(frame)
            frames += 1

            job.progress = index / total_frames * 100
            self._report_frame(job.progress)
            # Give the invoker a chance to flip the cancel flag between frames
            await asyncio.sleep(0)

        return frames

    def _failed_result(self, job: ExportJob, status: ExportStatus, error: NarratorError) -> ExportResult:
        return ExportResult(
            job_id=job.id,
            language=job.language,
            status=status,
            frames_rendered=0,
            error=error.to_error_info(),
        )

    # =========================================================================
    # Batch
    # =========================================================================

    async def run_batch(self, batch: BatchExportJob) -> BatchExportResult:
        """
        Run a batch sequentially.

        Stops at the first job that fails or is cancelled. Artifacts already
        delivered stay in place; jobs never started are absent from the result.
        """
        batch.cancel_token.reset()
        total = len(batch.jobs)
        result = BatchExportResult(status=ExportStatus.COMPLETED, total_jobs=total)
        logger.info(f"[EXPORT] Starting batch of {total} jobs")

        try:
            for position, entry in enumerate(batch.jobs, start=1):
                if batch.cancel_token.cancelled:
                    result.status = ExportStatus.CANCELLED
                    break

                self._batch_position = (position, total, entry.language)
                if isinstance(entry, PendingJob):
                    try:
                        job = await entry.build()
                    except NarratorError as e:
                        logger.error(f"[EXPORT] Could not prepare job {position}/{total}: {e.message}")
                        result.results.append(
                            ExportResult(
                                job_id=uuid4().hex,
                                language=entry.language,
                                status=ExportStatus.FAILED,
                                error=e.to_error_info(),
                            )
                        )
                        result.status = ExportStatus.FAILED
                        break
                else:
                    job = entry

                job.cancel_token = batch.cancel_token
                job_result = await self._run_job(job)
                result.results.append(job_result)
                if job_result.status != ExportStatus.COMPLETED:
                    result.status = job_result.status
                    break
        finally:
            self._batch_position = None

        self.status = result.status
        logger.info(
            f"[EXPORT] Batch finished: {result.status.value}, "
            f"{len(result.artifacts)}/{total} artifacts"
        )
        return result
