"""Tests for the CTA batch builder and its run through the orchestrator."""

import pytest

from narrator.exceptions import InvalidExportRequestError, TranslationError
from narrator.render.pipeline import ExportOrchestrator, PendingJob
from narrator.schemas.element import default_cta
from narrator.schemas.export import DurationPolicy, ExportStatus
from narrator.services.artifact_sink import ArtifactSink
from narrator.services.cta_batch_service import CtaBatchBuilder, VideoSlot
from tests.fakes import FakeMixBuilder


class RecordingTranslator:
    def __init__(self, fail_for=None):
        self.calls: list[tuple[str, str, str]] = []
        self.fail_for = fail_for

    async def translate(self, text, target_language, *, kind="script"):
        self.calls.append((text, target_language, kind))
        if target_language == self.fail_for:
            raise TranslationError(target_language, "HTTP 500")
        return f"{text} ({target_language})"


class TestCtaBatchBuilder:
    def test_empty_slots_are_ignored(self):
        builder = CtaBatchBuilder(RecordingTranslator(), native_language="pt")
        batch = builder.build([VideoSlot("a.mp4", "en"), VideoSlot(None, "es"), VideoSlot("c.mp4", "fr")])
        assert [entry.language for entry in batch.jobs] == ["en", "fr"]
        assert all(isinstance(entry, PendingJob) for entry in batch.jobs)

    def test_no_filled_slots_rejected(self):
        builder = CtaBatchBuilder(RecordingTranslator())
        with pytest.raises(InvalidExportRequestError):
            builder.build([VideoSlot(), VideoSlot()])

    def test_more_than_five_slots_rejected(self):
        builder = CtaBatchBuilder(RecordingTranslator())
        with pytest.raises(InvalidExportRequestError):
            builder.build([VideoSlot(f"{i}.mp4", "en") for i in range(6)])

    def test_translation_deferred_until_job_starts(self):
        translator = RecordingTranslator()
        CtaBatchBuilder(translator).build([VideoSlot("a.mp4", "en")])
        assert translator.calls == []

    @pytest.mark.asyncio
    async def test_job_settings(self):
        translator = RecordingTranslator()
        builder = CtaBatchBuilder(translator, native_language="pt")
        batch = builder.build([VideoSlot("a.mp4", "pt"), VideoSlot("b.mp4", "de")])

        first = await batch.jobs[0].build()
        second = await batch.jobs[1].build()

        assert first.elements[0].content == "Compre Agora!"
        assert second.elements[0].content == "Compre Agora! (de)"
        assert translator.calls == [("Compre Agora!", "de", "cta")]
        assert second.artifact_name == "video_cta_de_2"
        assert second.duration_policy == DurationPolicy.SOURCE_LENGTH
        assert second.original_volume == 1.0
        assert second.variant is None
        assert second.video_bitrate == "8M"

    @pytest.mark.asyncio
    async def test_master_not_mutated(self):
        master = default_cta()
        cta = await CtaBatchBuilder(RecordingTranslator()).localized_cta(master, "en")
        assert master.content == "Compre Agora!"
        assert cta is not master
        assert cta.has_bg == master.has_bg


class TestCtaBatchRun:
    @pytest.mark.asyncio
    async def test_translation_failure_stops_batch(self, recorder, output_dir, mp4_profile):
        orchestrator = ExportOrchestrator(
            sink=ArtifactSink(output_dir),
            source_factory=recorder.source_factory,
            encoder_factory=recorder.encoder_factory,
            mix_builder_factory=FakeMixBuilder,
            profile=mp4_profile,
        )
        translator = RecordingTranslator(fail_for="es")
        batch = CtaBatchBuilder(translator, native_language="pt").build(
            [VideoSlot("a.mp4", "en"), VideoSlot("b.mp4", "es"), VideoSlot("c.mp4", "fr")]
        )

        result = await orchestrator.run_batch(batch)

        assert result.status == ExportStatus.FAILED
        assert [r.language for r in result.results] == ["en", "es"]
        assert result.results[1].error.code == "TRANSLATION_FAILED"
        assert [call[1] for call in translator.calls] == ["en", "es"]
        assert len(result.artifacts) == 1
        assert result.artifacts[0].endswith("video_cta_en_1.mp4")

    @pytest.mark.asyncio
    async def test_cta_job_renders_full_source(self, recorder, output_dir, mp4_profile):
        orchestrator = ExportOrchestrator(
            sink=ArtifactSink(output_dir),
            source_factory=recorder.source_factory,
            encoder_factory=recorder.encoder_factory,
            mix_builder_factory=FakeMixBuilder,
            profile=mp4_profile,
        )
        batch = CtaBatchBuilder(RecordingTranslator()).build([VideoSlot("a.mp4", "pt")])

        result = await orchestrator.run_batch(batch)

        assert result.status == ExportStatus.COMPLETED
        # FakeSource default is 10s at 30fps
        assert result.results[0].frames_rendered == 300
        assert recorder.encoders[0].video_bitrate == "8M"
