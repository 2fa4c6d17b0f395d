"""Tests for the per-job audio mix graph."""

import numpy as np
import pytest

from narrator.render.audio_mixer import OUTPUT_LABEL, AudioMixBuilder, write_narration_pcm
from tests.fakes import make_variant


def builder(tmp_path, has_audio=True) -> AudioMixBuilder:
    return AudioMixBuilder(tmp_path, probe=lambda _path: has_audio)


class TestNarrationPcm:
    def test_writes_interleaved_float32(self, tmp_path):
        variant = make_variant(duration=0.001, sample_rate=4000)
        variant.audio = np.array([[0.5, -0.5], [0.25, -0.25]], dtype=np.float32)
        path = write_narration_pcm(variant, tmp_path / "n.f32")

        data = np.frombuffer(path.read_bytes(), dtype="<f4")
        assert data.tolist() == [0.5, 0.25, -0.5, -0.25]


class TestAudioMixBuilder:
    def test_narration_and_original_are_summed(self, tmp_path):
        graph = builder(tmp_path).build(
            "source.mp4", start_offset=2.0, duration=5.0, variant=make_variant(), original_volume=0.4
        )

        assert graph.has_narration
        assert graph.has_original_audio
        assert graph.input_count == 2
        assert "volume=0.4" in graph.filter_complex
        assert "amix=inputs=2:duration=longest:normalize=0" in graph.filter_complex
        assert graph.filter_complex.endswith(f"[{OUTPUT_LABEL}]")
        # Original audio trimmed to the export window
        ss = graph.inputs.index("-ss")
        assert graph.inputs[ss + 1] == "2.000"

    def test_inputs_start_after_video_pipe(self, tmp_path):
        graph = builder(tmp_path).build("source.mp4", 0.0, 5.0, variant=make_variant(), original_volume=1.0)
        assert graph.filter_parts[0].startswith("[1:a]")
        assert graph.filter_parts[1].startswith("[2:a]")

    def test_zero_volume_has_no_gain_node(self, tmp_path):
        graph = builder(tmp_path).build("source.mp4", 0.0, 5.0, variant=make_variant(), original_volume=0.0)

        assert not graph.has_original_audio
        assert "volume=" not in graph.filter_complex
        assert "source.mp4" not in graph.inputs
        assert graph.input_count == 1

    def test_missing_audio_track_falls_back_to_narration(self, tmp_path):
        graph = builder(tmp_path, has_audio=False).build(
            "silent.mp4", 0.0, 5.0, variant=make_variant(), original_volume=0.8
        )
        assert graph.has_narration
        assert not graph.has_original_audio
        assert "amix" not in graph.filter_complex

    def test_narration_file_written_to_work_dir(self, tmp_path):
        graph = builder(tmp_path).build("source.mp4", 0.0, 5.0, variant=make_variant("es", duration=1.0))
        path = tmp_path / "narration_es.f32"
        assert str(path) in graph.inputs
        assert path.stat().st_size == 24000 * 4
        assert graph.inputs[graph.inputs.index("-ar") + 1] == "24000"

    def test_cta_job_uses_original_audio_at_full_level(self, tmp_path):
        graph = builder(tmp_path).build("clip.mp4", 0.0, 8.0, variant=None, original_volume=0.0)
        assert not graph.has_narration
        assert graph.original_gain == pytest.approx(1.0)

    def test_silence_when_nothing_to_mix(self, tmp_path):
        graph = builder(tmp_path, has_audio=False).build("clip.mp4", 0.0, 8.0, variant=None)
        assert any(arg.startswith("anullsrc") for arg in graph.inputs)
        assert graph.input_count == 1
