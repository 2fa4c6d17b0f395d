"""Tests for the streaming encoder command line and profile selection."""

from unittest.mock import patch

import pytest
from PIL import Image

from narrator.exceptions import EncoderError
from narrator.render.audio_mixer import AudioMixGraph
from narrator.render.encoder import MP4_PROFILE, WEBM_PROFILE, StreamEncoder, select_profile


def silent_mix() -> AudioMixGraph:
    return AudioMixGraph(
        inputs=["-f", "lavfi", "-i", "anullsrc=r=48000:cl=stereo"],
        filter_parts=["[1:a]apad[aout]"],
    )


def make_encoder(tmp_path, profile=MP4_PROFILE, **kwargs) -> StreamEncoder:
    return StreamEncoder(tmp_path / f"out.{profile.extension}", 1081, 1920, silent_mix(), 5.0, profile, **kwargs)


class TestSelectProfile:
    def test_prefers_mp4(self):
        with patch("narrator.render.encoder.available_encoders", return_value=frozenset({"libx264", "aac", "libvpx"})):
            assert select_profile("ffmpeg") is MP4_PROFILE

    def test_falls_back_to_webm(self):
        with patch("narrator.render.encoder.available_encoders", return_value=frozenset({"libvpx", "libopus"})):
            assert select_profile("ffmpeg") is WEBM_PROFILE


class TestBuildCommand:
    def test_video_pipe_and_audio_map(self, tmp_path):
        cmd = make_encoder(tmp_path, video_bitrate="8M").build_command()

        assert cmd[cmd.index("-s") + 1] == "1081x1920"
        assert cmd[cmd.index("-i") + 1] == "-"
        assert "[aout]" in cmd
        assert cmd[cmd.index("-b:v") + 1] == "8M"
        assert cmd[cmd.index("-t") + 1] == "5.000"
        assert "pad=ceil(iw/2)*2:ceil(ih/2)*2" in cmd
        assert cmd[-1].endswith("out.mp4")

    def test_webm_codecs(self, tmp_path):
        cmd = make_encoder(tmp_path, profile=WEBM_PROFILE).build_command()
        assert cmd[cmd.index("-c:v") + 1] == "libvpx"
        assert cmd[cmd.index("-c:a") + 1] == "libopus"


class TestEncoderLifecycle:
    def test_write_before_start_raises(self, tmp_path):
        with pytest.raises(EncoderError):
            make_encoder(tmp_path).write_frame(Image.new("RGB", (1081, 1920)))

    def test_abort_removes_partial_output(self, tmp_path):
        encoder = make_encoder(tmp_path)
        encoder.output_path.write_bytes(b"partial")
        encoder.abort()
        assert not encoder.output_path.exists()
