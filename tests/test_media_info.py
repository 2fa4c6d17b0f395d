"""Tests for ffprobe output parsing."""

import pytest

from narrator.exceptions import SourceUnavailableError
from narrator.utils.media_info import parse_media_info


def probe(**format_overrides) -> dict:
    return {
        "format": {"duration": "12.500000", **format_overrides},
        "streams": [
            {"codec_type": "video", "codec_name": "h264", "width": 1080, "height": 1920, "r_frame_rate": "30000/1001"},
            {"codec_type": "audio", "codec_name": "aac", "sample_rate": "48000", "channels": 2},
        ],
    }


class TestParseMediaInfo:
    def test_video_and_audio(self):
        info = parse_media_info(probe())
        assert info.duration_s == 12.5
        assert (info.width, info.height) == (1080, 1920)
        assert info.fps == pytest.approx(29.97, abs=0.01)
        assert info.has_audio
        assert info.sample_rate == 48000
        assert info.channels == 2

    def test_video_only(self):
        data = probe()
        data["streams"] = data["streams"][:1]
        info = parse_media_info(data)
        assert not info.has_audio
        assert info.audio_codec is None

    def test_falls_back_to_stream_duration(self):
        data = probe(duration="N/A")
        data["streams"][0]["duration"] = "7.0"
        assert parse_media_info(data).duration_s == 7.0

    def test_no_video_stream(self):
        data = probe()
        data["streams"] = data["streams"][1:]
        with pytest.raises(SourceUnavailableError):
            parse_media_info(data, "audio.m4a")

    def test_invalid_duration(self):
        with pytest.raises(SourceUnavailableError):
            parse_media_info(probe(duration="0"))
