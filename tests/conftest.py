"""
Pytest fixtures for narrator tests.

The export frame loop runs against fake source / encoder / mix builders so it
needs neither ffmpeg nor real media. Tests that shell out to ffmpeg are
marked with @pytest.mark.requires_ffmpeg and skipped when it is missing.
"""

import shutil
from pathlib import Path

import pytest

from narrator.config import get_settings
from narrator.render.encoder import MP4_PROFILE
from tests.fakes import Recorder


def pytest_configure(config):
    """Register custom markers for CI/CD test filtering."""
    config.addinivalue_line(
        "markers",
        "requires_ffmpeg: mark test as requiring the ffmpeg binary (skipped when missing)",
    )


def _ffmpeg_available() -> bool:
    settings = get_settings()
    return shutil.which(settings.ffmpeg_path) is not None and shutil.which(settings.ffprobe_path) is not None


def pytest_collection_modifyitems(config, items):
    if _ffmpeg_available():
        return
    skip = pytest.mark.skip(reason="ffmpeg/ffprobe not available")
    for item in items:
        if "requires_ffmpeg" in item.keywords:
            item.add_marker(skip)


@pytest.fixture
def recorder():
    return Recorder()


@pytest.fixture
def output_dir(tmp_path) -> Path:
    return tmp_path / "exports"


@pytest.fixture
def mp4_profile():
    return MP4_PROFILE
