"""ffprobe helpers for reading source video properties."""

import json
import logging
import math
import subprocess
from dataclasses import dataclass

from narrator.config import get_settings
from narrator.exceptions import SourceUnavailableError

logger = logging.getLogger(__name__)


@dataclass
class MediaInfo:
    """First video stream (and first audio stream, when present) of a file."""

    duration_s: float
    width: int
    height: int
    fps: float | None = None
    video_codec: str | None = None
    has_audio: bool = False
    audio_codec: str | None = None
    sample_rate: int | None = None
    channels: int | None = None


def _probe(file_path: str, *args: str) -> dict:
    """ffprobe JSON for a file.

    Raises:
        RuntimeError: ffprobe is missing, timed out, failed or printed garbage
    """
    settings = get_settings()
    cmd = [settings.ffprobe_path, "-v", "error", "-of", "json", *args, file_path]
    try:
        completed = subprocess.run(cmd, capture_output=True, text=True, timeout=settings.probe_timeout_s)
    except FileNotFoundError as e:
        raise RuntimeError(f"ffprobe binary not found at {settings.ffprobe_path}") from e
    except subprocess.TimeoutExpired as e:
        raise RuntimeError(f"ffprobe timed out after {settings.probe_timeout_s:.0f}s") from e
    if completed.returncode != 0:
        raise RuntimeError(completed.stderr.strip() or f"ffprobe exited with {completed.returncode}")

    try:
        return json.loads(completed.stdout or "{}")
    except json.JSONDecodeError as e:
        raise RuntimeError(f"unreadable ffprobe output: {e}") from e


def parse_media_info(data: dict, file_path: str = "") -> MediaInfo:
    """Build MediaInfo from ffprobe JSON (-show_format -show_streams).

    Raises:
        SourceUnavailableError: No video stream or an invalid duration
    """
    video = next((s for s in data.get("streams", []) if s.get("codec_type") == "video"), None)
    audio = next((s for s in data.get("streams", []) if s.get("codec_type") == "audio"), None)
    if video is None:
        raise SourceUnavailableError(file_path, "no video stream")

    duration = None
    format_info = data.get("format", {})
    for raw in (format_info.get("duration"), video.get("duration")):
        try:
            duration = float(raw)
            break
        except (TypeError, ValueError):
            continue
    if duration is None or not math.isfinite(duration) or duration <= 0:
        raise SourceUnavailableError(file_path, "invalid duration")

    width = video.get("width")
    height = video.get("height")
    if not width or not height:
        raise SourceUnavailableError(file_path, "video dimensions not found")

    fps = None
    r_frame_rate = video.get("r_frame_rate", "0/1")
    if "/" in r_frame_rate:
        num, den = r_frame_rate.split("/")
        if int(den) > 0:
            fps = int(num) / int(den)

    info = MediaInfo(
        duration_s=duration,
        width=int(width),
        height=int(height),
        fps=fps,
        video_codec=video.get("codec_name"),
    )
    if audio is not None:
        info.has_audio = True
        info.audio_codec = audio.get("codec_name")
        info.sample_rate = int(audio.get("sample_rate", 0)) or None
        info.channels = audio.get("channels")
    return info


def get_media_info(file_path: str) -> MediaInfo:
    """Probe a source video.

    Raises:
        SourceUnavailableError: ffprobe failed or the file has no usable video
    """
    try:
        data = _probe(file_path, "-show_format", "-show_streams")
    except RuntimeError as e:
        raise SourceUnavailableError(file_path, str(e)) from e
    return parse_media_info(data, file_path)


def has_audio_track(file_path: str) -> bool:
    """True when the file has at least one audio stream. A failed probe counts as no audio."""
    try:
        data = _probe(file_path, "-select_streams", "a", "-show_entries", "stream=index")
    except RuntimeError as e:
        logger.warning(f"[PROBE] Could not probe audio of {file_path}: {e}")
        return False
    return bool(data.get("streams"))
