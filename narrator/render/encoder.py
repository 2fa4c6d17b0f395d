"""Streaming encoder: raw RGB frames on stdin plus the job's audio mix.

Two container profiles are supported. MP4 (H.264 + AAC) is preferred when the
ffmpeg build ships both encoders, otherwise WebM (VP8 + Opus).
"""

import logging
import subprocess
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Optional

from PIL import Image

from narrator.config import get_settings
from narrator.exceptions import EncoderError
from narrator.render.audio_mixer import AudioMixGraph

logger = logging.getLogger(__name__)

STDERR_TAIL_CHARS = 2000


@dataclass(frozen=True)
class EncodingProfile:
    name: str
    extension: str
    video_codec: str
    audio_codec: str
    extra_args: tuple[str, ...] = field(default_factory=tuple)


MP4_PROFILE = EncodingProfile(
    name="mp4",
    extension="mp4",
    video_codec="libx264",
    audio_codec="aac",
    extra_args=("-preset", "medium", "-movflags", "+faststart"),
)
WEBM_PROFILE = EncodingProfile(
    name="webm",
    extension="webm",
    video_codec="libvpx",
    audio_codec="libopus",
    extra_args=("-deadline", "realtime", "-cpu-used", "4"),
)


@lru_cache(maxsize=4)
def available_encoders(ffmpeg_path: str) -> frozenset[str]:
    """Encoder names listed by `ffmpeg -encoders` (cached per binary)."""
    try:
        result = subprocess.run(
            [ffmpeg_path, "-hide_banner", "-encoders"],
            capture_output=True,
            text=True,
            timeout=30,
        )
    except (FileNotFoundError, subprocess.TimeoutExpired) as e:
        logger.warning(f"[ENCODER] Could not list ffmpeg encoders: {e}")
        return frozenset()

    names = set()
    for line in result.stdout.splitlines():
        parts = line.split()
        # Capability flags column looks like "V....D" / "A....."
        if len(parts) >= 2 and len(parts[0]) == 6 and parts[0][0] in "VAS":
            names.add(parts[1])
    return frozenset(names)


def select_profile(ffmpeg_path: Optional[str] = None) -> EncodingProfile:
    encoders = available_encoders(ffmpeg_path or get_settings().ffmpeg_path)
    if {MP4_PROFILE.video_codec, MP4_PROFILE.audio_codec} <= encoders:
        return MP4_PROFILE
    logger.info("[ENCODER] libx264/aac unavailable, falling back to WebM")
    return WEBM_PROFILE


class StreamEncoder:
    """ffmpeg process consuming RGB frames for one export job."""

    def __init__(
        self,
        output_path: Path,
        width: int,
        height: int,
        mix: AudioMixGraph,
        duration: float,
        profile: EncodingProfile,
        video_bitrate: Optional[str] = None,
        fps: Optional[int] = None,
    ):
        settings = get_settings()
        self.output_path = Path(output_path)
        self.width = width
        self.height = height
        self.mix = mix
        self.duration = duration
        self.profile = profile
        self.video_bitrate = video_bitrate or settings.render_video_bitrate
        self.audio_bitrate = settings.render_audio_bitrate
        self.sample_rate = settings.render_audio_sample_rate
        self.fps = fps or settings.render_fps
        self.ffmpeg_path = settings.ffmpeg_path
        self._log_path = self.output_path.with_suffix(".ffmpeg.log")
        self._process: Optional[subprocess.Popen] = None
        self._log_file = None
        self.frames_written = 0

    def build_command(self) -> list[str]:
        return [
            self.ffmpeg_path,
            "-y",
            "-v", "error",
            "-f", "rawvideo",
            "-pix_fmt", "rgb24",
            "-s", f"{self.width}x{self.height}",
            "-r", str(self.fps),
            "-i", "-",
            *self.mix.inputs,
            "-filter_complex", self.mix.filter_complex,
            "-map", "0:v",
            "-map", f"[{self.mix.output_label}]",
            # yuv420p needs even dimensions
            "-vf", "pad=ceil(iw/2)*2:ceil(ih/2)*2",
            "-c:v", self.profile.video_codec,
            "-b:v", self.video_bitrate,
            "-pix_fmt", "yuv420p",
            *self.profile.extra_args,
            "-c:a", self.profile.audio_codec,
            "-b:a", self.audio_bitrate,
            "-ar", str(self.sample_rate),
            "-t", f"{self.duration:.3f}",
            str(self.output_path),
        ]

    def start(self) -> None:
        cmd = self.build_command()
        logger.debug(f"[ENCODER] {' '.join(cmd)}")
        self._log_file = open(self._log_path, "wb")
        try:
            self._process = subprocess.Popen(
                cmd,
                stdin=subprocess.PIPE,
                stdout=subprocess.DEVNULL,
                stderr=self._log_file,
            )
        except FileNotFoundError as e:
            self._close_log()
            raise EncoderError(f"ffmpeg not found: {self.ffmpeg_path}") from e
        logger.info(
            f"[ENCODER] Started {self.profile.name} encode {self.width}x{self.height} "
            f"@ {self.fps}fps, {self.video_bitrate} -> {self.output_path.name}"
        )

    def write_frame(self, frame: Image.Image) -> None:
        """Push one frame to the encoder.

        Raises:
            EncoderError: The encoder process is not running or its pipe broke
        """
        process = self._process
        if process is None or process.stdin is None:
            raise EncoderError("encoder not started")
        if process.poll() is not None:
            raise EncoderError(f"encoder exited with code {process.returncode}: {self.stderr_tail()}")

        if frame.mode != "RGB":
            frame = frame.convert("RGB")
        if frame.size != (self.width, self.height):
            frame = frame.resize((self.width, self.height))

        try:
            process.stdin.write(frame.tobytes())
        except (BrokenPipeError, ValueError) as e:
            raise EncoderError(f"encoder pipe closed: {self.stderr_tail()}") from e
        self.frames_written += 1

    def stop(self) -> Path:
        """Close the input, wait for ffmpeg and return the finished file.

        Raises:
            EncoderError: ffmpeg exited non-zero or produced no file
        """
        process = self._process
        if process is None:
            raise EncoderError("encoder not started")
        try:
            if process.stdin is not None:
                process.stdin.close()
        except BrokenPipeError:
            pass
        returncode = process.wait()
        self._process = None
        self._close_log()

        if returncode != 0:
            raise EncoderError(f"ffmpeg exited with code {returncode}: {self.stderr_tail()}")
        if not self.output_path.exists():
            raise EncoderError("ffmpeg produced no output file")

        logger.info(f"[ENCODER] Finished {self.frames_written} frames -> {self.output_path.name}")
        return self.output_path

    def abort(self) -> None:
        """Kill the encoder and delete its partial output."""
        process = self._process
        self._process = None
        if process is not None:
            if process.poll() is None:
                process.kill()
            process.wait()
            if process.stdin is not None and not process.stdin.closed:
                try:
                    process.stdin.close()
                except BrokenPipeError:
                    pass
        self._close_log()
        self.output_path.unlink(missing_ok=True)
        logger.info(f"[ENCODER] Aborted, removed {self.output_path.name}")

    def stderr_tail(self) -> str:
        try:
            text = self._log_path.read_text(errors="replace")
        except OSError:
            return ""
        return text[-STDERR_TAIL_CHARS:].strip()

    def _close_log(self) -> None:
        if self._log_file is not None:
            self._log_file.close()
            self._log_file = None
