"""Source video decoding for the frame loop.

A persistent ffmpeg process decodes the source at the export frame rate into
raw RGB frames. Sequential seeks (the common case in an export) just read the
next frame from the pipe; any other seek restarts the decoder at the target
time. Every seek is bounded by the seek timeout.
"""

import asyncio
import logging
import subprocess
from pathlib import Path
from typing import Optional

from PIL import Image

from narrator.config import get_settings
from narrator.exceptions import SeekTimeoutError, SourceUnavailableError
from narrator.utils.media_info import MediaInfo, get_media_info

logger = logging.getLogger(__name__)


class SourceVideo:
    """Seekable frame source backed by an ffmpeg rawvideo pipe."""

    def __init__(self, path: str, fps: Optional[int] = None, seek_timeout_s: Optional[float] = None):
        settings = get_settings()
        self.path = str(path)
        self.fps = fps or settings.render_fps
        self.seek_timeout_s = seek_timeout_s or settings.seek_timeout_s
        self.ffmpeg_path = settings.ffmpeg_path
        self.info: Optional[MediaInfo] = None
        self._process: Optional[subprocess.Popen] = None
        self._next_time: Optional[float] = None
        self._last_frame: Optional[Image.Image] = None

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def duration(self) -> float:
        return self._require_info().duration_s

    @property
    def width(self) -> int:
        return self._require_info().width

    @property
    def height(self) -> int:
        return self._require_info().height

    @property
    def has_audio(self) -> bool:
        return self._require_info().has_audio

    @property
    def frame_bytes(self) -> int:
        return self.width * self.height * 3

    def _require_info(self) -> MediaInfo:
        if self.info is None:
            raise SourceUnavailableError(self.path, "source not opened")
        return self.info

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def open(self) -> "SourceVideo":
        """Probe the source.

        Raises:
            SourceUnavailableError: Missing file, no video stream or invalid duration
        """
        if not Path(self.path).is_file():
            raise SourceUnavailableError(self.path, "file not found")
        self.info = await asyncio.to_thread(get_media_info, self.path)
        logger.info(
            f"[SOURCE] Opened {self.path}: {self.width}x{self.height}, "
            f"{self.duration:.2f}s, audio={self.has_audio}"
        )
        return self

    def close(self) -> None:
        self._stop_decoder()
        self._last_frame = None

    async def __aenter__(self) -> "SourceVideo":
        return await self.open()

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.close()

    # =========================================================================
    # Seeking
    # =========================================================================

    async def seek(self, time_s: float) -> Image.Image:
        """Return the source frame at time_s as an RGB image (a fresh copy).

        Raises:
            SeekTimeoutError: No frame within the seek timeout
            SourceUnavailableError: The decoder produced no frame at all
        """
        half_frame = 0.5 / self.fps
        if self._process is None or self._next_time is None or abs(time_s - self._next_time) > half_frame:
            self._start_decoder(time_s)

        try:
            data = await asyncio.wait_for(asyncio.to_thread(self._read_frame), timeout=self.seek_timeout_s)
        except asyncio.TimeoutError:
            # Killing the decoder unblocks the reader thread
            self._stop_decoder()
            raise SeekTimeoutError(time_s, self.seek_timeout_s) from None

        self._next_time = time_s + 1.0 / self.fps
        if data is None:
            # Past the end of stream: hold the last decoded frame
            if self._last_frame is None:
                raise SourceUnavailableError(self.path, f"no frame decoded at {time_s:.3f}s")
            return self._last_frame.copy()

        frame = Image.frombytes("RGB", (self.width, self.height), data)
        self._last_frame = frame
        return frame.copy()

    def _start_decoder(self, time_s: float) -> None:
        self._stop_decoder()
        cmd = [
            self.ffmpeg_path,
            "-v", "error",
            "-ss", f"{max(0.0, time_s):.3f}",
            "-i", self.path,
            "-an",
            "-vf", f"fps={self.fps}",
            "-f", "rawvideo",
            "-pix_fmt", "rgb24",
            "-",
        ]
        logger.debug(f"[SOURCE] Starting decoder at {time_s:.3f}s")
        try:
            self._process = subprocess.Popen(cmd, stdout=subprocess.PIPE, stderr=subprocess.DEVNULL)
        except FileNotFoundError as e:
            raise SourceUnavailableError(self.path, f"ffmpeg not found: {self.ffmpeg_path}") from e
        self._next_time = time_s

    def _read_frame(self) -> Optional[bytes]:
        process = self._process
        if process is None or process.stdout is None:
            return None
        size = self.frame_bytes
        buffer = bytearray()
        while len(buffer) < size:
            chunk = process.stdout.read(size - len(buffer))
            if not chunk:
                return None
            buffer.extend(chunk)
        return bytes(buffer)

    def _stop_decoder(self) -> None:
        process = self._process
        self._process = None
        self._next_time = None
        if process is None:
            return
        if process.poll() is None:
            process.kill()
        process.wait()
        if process.stdout is not None:
            process.stdout.close()
