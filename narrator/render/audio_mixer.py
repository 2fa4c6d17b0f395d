"""
Audio mix graph for a single export job.

Builds the ffmpeg audio inputs and filter graph that the stream encoder
muxes next to the rendered frames:
- Narration track (raw float32 PCM written to the job work dir), from t=0
- Original source audio trimmed to the job window, through a gain node
- Silence when neither exists

Mixing is a plain additive sum (amix normalize=0); no limiter or compressor.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import numpy as np

from narrator.config import get_settings
from narrator.services.narration_assembler import AudioVariant
from narrator.utils.media_info import has_audio_track

logger = logging.getLogger(__name__)

OUTPUT_LABEL = "aout"


def write_narration_pcm(variant: AudioVariant, path: Path) -> Path:
    """Write a variant's track as interleaved little-endian float32 PCM."""
    interleaved = np.ascontiguousarray(variant.audio.T, dtype="<f4")
    path.write_bytes(interleaved.tobytes())
    return path


@dataclass
class AudioMixGraph:
    """ffmpeg argv fragment plus filter graph producing [aout]."""

    inputs: list[str] = field(default_factory=list)
    filter_parts: list[str] = field(default_factory=list)
    output_label: str = OUTPUT_LABEL
    has_narration: bool = False
    has_original_audio: bool = False
    original_gain: Optional[float] = None

    @property
    def filter_complex(self) -> str:
        return ";\n".join(self.filter_parts)

    @property
    def input_count(self) -> int:
        return self.inputs.count("-i")


class AudioMixBuilder:
    """
    Builds an AudioMixGraph for one job.

    Input indices start at first_input_index because the encoder reserves
    input 0 for the raw video pipe.
    """

    def __init__(self, work_dir: Path, first_input_index: int = 1, probe=has_audio_track):
        settings = get_settings()
        self.work_dir = Path(work_dir)
        self.first_input_index = first_input_index
        self.sample_rate = settings.render_audio_sample_rate
        self._probe = probe

    def build(
        self,
        source_path: str,
        start_offset: float,
        duration: float,
        variant: Optional[AudioVariant] = None,
        original_volume: float = 0.0,
    ) -> AudioMixGraph:
        """
        Build the mix for one job window.

        Args:
            source_path: Source video (for its audio stream)
            start_offset: Seconds into the source where the export starts
            duration: Output duration in seconds
            variant: Narration variant; None for CTA-only jobs
            original_volume: Gain for the original audio; 0 drops it

        Returns:
            AudioMixGraph whose filter graph ends in [aout]
        """
        graph = AudioMixGraph()
        index = self.first_input_index
        streams: list[str] = []
        normalize = f"aresample={self.sample_rate},aformat=sample_fmts=fltp:channel_layouts=stereo"

        if variant is not None:
            pcm_path = write_narration_pcm(variant, self.work_dir / f"narration_{variant.language_code}.f32")
            graph.inputs.extend([
                "-f", "f32le",
                "-ar", str(variant.sample_rate),
                "-ac", str(variant.channels),
                "-i", str(pcm_path),
            ])
            graph.filter_parts.append(f"[{index}:a]{normalize}[narration]")
            streams.append("narration")
            graph.has_narration = True
            index += 1

        # CTA-only jobs keep the video's own sound at full level
        gain = original_volume if variant is not None else 1.0
        if gain > 0:
            if self._probe(source_path):
                graph.inputs.extend([
                    "-ss", f"{start_offset:.3f}",
                    "-t", f"{duration:.3f}",
                    "-i", source_path,
                ])
                graph.filter_parts.append(f"[{index}:a]volume={gain},{normalize}[original]")
                streams.append("original")
                graph.has_original_audio = True
                graph.original_gain = gain
                index += 1
            else:
                logger.info(f"[MIX] No usable audio track in {source_path}, mixing narration only")

        if not streams:
            graph.inputs.extend([
                "-f", "lavfi",
                "-t", f"{duration:.3f}",
                "-i", f"anullsrc=r={self.sample_rate}:cl=stereo",
            ])
            streams.append(f"{index}:a")

        if len(streams) == 1:
            graph.filter_parts.append(f"[{streams[0]}]apad[{OUTPUT_LABEL}]")
        else:
            mix_inputs = "".join(f"[{s}]" for s in streams)
            graph.filter_parts.append(
                f"{mix_inputs}amix=inputs={len(streams)}:duration=longest:normalize=0,apad[{OUTPUT_LABEL}]"
            )

        logger.info(
            f"[MIX] Graph: narration={graph.has_narration}, original={graph.has_original_audio}"
            f" (gain={graph.original_gain}), inputs={graph.input_count}"
        )
        return graph
