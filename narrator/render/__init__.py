from narrator.render.audio_mixer import AudioMixBuilder, AudioMixGraph
from narrator.render.encoder import StreamEncoder, select_profile
from narrator.render.layer_compositor import OverlayCompositor
from narrator.render.pipeline import (
    BatchExportJob,
    CancelToken,
    ExportJob,
    ExportOrchestrator,
    PendingJob,
    compute_export_duration,
)
from narrator.render.source import SourceVideo
from narrator.render.subtitle_renderer import SubtitleRenderer

__all__ = [
    "ExportOrchestrator",
    "ExportJob",
    "BatchExportJob",
    "PendingJob",
    "CancelToken",
    "compute_export_duration",
    "OverlayCompositor",
    "SubtitleRenderer",
    "AudioMixBuilder",
    "AudioMixGraph",
    "SourceVideo",
    "StreamEncoder",
    "select_profile",
]
