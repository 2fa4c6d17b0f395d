from narrator.schemas.element import (
    ElementList,
    ImageElement,
    TextElement,
    VisualElement,
    clone_elements,
    default_cta,
)
from narrator.schemas.envelope import ErrorInfo, ErrorLocation
from narrator.schemas.export import (
    BatchExportResult,
    DurationPolicy,
    ExportResult,
    ExportStatus,
    SubtitleAnchor,
)

__all__ = [
    "TextElement",
    "ImageElement",
    "VisualElement",
    "ElementList",
    "clone_elements",
    "default_cta",
    "ErrorInfo",
    "ErrorLocation",
    "DurationPolicy",
    "ExportStatus",
    "ExportResult",
    "BatchExportResult",
    "SubtitleAnchor",
]
