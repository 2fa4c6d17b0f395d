"""Overlay compositing onto decoded video frames with Pillow.

Elements are drawn in list order on top of the source frame, so later
elements occlude earlier ones. Every position is resolved against the actual
output frame, and every size against the ratio of the output height to the
reference height, so the same element list renders identically (up to
anti-aliasing) at any resolution.

Text element draw order:
1. Background rectangle (optional)
2. Stroke / outline (optional)
3. Fill
"""

import base64
import io
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from PIL import Image, ImageDraw

from narrator.config import get_settings
from narrator.exceptions import AssetLoadError
from narrator.schemas.element import ImageElement, TextElement
from narrator.utils.drawing import hex_to_rgba, load_font, text_width

logger = logging.getLogger(__name__)

LINE_HEIGHT_RATIO = 1.2
BG_PADDING_RATIO = 0.2

# Pillow anchors: horizontal by alignment, vertical middle
_ALIGN_ANCHORS = {"left": "lm", "center": "mm", "right": "rm"}

ImageCache = dict[str, Image.Image]


@dataclass
class TextLine:
    """One rendered line of a text element."""

    text: str
    y: float  # vertical centre of the line
    width: float


@dataclass
class TextLayout:
    """Resolved geometry for a text element on a concrete frame."""

    x: float  # alignment anchor
    y: float  # vertical centre of the block
    font_size: int
    line_height: float
    align: str
    lines: list[TextLine] = field(default_factory=list)
    max_line_width: float = 0.0
    padding: float = 0.0
    background: Optional[tuple[float, float, float, float]] = None  # left, top, width, height
    stroke_width: float = 0.0


@dataclass
class ImageLayout:
    """Resolved geometry for an image element on a concrete frame."""

    left: float
    top: float
    width: float
    height: float


def scale_factor(height: int) -> float:
    """Ratio of the output height to the reference height."""
    return height / get_settings().reference_height


def text_layout(element: TextElement, width: int, height: int) -> TextLayout:
    """Compute line anchors and background for a text element.

    Args:
        element: Text element to lay out
        width: Output frame width in pixels
        height: Output frame height in pixels

    Returns:
        TextLayout with per-line centres and the background rectangle
    """
    scale = scale_factor(height)
    x = element.x / 100 * width
    y = element.y / 100 * height
    font_size = max(1, round(element.size * scale))
    font = load_font(element.font_name, element.is_bold, font_size)
    line_height = font_size * LINE_HEIGHT_RATIO

    texts = element.display_lines()
    start_y = y - ((len(texts) - 1) * line_height) / 2
    lines = [
        TextLine(text=text, y=start_y + index * line_height, width=text_width(font, text))
        for index, text in enumerate(texts)
    ]
    max_line_width = max((line.width for line in lines), default=0.0)

    layout = TextLayout(
        x=x,
        y=y,
        font_size=font_size,
        line_height=line_height,
        align=element.text_align,
        lines=lines,
        max_line_width=max_line_width,
    )

    if element.has_bg:
        padding = font_size * BG_PADDING_RATIO
        total_height = len(lines) * line_height
        bg_x = x
        if element.text_align == "center":
            bg_x = x - max_line_width / 2
        elif element.text_align == "right":
            bg_x = x - max_line_width
        layout.padding = padding
        layout.background = (
            bg_x - padding,
            y - total_height / 2 - padding,
            max_line_width + padding * 2,
            total_height + padding * 1.5,
        )

    if element.has_stroke and element.stroke_width > 0:
        layout.stroke_width = element.stroke_width * scale

    return layout


def image_layout(element: ImageElement, width: int, height: int) -> ImageLayout:
    """Compute the centred rectangle of an image element.

    Width is size / reference height of the output width; height follows the
    element's aspect ratio.
    """
    x = element.x / 100 * width
    y = element.y / 100 * height
    scaled_width = element.size / get_settings().reference_height * width
    scaled_height = scaled_width / element.aspect_ratio
    return ImageLayout(
        left=x - scaled_width / 2,
        top=y - scaled_height / 2,
        width=scaled_width,
        height=scaled_height,
    )


def load_image_asset(element: ImageElement) -> Image.Image:
    """Decode an image element's bitmap from a file path or data URL.

    Raises:
        AssetLoadError: If the bitmap cannot be read or decoded
    """
    try:
        if element.source.startswith("data:"):
            _, encoded = element.source.split(",", 1)
            img = Image.open(io.BytesIO(base64.b64decode(encoded)))
        else:
            img = Image.open(Path(element.source))
        img.load()
    except (OSError, ValueError) as e:
        raise AssetLoadError(element.id, str(e)) from e
    return img.convert("RGBA")


class OverlayCompositor:
    """Draws overlay elements onto frames.

    The image cache is owned by the caller and passed in per call; the
    compositor only remembers resized copies of the bitmaps it was given.
    """

    def __init__(self):
        self._warned_missing: set[str] = set()
        self._resized: dict[tuple[str, int, int], tuple[Image.Image, Image.Image]] = {}

    def clear_resized(self) -> None:
        """Drop resized bitmaps kept from earlier jobs."""
        self._resized.clear()
        self._warned_missing.clear()

    def composite(
        self,
        frame: Image.Image,
        elements: list,
        image_cache: ImageCache,
    ) -> Image.Image:
        """Draw all elements onto the frame in list order.

        Args:
            frame: Decoded source frame (modified in place)
            elements: Active element list
            image_cache: element id -> decoded RGBA bitmap

        Returns:
            The same frame, for chaining
        """
        draw = ImageDraw.Draw(frame, "RGBA")
        width, height = frame.size

        for element in elements:
            try:
                if isinstance(element, TextElement):
                    self._draw_text(draw, element, width, height)
                elif isinstance(element, ImageElement):
                    self._draw_image(frame, element, image_cache, width, height)
            except Exception:
                # One bad element degrades the frame, it never fails it
                logger.exception(f"[COMPOSITE] Failed to draw element {element.id}, skipping")

        return frame

    def _draw_text(
        self,
        draw: ImageDraw.ImageDraw,
        element: TextElement,
        width: int,
        height: int,
    ) -> None:
        layout = text_layout(element, width, height)
        font = load_font(element.font_name, element.is_bold, layout.font_size)
        anchor = _ALIGN_ANCHORS.get(layout.align, "mm")

        if layout.background is not None:
            left, top, bg_w, bg_h = layout.background
            draw.rectangle(
                [(left, top), (left + bg_w, top + bg_h)],
                fill=hex_to_rgba(element.bg_color),
            )

        if layout.stroke_width > 0:
            # Canvas-style strokes straddle the glyph edge, Pillow strokes grow outward
            outline = max(1, round(layout.stroke_width / 2))
            stroke_rgba = hex_to_rgba(element.stroke_color)
            for line in layout.lines:
                draw.text(
                    (layout.x, line.y),
                    line.text,
                    font=font,
                    anchor=anchor,
                    fill=stroke_rgba,
                    stroke_width=outline,
                    stroke_fill=stroke_rgba,
                )

        fill_rgba = hex_to_rgba(element.color)
        for line in layout.lines:
            draw.text((layout.x, line.y), line.text, font=font, anchor=anchor, fill=fill_rgba)

    def _draw_image(
        self,
        frame: Image.Image,
        element: ImageElement,
        image_cache: ImageCache,
        width: int,
        height: int,
    ) -> None:
        bitmap = image_cache.get(element.id)
        if bitmap is None:
            if element.id not in self._warned_missing:
                logger.warning(f"[COMPOSITE] No bitmap cached for image {element.id}, skipping")
                self._warned_missing.add(element.id)
            return

        layout = image_layout(element, width, height)
        target_w = round(layout.width)
        target_h = round(layout.height)
        if target_w < 1 or target_h < 1:
            return

        key = (element.id, target_w, target_h)
        cached = self._resized.get(key)
        if cached is not None and cached[0] is bitmap:
            resized = cached[1]
        else:
            resized = bitmap.resize((target_w, target_h), Image.Resampling.LANCZOS)
            self._resized[key] = (bitmap, resized)
        frame.paste(resized, (round(layout.left), round(layout.top)), resized)
