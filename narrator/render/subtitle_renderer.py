"""Karaoke-style subtitle rendering.

At narration time t the renderer shows the whole sentence of the most recently
started word, wrapped to 90% of the frame width, and highlights the word whose
span contains t.
"""

import logging
from bisect import bisect_right
from dataclasses import dataclass, field
from typing import Optional, Sequence

from PIL import Image, ImageDraw

from narrator.config import get_settings
from narrator.constants.catalog import SUBTITLE_FONT_FAMILY
from narrator.schemas.export import SubtitleAnchor
from narrator.services.narration_assembler import SubtitleWord
from narrator.utils.drawing import hex_to_rgba, load_font, text_width

logger = logging.getLogger(__name__)

ACTIVE_COLOR = "#FBBF24"
INACTIVE_COLOR = "#FFFFFF"
OUTLINE_COLOR = "#000000"
BACKGROUND_RGBA = (0, 0, 0, 153)  # rgba(0, 0, 0, 0.6)

MAX_WIDTH_RATIO = 0.9
LINE_HEIGHT_RATIO = 1.2
PADDING_RATIO = 0.4
OUTLINE_RATIO = 0.15


@dataclass
class SubtitleLine:
    """A wrapped line of words, measured with trailing spaces."""

    words: list[SubtitleWord] = field(default_factory=list)
    width: float = 0.0
    y: float = 0.0
    advance: float = 0.0  # running width used while wrapping


@dataclass
class SubtitleLayout:
    font_size: int
    line_height: float
    center_x: float
    lines: list[SubtitleLine]
    background: tuple[float, float, float, float]  # left, top, width, height
    active_index: Optional[int] = None  # global_index of the highlighted word


def display_word(subtitles: Sequence[SubtitleWord], t: float) -> Optional[SubtitleWord]:
    """Most recently started word at t, or None when nothing should show."""
    if not subtitles or t >= subtitles[-1].end_time:
        return None
    starts = [w.start_time for w in subtitles]
    position = bisect_right(starts, t) - 1
    if position < 0:
        return None
    return subtitles[position]


def active_word(subtitles: Sequence[SubtitleWord], t: float) -> Optional[SubtitleWord]:
    """First word whose span contains t."""
    return next((w for w in subtitles if w.start_time <= t < w.end_time), None)


class SubtitleRenderer:
    """Lays out and draws the current sentence with the active word highlighted."""

    def __init__(self, font_family: str = SUBTITLE_FONT_FAMILY):
        self.font_family = font_family
        settings = get_settings()
        self.base_font_size = settings.subtitle_font_size
        self.reference_height = settings.subtitle_reference_height

    def font_size(self, height: int) -> int:
        return max(1, round(self.base_font_size * height / self.reference_height))

    def layout(
        self,
        subtitles: Sequence[SubtitleWord],
        t: float,
        width: int,
        height: int,
        anchor: SubtitleAnchor,
    ) -> Optional[SubtitleLayout]:
        """Compute the subtitle block for narration time t.

        Args:
            subtitles: Words of the language track, ordered by start time
            t: Narration time in seconds (frame index / fps)
            width: Frame width in pixels
            height: Frame height in pixels
            anchor: Block centre as percentages of the frame

        Returns:
            The layout, or None when nothing is displayed at t
        """
        current = display_word(subtitles, t)
        if current is None:
            return None

        sentence = [w for w in subtitles if w.sentence_index == current.sentence_index]
        highlighted = active_word(subtitles, t)

        font_size = self.font_size(height)
        font = load_font(self.font_family, True, font_size)
        line_height = font_size * LINE_HEIGHT_RATIO
        max_width = width * MAX_WIDTH_RATIO

        # Greedy wrap: a word wider than the limit still gets its own line
        lines: list[SubtitleLine] = []
        line = SubtitleLine()
        space_width = text_width(font, " ")
        for word in sentence:
            word_width = text_width(font, word.word)
            if line.words and line.advance + word_width > max_width:
                lines.append(line)
                line = SubtitleLine()
            line.words.append(word)
            line.advance += word_width + space_width
        if line.words:
            lines.append(line)
        for wrapped in lines:
            wrapped.width = sum(text_width(font, w.word + " ") for w in wrapped.words)

        center_x = anchor.x / 100 * width
        center_y = anchor.y / 100 * height
        total_height = len(lines) * line_height
        start_y = center_y - total_height / 2 + line_height / 2
        for index, wrapped in enumerate(lines):
            wrapped.y = start_y + index * line_height

        padding = font_size * PADDING_RATIO
        widest = max(wrapped.width for wrapped in lines)
        background = (
            center_x - widest / 2 - padding,
            center_y - total_height / 2 - padding,
            widest + padding * 2,
            total_height + padding * 2,
        )

        return SubtitleLayout(
            font_size=font_size,
            line_height=line_height,
            center_x=center_x,
            lines=lines,
            background=background,
            active_index=highlighted.global_index if highlighted else None,
        )

    def render(
        self,
        frame: Image.Image,
        subtitles: Sequence[SubtitleWord],
        t: float,
        anchor: SubtitleAnchor,
    ) -> Image.Image:
        """Draw the subtitle block for time t onto the frame in place."""
        width, height = frame.size
        layout = self.layout(subtitles, t, width, height, anchor)
        if layout is None:
            return frame

        draw = ImageDraw.Draw(frame, "RGBA")
        font = load_font(self.font_family, True, layout.font_size)
        left, top, bg_w, bg_h = layout.background
        draw.rounded_rectangle(
            [(left, top), (left + bg_w, top + bg_h)],
            radius=layout.font_size * 0.3,
            fill=BACKGROUND_RGBA,
        )

        outline = max(1, round(layout.font_size * OUTLINE_RATIO / 2))
        outline_rgba = hex_to_rgba(OUTLINE_COLOR)
        for line in layout.lines:
            x = layout.center_x - line.width / 2
            for word in line.words:
                fill = ACTIVE_COLOR if word.global_index == layout.active_index else INACTIVE_COLOR
                draw.text(
                    (x, line.y),
                    word.word,
                    font=font,
                    anchor="lm",
                    fill=hex_to_rgba(fill),
                    stroke_width=outline,
                    stroke_fill=outline_rgba,
                )
                x += text_width(font, word.word + " ")
        return frame
