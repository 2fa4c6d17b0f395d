"""Tests for karaoke subtitle layout and rendering."""

import pytest
from PIL import Image

from narrator.render.subtitle_renderer import SubtitleRenderer, active_word, display_word
from narrator.schemas.export import SubtitleAnchor
from narrator.services.narration_assembler import SubtitleWord


def timeline() -> list[SubtitleWord]:
    # Two sentences with a gap between "world" and "again"
    return [
        SubtitleWord("Hello", 0.0, 0.5, 0, 0),
        SubtitleWord("world.", 0.5, 1.0, 1, 0),
        SubtitleWord("Again", 1.2, 1.6, 2, 1),
        SubtitleWord("here.", 1.6, 2.0, 3, 1),
    ]


ANCHOR = SubtitleAnchor(x=50, y=90)


class TestWordSelection:
    def test_display_word_is_last_started(self):
        assert display_word(timeline(), 0.7).word == "world."

    def test_gap_keeps_previous_sentence_without_highlight(self):
        words = timeline()
        assert display_word(words, 1.1).word == "world."
        assert active_word(words, 1.1) is None

    def test_nothing_before_first_word(self):
        words = [SubtitleWord("late", 0.5, 1.0, 0, 0)]
        assert display_word(words, 0.2) is None

    def test_nothing_at_or_after_last_end(self):
        assert display_word(timeline(), 2.0) is None
        assert display_word(timeline(), 5.0) is None

    def test_empty_timeline(self):
        assert display_word([], 0.0) is None


class TestSubtitleLayout:
    def test_renders_whole_sentence_of_display_word(self):
        layout = SubtitleRenderer().layout(timeline(), 1.3, 1280, 720, ANCHOR)
        words = [w.word for line in layout.lines for w in line.words]
        assert words == ["Again", "here."]
        assert layout.active_index == 2

    def test_font_scales_with_height(self):
        renderer = SubtitleRenderer()
        assert renderer.font_size(720) == 32
        assert renderer.font_size(1920) == round(32 * 1920 / 720)

    def test_background_wraps_widest_line_with_padding(self):
        layout = SubtitleRenderer().layout(timeline(), 0.2, 1280, 720, ANCHOR)
        left, top, width, height = layout.background
        padding = layout.font_size * 0.4
        widest = max(line.width for line in layout.lines)

        assert width == pytest.approx(widest + 2 * padding)
        assert left + width / 2 == pytest.approx(640)
        assert top + height / 2 == pytest.approx(0.9 * 720)
        assert height == pytest.approx(len(layout.lines) * layout.line_height + 2 * padding)

    def test_wraps_long_sentence_within_frame(self):
        words = [SubtitleWord(f"palavra{i}", i * 0.1, (i + 1) * 0.1, i, 0) for i in range(30)]
        layout = SubtitleRenderer().layout(words, 0.05, 400, 720, ANCHOR)

        assert len(layout.lines) > 1
        assert [w.global_index for line in layout.lines for w in line.words] == list(range(30))
        for line in layout.lines[:-1]:
            assert line.advance <= 400 * 0.9 + layout.font_size

    def test_block_vertically_centred(self):
        words = [SubtitleWord(f"w{i}", i * 0.1, (i + 1) * 0.1, i, 0) for i in range(40)]
        layout = SubtitleRenderer().layout(words, 0.0, 300, 720, SubtitleAnchor(x=50, y=50))
        ys = [line.y for line in layout.lines]
        assert (ys[0] + ys[-1]) / 2 == pytest.approx(360)


class TestSubtitleRender:
    def test_draws_nothing_after_narration(self):
        frame = Image.new("RGB", (320, 180), (50, 60, 70))
        SubtitleRenderer().render(frame, timeline(), 3.0, ANCHOR)
        assert frame.getcolors() == [(320 * 180, (50, 60, 70))]

    def test_draws_background_while_speaking(self):
        frame = Image.new("RGB", (320, 180), (200, 200, 200))
        renderer = SubtitleRenderer()
        renderer.render(frame, timeline(), 0.2, ANCHOR)

        layout = renderer.layout(timeline(), 0.2, 320, 180, ANCHOR)
        left, top, _, _ = layout.background
        # Inside the padding band: background only, darkened by 60% black
        pixel = frame.getpixel((int(left + layout.font_size * 0.35), int(top + 2)))
        assert pixel[0] < 200
