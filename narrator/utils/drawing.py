"""Colour parsing and font loading helpers shared by the renderers."""

import logging
from functools import lru_cache

from PIL import ImageFont

from narrator.constants.catalog import (
    DEFAULT_BOLD_FONT_CANDIDATES,
    DEFAULT_FONT_CANDIDATES,
    FONT_FAMILIES,
)

logger = logging.getLogger(__name__)

_NAMED_COLORS = {
    "white": "ffffff",
    "black": "000000",
    "red": "ff0000",
    "green": "00ff00",
    "blue": "0000ff",
    "yellow": "ffff00",
}


def hex_to_rgba(color: str, alpha: int = 255) -> tuple[int, int, int, int]:
    """Parse #RGB, #RRGGBB, #RRGGBBAA, rgba(r,g,b,a) or a few colour names.

    Invalid input falls back to opaque white so a bad style never fails a frame.
    """
    value = color.strip().lower()
    if value.startswith("rgba(") or value.startswith("rgb("):
        parts = [p.strip() for p in value[value.index("(") + 1 : value.rindex(")")].split(",")]
        try:
            r, g, b = (int(float(p)) for p in parts[:3])
            a = int(float(parts[3]) * 255) if len(parts) > 3 else alpha
            return (r, g, b, a)
        except (ValueError, IndexError):
            logger.warning(f"[COLOR] Invalid colour {color!r}, using white")
            return (255, 255, 255, alpha)

    hex_c = _NAMED_COLORS.get(value, value.lstrip("#"))
    if len(hex_c) == 3:
        hex_c = "".join(c * 2 for c in hex_c)
    if len(hex_c) not in (6, 8) or not all(c in "0123456789abcdef" for c in hex_c):
        logger.warning(f"[COLOR] Invalid colour {color!r}, using white")
        return (255, 255, 255, alpha)

    r = int(hex_c[0:2], 16)
    g = int(hex_c[2:4], 16)
    b = int(hex_c[4:6], 16)
    # 8-char hex (RRGGBBAA): embedded alpha overrides the parameter
    if len(hex_c) == 8:
        alpha = int(hex_c[6:8], 16)
    return (r, g, b, alpha)


@lru_cache(maxsize=256)
def load_font(family: str, bold: bool, size: int) -> ImageFont.FreeTypeFont | ImageFont.ImageFont:
    """Load a font for the family, trying local candidate files first.

    Args:
        family: Font family name (e.g. "Anton")
        bold: Prefer the bold face when one is registered
        size: Pixel size

    Returns:
        A Pillow font; Pillow's scalable default font when no candidate exists
    """
    size = max(1, int(size))
    candidates: list[str] = []
    if bold:
        candidates.extend(FONT_FAMILIES.get(f"{family} Bold", []))
    candidates.extend(FONT_FAMILIES.get(family, []))
    defaults = DEFAULT_BOLD_FONT_CANDIDATES if bold else DEFAULT_FONT_CANDIDATES
    candidates.extend(c for c in defaults if c not in candidates)

    for candidate_path in candidates:
        try:
            font = ImageFont.truetype(candidate_path, size)
            logger.debug(f"[FONT] Loaded font: {candidate_path} ({size}px)")
            return font
        except OSError:
            continue

    logger.warning(f"[FONT] No font file found for {family!r}, using Pillow default")
    return ImageFont.load_default(size=size)


def text_width(font: ImageFont.FreeTypeFont | ImageFont.ImageFont, text: str) -> float:
    """Advance width of text in pixels."""
    return float(font.getlength(text))
