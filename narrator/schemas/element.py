"""Overlay element schemas.

Positions are percentages (0-100) of the output frame; sizes and stroke
widths are authored against the reference height (settings.reference_height)
and scaled to the actual output at render time.
"""

from typing import Annotated, Any, Literal, Union
from uuid import uuid4

from pydantic import BaseModel, Field

TextAlign = Literal["left", "center", "right"]
TextTransform = Literal["none", "uppercase"]


def _new_element_id() -> str:
    return uuid4().hex


class ElementBase(BaseModel):
    id: str = Field(default_factory=_new_element_id)
    x: float = Field(default=50.0, ge=0, le=100)
    y: float = Field(default=50.0, ge=0, le=100)
    size: float = Field(default=24.0, gt=0)


class TextElement(ElementBase):
    """A text overlay such as a title or call-to-action."""

    kind: Literal["text"] = "text"
    content: str = "Seu Texto Aqui"
    color: str = "#FFFFFF"
    has_bg: bool = False
    bg_color: str = "#000000"
    font_family: str = "Anton"
    font_weight: str = "bold"
    font_style: str = "normal"
    text_transform: TextTransform = "uppercase"
    has_stroke: bool = False
    stroke_color: str = "#000000"
    stroke_width: float = 2.0
    text_align: TextAlign = "center"

    @property
    def font_name(self) -> str:
        """Primary family name, tolerant of CSS font stacks like "'Anton', sans-serif"."""
        return self.font_family.split(",")[0].strip().strip("'\"")

    @property
    def is_bold(self) -> bool:
        return self.font_weight in ("bold", "bolder", "700", "800", "900")

    def display_lines(self) -> list[str]:
        """Content split on explicit line breaks, transform applied."""
        lines = self.content.replace("\r\n", "\n").split("\n")
        if self.text_transform == "uppercase":
            lines = [line.upper() for line in lines]
        return lines


class ImageElement(ElementBase):
    """A bitmap overlay drawn centred on its position."""

    kind: Literal["image"] = "image"
    source: str  # file path or data: URL
    size: float = Field(default=150.0, gt=0)
    aspect_ratio: float = Field(default=1.0, gt=0)


VisualElement = Annotated[Union[TextElement, ImageElement], Field(discriminator="kind")]


class ElementList(BaseModel):
    """Wrapper used to validate element lists coming from JSON."""

    elements: list[VisualElement] = Field(default_factory=list)


def default_cta() -> TextElement:
    """Master call-to-action used by the CTA batch editor."""
    return TextElement(
        id="master-cta",
        content="Compre Agora!",
        x=50,
        y=85,
        size=32,
        color="#FFFFFF",
        has_bg=True,
        bg_color="#000000",
        font_family="Anton",
        font_weight="bold",
        text_transform="uppercase",
        stroke_color="#1F2937",
        stroke_width=2,
    )


def clone_elements(
    elements: list[Any],
    overrides: dict[str, dict[str, Any]] | None = None,
) -> list[Any]:
    """Deep-copy an element list, patching selected fields per element id.

    The returned elements never alias the input, so a variant can own and
    modify its list without touching the base list.

    Args:
        elements: Source elements
        overrides: element id -> field updates

    Returns:
        New, independent element list in the same order
    """
    overrides = overrides or {}
    return [
        element.model_copy(deep=True, update=overrides.get(element.id) or None)
        for element in elements
    ]
