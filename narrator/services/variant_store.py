"""In-memory holder for the base element list and the generated language variants."""

import logging
from typing import Optional

from narrator.exceptions import VariantNotFoundError
from narrator.services.narration_assembler import AudioVariant

logger = logging.getLogger(__name__)


class VariantStore:
    """Base elements plus the current variant set and selected language.

    The variant set is only ever replaced as a whole; readers see either the
    old set or the new one.
    """

    def __init__(self, base_elements: Optional[list] = None):
        self.base_elements: list = list(base_elements or [])
        self._variants: dict[str, AudioVariant] = {}
        self.selected_language: Optional[str] = None

    @property
    def languages(self) -> list[str]:
        return list(self._variants)

    def replace_variants(self, variants: dict[str, AudioVariant]) -> None:
        self._variants = dict(variants)
        if self.selected_language not in self._variants:
            self.selected_language = next(iter(self._variants), None)
        logger.info(f"[VARIANTS] Stored {len(self._variants)} variants: {', '.join(self._variants)}")

    def clear(self) -> None:
        self._variants = {}
        self.selected_language = None

    def select(self, language: str) -> AudioVariant:
        variant = self.get(language)
        self.selected_language = language
        return variant

    def get(self, language: str) -> AudioVariant:
        try:
            return self._variants[language]
        except KeyError:
            raise VariantNotFoundError(language) from None

    def active_variant(self) -> Optional[AudioVariant]:
        if self.selected_language is None:
            return None
        return self._variants.get(self.selected_language)

    def active_elements(self) -> list:
        """The list edits and exports should use: the selected variant's, else the base."""
        variant = self.active_variant()
        return variant.elements if variant is not None else self.base_elements

    def update_element(self, element_id: str, **changes) -> None:
        """Patch an element in the authoritative list only."""
        elements = self.active_elements()
        for index, element in enumerate(elements):
            if element.id == element_id:
                elements[index] = element.model_copy(update=changes)
                return
        raise KeyError(element_id)
