"""Tests for the variant store."""

import pytest

from narrator.exceptions import VariantNotFoundError
from narrator.schemas.element import TextElement
from narrator.services.variant_store import VariantStore
from tests.fakes import make_variant


class TestVariantStore:
    def _store(self):
        return VariantStore([TextElement(id="cta", content="Compre")])

    def test_base_elements_without_variants(self):
        store = self._store()
        assert store.active_elements() is store.base_elements

    def test_replace_selects_first_language(self):
        store = self._store()
        store.replace_variants({"en": make_variant("en"), "es": make_variant("es")})
        assert store.selected_language == "en"

    def test_replace_keeps_selection_when_present(self):
        store = self._store()
        store.replace_variants({"en": make_variant("en"), "es": make_variant("es")})
        store.select("es")
        store.replace_variants({"pt": make_variant("pt"), "es": make_variant("es")})
        assert store.selected_language == "es"

    def test_replace_is_wholesale(self):
        store = self._store()
        store.replace_variants({"en": make_variant("en")})
        store.replace_variants({"es": make_variant("es")})
        assert store.languages == ["es"]
        with pytest.raises(VariantNotFoundError):
            store.get("en")

    def test_edits_go_to_selected_variant_only(self):
        store = self._store()
        variant = make_variant("en", elements=[TextElement(id="cta", content="Buy")])
        store.replace_variants({"en": variant})

        store.update_element("cta", content="Buy now")

        assert variant.elements[0].content == "Buy now"
        assert store.base_elements[0].content == "Compre"

    def test_update_unknown_element(self):
        with pytest.raises(KeyError):
            self._store().update_element("nope", content="x")
