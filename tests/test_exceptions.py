"""Tests for error codes and ErrorInfo conversion."""

from narrator.constants.error_codes import ERROR_CODES, get_error_spec
from narrator.exceptions import (
    AssetLoadError,
    ExportCancelledError,
    NarratorError,
    SeekTimeoutError,
    SourceUnavailableError,
    SynthesisError,
    TranslationError,
    VariantNotFoundError,
)


class TestErrorCodes:
    def test_every_exception_code_is_registered(self):
        for cls in (
            AssetLoadError,
            ExportCancelledError,
            SeekTimeoutError,
            SourceUnavailableError,
            SynthesisError,
            TranslationError,
            VariantNotFoundError,
        ):
            assert cls.code in ERROR_CODES

    def test_unknown_code_falls_back(self):
        assert get_error_spec("NOPE") == {"retryable": False, "fatal_scope": "job"}


class TestToErrorInfo:
    def test_language_location(self):
        info = TranslationError("es", "HTTP 503").to_error_info()
        assert info.code == "TRANSLATION_FAILED"
        assert info.location.language == "es"
        assert "HTTP 503" in info.message
        assert info.retryable

    def test_suggested_fix_from_registry(self):
        info = SourceUnavailableError("missing.mp4").to_error_info()
        assert not info.retryable
        assert info.suggested_fix == ERROR_CODES["SOURCE_UNAVAILABLE"]["suggested_fix"]

    def test_asset_errors_are_absorbed(self):
        assert AssetLoadError("logo").fatal_scope == "none"

    def test_cancel_scope(self):
        assert ExportCancelledError().fatal_scope == "batch"

    def test_base_defaults(self):
        error = NarratorError()
        assert error.code == "INTERNAL_ERROR"
        assert str(error) == "An unexpected error occurred"
