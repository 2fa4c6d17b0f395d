"""Custom exceptions for the narrator export engine.

Every failure the invoker can observe is one of these, so an export always
resolves to an artifact, a specific failure reason, or an explicit
cancellation. Exceptions carry machine-readable codes looked up in
narrator/constants/error_codes.py and convert to ErrorInfo for reporting.
"""

from narrator.constants.error_codes import get_error_spec
from narrator.schemas.envelope import ErrorInfo, ErrorLocation


class NarratorError(Exception):
    """Base exception for all narrator errors."""

    code: str = "INTERNAL_ERROR"
    message: str = "An unexpected error occurred"

    def __init__(
        self,
        message: str | None = None,
        *,
        code: str | None = None,
        location: ErrorLocation | None = None,
        suggested_fix: str | None = None,
    ):
        self.message = message or self.__class__.message
        if code:
            self.code = code
        self.location = location
        self.suggested_fix = suggested_fix
        super().__init__(self.message)

    @property
    def retryable(self) -> bool:
        return get_error_spec(self.code).get("retryable", False)

    @property
    def fatal_scope(self) -> str:
        return get_error_spec(self.code).get("fatal_scope", "job")

    def to_error_info(self) -> ErrorInfo:
        """Convert exception to ErrorInfo for the invoker."""
        spec = get_error_spec(self.code)
        return ErrorInfo(
            code=self.code,
            message=self.message,
            location=self.location,
            retryable=spec.get("retryable", False),
            suggested_fix=self.suggested_fix or spec.get("suggested_fix"),
        )


# =============================================================================
# Source video errors
# =============================================================================


class SourceUnavailableError(NarratorError):
    """Source video failed to load or decode."""

    code = "SOURCE_UNAVAILABLE"
    message = "Source video is unavailable"

    def __init__(self, path: str | None = None, reason: str | None = None):
        message = self.message
        if path:
            message = f"Failed to load source video: {path}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)


class SeekTimeoutError(NarratorError):
    """Source video did not deliver a frame within the seek timeout."""

    code = "SEEK_TIMEOUT"
    message = "Video seek timed out"

    def __init__(self, time_s: float | None = None, timeout_s: float | None = None):
        message = self.message
        if time_s is not None and timeout_s is not None:
            message = f"Video seek to {time_s:.3f}s timed out after {timeout_s:.1f}s"
        super().__init__(message)


# =============================================================================
# Asset errors
# =============================================================================


class AssetLoadError(NarratorError):
    """Image element could not be loaded. Absorbed by the renderer."""

    code = "ASSET_LOAD_FAILED"
    message = "Failed to load image"

    def __init__(self, element_id: str | None = None, reason: str | None = None):
        message = f"Failed to load image for element {element_id}" if element_id else self.message
        if reason:
            message = f"{message}: {reason}"
        location = ErrorLocation(element_id=element_id) if element_id else None
        super().__init__(message, location=location)


# =============================================================================
# Narration assembly errors
# =============================================================================


class TranslationError(NarratorError):
    """Translation collaborator failed."""

    code = "TRANSLATION_FAILED"
    message = "Translation failed"

    def __init__(self, language: str | None = None, reason: str | None = None):
        message = f"Translation to {language} failed" if language else self.message
        if reason:
            message = f"{message}: {reason}"
        location = ErrorLocation(language=language) if language else None
        super().__init__(message, location=location)
        self.reason = reason


class SynthesisError(NarratorError):
    """Narration synthesis collaborator failed."""

    code = "SYNTHESIS_FAILED"
    message = "Narration synthesis failed"

    def __init__(self, language: str | None = None, reason: str | None = None):
        message = f"Narration synthesis for {language} failed" if language else self.message
        if reason:
            message = f"{message}: {reason}"
        location = ErrorLocation(language=language) if language else None
        super().__init__(message, location=location)
        self.reason = reason


class VariantNotFoundError(NarratorError):
    """No narration variant exists for the requested language."""

    code = "VARIANT_NOT_FOUND"
    message = "No narration generated for this language"

    def __init__(self, language: str | None = None):
        message = f"No narration generated for {language}" if language else self.message
        location = ErrorLocation(language=language) if language else None
        super().__init__(message, location=location)


# =============================================================================
# Export errors
# =============================================================================


class EncoderError(NarratorError):
    """Stream encoder failed. Aborts the job."""

    code = "ENCODER_FAILED"
    message = "Encoder failed"

    def __init__(self, reason: str | None = None):
        message = f"Encoder failed: {reason}" if reason else self.message
        super().__init__(message)


class InvalidExportRequestError(NarratorError):
    """Export parameters are inconsistent with the source."""

    code = "INVALID_EXPORT_REQUEST"
    message = "Invalid export request"


class ExportCancelledError(NarratorError):
    """Export was cancelled by the invoker. Not a true failure."""

    code = "EXPORT_CANCELLED"
    message = "Export cancelled by user"
