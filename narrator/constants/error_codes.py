"""Error codes dictionary for the export engine.

This is the single source of truth for all error codes, their retryability,
and suggested recovery hints. Used by NarratorError.to_error_info() to build
machine-readable failure reasons for the invoker.
"""

from typing import TypedDict


class ErrorCodeSpec(TypedDict, total=False):
    """Specification for an error code."""

    retryable: bool
    fatal_scope: str  # "none", "language", "job", "batch"
    suggested_fix: str


# Error codes dictionary - single source of truth
ERROR_CODES: dict[str, ErrorCodeSpec] = {
    # ==========================================================================
    # Source video errors (fatal for the job)
    # ==========================================================================
    "SOURCE_UNAVAILABLE": {
        "retryable": False,
        "fatal_scope": "job",
        "suggested_fix": "Check that the source video exists and is decodable by ffmpeg",
    },
    "SEEK_TIMEOUT": {
        "retryable": True,
        "fatal_scope": "job",
        "suggested_fix": "The source stalled while seeking; retry or re-encode the source video",
    },
    # ==========================================================================
    # Asset errors (absorbed, rendering degrades)
    # ==========================================================================
    "ASSET_LOAD_FAILED": {
        "retryable": False,
        "fatal_scope": "none",
        "suggested_fix": "Re-upload the image element; it was skipped during rendering",
    },
    # ==========================================================================
    # Narration assembly errors (fatal for one language)
    # ==========================================================================
    "TRANSLATION_FAILED": {
        "retryable": True,
        "fatal_scope": "language",
        "suggested_fix": "Retry generation for this language",
    },
    "SYNTHESIS_FAILED": {
        "retryable": True,
        "fatal_scope": "language",
        "suggested_fix": "Retry generation for this language or pick another voice",
    },
    "VARIANT_NOT_FOUND": {
        "retryable": False,
        "fatal_scope": "job",
        "suggested_fix": "Generate narration for this language before exporting",
    },
    # ==========================================================================
    # Export errors
    # ==========================================================================
    "ENCODER_FAILED": {
        "retryable": True,
        "fatal_scope": "job",
        "suggested_fix": "Check the ffmpeg build and available disk space",
    },
    "INVALID_EXPORT_REQUEST": {
        "retryable": False,
        "fatal_scope": "job",
        "suggested_fix": "Fix the export parameters (start offset, padding, anchor)",
    },
    "EXPORT_CANCELLED": {
        "retryable": True,
        "fatal_scope": "batch",
    },
    # ==========================================================================
    # System
    # ==========================================================================
    "INTERNAL_ERROR": {
        "retryable": False,
        "fatal_scope": "job",
    },
}


def get_error_spec(code: str) -> ErrorCodeSpec:
    """Get error specification for a code.

    Args:
        code: Error code string

    Returns:
        Error code specification, or default spec if code not found
    """
    return ERROR_CODES.get(code, {"retryable": False, "fatal_scope": "job"})

