"""Error codes dictionary for the render API.

This is the single source of truth for all error codes, their retryability,
and suggested fixes. Used by exception handlers to generate machine-readable
error responses.
"""

from typing import TypedDict


class ErrorCodeSpec(TypedDict, total=False):
    """Specification for an error code."""

    retryable: bool
    suggested_fix: str


# Error codes dictionary - single source of truth
ERROR_CODES: dict[str, ErrorCodeSpec] = {
    # ==========================================================================
    # Validation errors (not retryable, fix input)
    # ==========================================================================
    "VALIDATION_ERROR": {
        "retryable": False,
        "suggested_fix": "Check the request body against the render schema",
    },
    "CLIP_SOURCE_MISSING": {
        "retryable": False,
        "suggested_fix": "Set either videoUrl or videoBase64 on every clip",
    },
    "CLIP_SOURCE_CONFLICT": {
        "retryable": False,
        "suggested_fix": "Set only one of videoUrl or videoBase64 per clip",
    },
    "TOO_MANY_CLIPS": {
        "retryable": False,
        "suggested_fix": "Split the render into smaller requests",
    },
    # ==========================================================================
    # Pipeline stage errors
    # ==========================================================================
    "ACQUISITION_FAILED": {
        "retryable": True,
        "suggested_fix": "Check that the clip URL is reachable or the payload is valid base64",
    },
    "ENCODING_FAILED": {
        "retryable": False,
        "suggested_fix": "Check that the clip is a decodable video file",
    },
    "CONCATENATION_FAILED": {
        "retryable": False,
    },
    "READBACK_FAILED": {
        "retryable": True,
    },
    "EXTRACTION_FAILED": {
        "retryable": True,
        "suggested_fix": "Check the share link or try again later",
    },
    # ==========================================================================
    # Internal errors
    # ==========================================================================
    "INTERNAL_ERROR": {
        "retryable": True,
    },
}


def get_error_spec(code: str) -> ErrorCodeSpec:
    """Get error specification by code.

    Returns an empty spec for unknown codes.
    """
    return ERROR_CODES.get(code, {})
