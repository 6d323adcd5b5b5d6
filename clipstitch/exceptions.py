"""Custom exceptions for the clipstitch backend.

Every failure the render pipeline can report maps to one subclass of
``ClipstitchError``. The HTTP layer turns these into JSON error bodies via
``to_error_info()``; nothing else needs to know about status codes.
"""

from clipstitch.constants.error_codes import get_error_spec
from clipstitch.schemas.envelope import ErrorInfo


class ClipstitchError(Exception):
    """Base exception for all clipstitch application errors."""

    code: str = "INTERNAL_ERROR"
    status_code: int = 500
    message: str = "An unexpected error occurred"

    def __init__(
        self,
        message: str | None = None,
        *,
        code: str | None = None,
        status_code: int | None = None,
        clip_index: int | None = None,
        stage: str | None = None,
        suggested_fix: str | None = None,
    ):
        self.message = message or self.__class__.message
        if code:
            self.code = code
        if status_code:
            self.status_code = status_code
        self.clip_index = clip_index
        self.stage = stage
        self.suggested_fix = suggested_fix
        super().__init__(self.message)

    def to_error_info(self) -> ErrorInfo:
        """Convert exception to ErrorInfo for API response."""
        spec = get_error_spec(self.code)
        return ErrorInfo(
            code=self.code,
            message=self.message,
            stage=self.stage,
            clip_index=self.clip_index,
            retryable=spec.get("retryable", False),
            suggested_fix=self.suggested_fix or spec.get("suggested_fix"),
        )


# =============================================================================
# Validation Errors (400)
# =============================================================================


class ValidationError(ClipstitchError):
    """Malformed or incomplete request. Raised before any I/O happens."""

    code = "VALIDATION_ERROR"
    status_code = 400
    message = "Invalid render request"


class ClipSourceMissingError(ValidationError):
    """Clip has neither a URL nor an inline payload."""

    code = "CLIP_SOURCE_MISSING"

    def __init__(self, clip_index: int):
        super().__init__(
            f"Clip {clip_index} has no videoUrl or videoBase64",
            clip_index=clip_index,
        )


class ClipSourceConflictError(ValidationError):
    """Clip sets both a URL and an inline payload."""

    code = "CLIP_SOURCE_CONFLICT"

    def __init__(self, clip_index: int):
        super().__init__(
            f"Clip {clip_index} has both videoUrl and videoBase64",
            clip_index=clip_index,
        )


class TooManyClipsError(ValidationError):
    """Request exceeds the configured clip limit."""

    code = "TOO_MANY_CLIPS"

    def __init__(self, count: int, limit: int):
        super().__init__(f"Too many clips: {count} (limit {limit})")


# =============================================================================
# Pipeline Stage Errors
# =============================================================================


class AcquisitionError(ClipstitchError):
    """A clip's bytes could not be fetched or decoded."""

    code = "ACQUISITION_FAILED"
    status_code = 502
    message = "Failed to acquire clip"


class EncodingError(ClipstitchError):
    """The per-clip ffmpeg pass failed or produced no output."""

    code = "ENCODING_FAILED"
    status_code = 500
    message = "Failed to encode clip"


class ConcatenationError(ClipstitchError):
    """The stream-copy merge failed."""

    code = "CONCATENATION_FAILED"
    status_code = 500
    message = "Failed to concatenate clips"


class ReadbackError(ClipstitchError):
    """The merged artifact is missing or unreadable."""

    code = "READBACK_FAILED"
    status_code = 500
    message = "Failed to read rendered output"


class CleanupError(ClipstitchError):
    """Workspace deletion failed. Logged, never returned to the caller."""

    code = "CLEANUP_FAILED"
    message = "Failed to delete workspace"


class ExtractionError(ClipstitchError):
    """Template extraction from a share link failed."""

    code = "EXTRACTION_FAILED"
    status_code = 502
    message = "Failed to extract template"


class InternalError(ClipstitchError):
    """Internal server error."""

    code = "INTERNAL_ERROR"
    status_code = 500
    message = "Internal server error"
