from pydantic import BaseModel, ConfigDict, Field


class ErrorInfo(BaseModel):
    code: str
    message: str
    stage: str | None = None
    clip_index: int | None = None
    retryable: bool = False
    suggested_fix: str | None = None  # Human-readable fix suggestion


class ErrorResponse(BaseModel):
    """Failure body shared by every endpoint.

    ``error`` is the plain message; the remaining fields are flattened from
    ``ErrorInfo`` so clients reading only ``error`` keep working. Serialized
    with camelCase aliases like the success bodies.
    """

    model_config = ConfigDict(populate_by_name=True)

    success: bool = False
    error: str
    code: str
    stage: str | None = None
    clip_index: int | None = Field(default=None, alias="clipIndex")
    retryable: bool = False
    suggested_fix: str | None = Field(default=None, alias="suggestedFix")

    @classmethod
    def from_error_info(cls, info: ErrorInfo) -> "ErrorResponse":
        return cls(
            error=info.message,
            code=info.code,
            stage=info.stage,
            clip_index=info.clip_index,
            retryable=info.retryable,
            suggested_fix=info.suggested_fix,
        )
