from clipstitch.schemas.envelope import ErrorInfo, ErrorResponse
from clipstitch.schemas.extract import ExtractRequest, ExtractResponse, VideoInfo
from clipstitch.schemas.render import (
    ClipDescriptor,
    FontListResponse,
    RenderRequest,
    RenderResponse,
    TextStyle,
)

__all__ = [
    "ClipDescriptor",
    "ErrorInfo",
    "ErrorResponse",
    "ExtractRequest",
    "ExtractResponse",
    "FontListResponse",
    "RenderRequest",
    "RenderResponse",
    "TextStyle",
    "VideoInfo",
]
