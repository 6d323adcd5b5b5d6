"""Request and response models for the render endpoint.

Field names are snake_case; the camelCase names used by the web client are
accepted as aliases and used when serializing responses.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from clipstitch.config import get_settings
from clipstitch.render.fonts import DEFAULT_FONT_FAMILY

HEX_COLOR_PATTERN = r"^#?[0-9A-Fa-f]{6}([0-9A-Fa-f]{2})?$"


def _drop_nulls(data: Any) -> Any:
    """Treat explicit JSON nulls as "not provided" so field defaults apply."""
    if isinstance(data, dict):
        return {key: value for key, value in data.items() if value is not None}
    return data


class TextStyle(BaseModel):
    """Styling for a clip's text overlay."""

    model_config = ConfigDict(populate_by_name=True)

    font_family: str = Field(
        default=DEFAULT_FONT_FAMILY,
        alias="fontFamily",
        description="Logical font family; unknown names fall back to the default font",
    )
    font_size: int = Field(
        default=48,
        alias="fontSize",
        ge=8,
        le=500,
        description="Font size in pixels",
    )
    color: str = Field(
        default="#FFFFFF",
        pattern=HEX_COLOR_PATTERN,
        description="Text color in hex (#RRGGBB or #RRGGBBAA)",
    )
    # Free-form on purpose: unrecognized values render at the bottom.
    position: str = Field(default="bottom", description="top, center or bottom")
    has_emoji: bool = Field(default=False, alias="hasEmoji")
    emoji: str = ""
    emoji_position: str | None = Field(
        default=None,
        alias="emojiPosition",
        description="before, after or both",
    )

    @model_validator(mode="before")
    @classmethod
    def drop_nulls(cls, data: Any) -> Any:
        return _drop_nulls(data)


class ClipDescriptor(BaseModel):
    """One entry of the ordered clip sequence.

    Exactly one of ``video_url`` / ``video_base64`` must be set. That rule is
    enforced by the render pipeline rather than here so the error can name
    the clip's position in the request.
    """

    model_config = ConfigDict(populate_by_name=True)

    video_url: str | None = Field(default=None, alias="videoUrl")
    video_base64: str | None = Field(default=None, alias="videoBase64")
    trim_start: float | None = Field(default=None, alias="trimStart", ge=0)
    trim_duration: float | None = Field(default=None, alias="trimDuration", gt=0)
    duration: float | None = Field(default=None, ge=0)
    text_overlay: str | None = Field(default=None, alias="textOverlay")
    text_style: TextStyle | None = Field(default=None, alias="textStyle")

    @model_validator(mode="before")
    @classmethod
    def drop_nulls(cls, data: Any) -> Any:
        return _drop_nulls(data)

    @property
    def has_url(self) -> bool:
        return bool(self.video_url)

    @property
    def has_inline_payload(self) -> bool:
        return bool(self.video_base64)

    @property
    def has_text_overlay(self) -> bool:
        """Whitespace-only overlays count as no overlay."""
        return bool(self.text_overlay and self.text_overlay.strip())


class RenderRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    clips: list[ClipDescriptor] = Field(..., min_length=1)
    output_width: int = Field(
        default_factory=lambda: get_settings().render_output_width,
        alias="outputWidth",
        ge=16,
        le=4096,
    )
    output_height: int = Field(
        default_factory=lambda: get_settings().render_output_height,
        alias="outputHeight",
        ge=16,
        le=4096,
    )

    @field_validator("output_width", "output_height")
    @classmethod
    def validate_even(cls, v: int, info) -> int:
        if v % 2 != 0:
            raise ValueError(f"{info.field_name} must be an even number (got {v})")
        return v


class RenderResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    video_base64: str = Field(..., alias="videoBase64")
    mime_type: str = Field(default="video/mp4", alias="mimeType")
    size_bytes: int = Field(..., alias="sizeBytes")
    size_mb: str = Field(..., alias="sizeMB")


class FontListResponse(BaseModel):
    fonts: list[str]
