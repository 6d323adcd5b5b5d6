from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ExtractRequest(BaseModel):
    url: str = Field(..., min_length=1, description="Short-video share link")


class VideoInfo(BaseModel):
    title: str
    author: str
    duration: float
    thumbnail: str | None = None


class ExtractResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    video_info: VideoInfo = Field(..., alias="videoInfo")
    frames_extracted: int = Field(..., alias="framesExtracted")
    analysis: dict[str, Any]
