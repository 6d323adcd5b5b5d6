"""Render API endpoints - synchronous rendering, result returned inline."""

import base64
import logging

from fastapi import APIRouter

from clipstitch.api.deps import FontRegistryDep, RenderPipelineDep
from clipstitch.schemas.envelope import ErrorResponse
from clipstitch.schemas.render import FontListResponse, RenderRequest, RenderResponse

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post(
    "/render",
    response_model=RenderResponse,
    responses={
        400: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
        502: {"model": ErrorResponse},
    },
)
async def render_video(render_request: RenderRequest, pipeline: RenderPipelineDep) -> RenderResponse:
    """
    Render a video from clips + text overlays.

    Blocks until the job finishes; the video comes back base64-encoded.
    """
    result = await pipeline.render(render_request)
    return RenderResponse(
        video_base64=base64.b64encode(result.data).decode("ascii"),
        mime_type=result.mime_type,
        size_bytes=result.size_bytes,
        size_mb=result.size_mb,
    )


@router.get("/fonts", response_model=FontListResponse)
async def list_fonts(registry: FontRegistryDep) -> FontListResponse:
    """List available font families."""
    return FontListResponse(fonts=registry.families())
