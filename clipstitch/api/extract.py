"""Template extraction endpoint."""

from fastapi import APIRouter

from clipstitch.api.deps import TemplateExtractorDep
from clipstitch.schemas.envelope import ErrorResponse
from clipstitch.schemas.extract import ExtractRequest, ExtractResponse, VideoInfo

router = APIRouter()


@router.post(
    "/extract",
    response_model=ExtractResponse,
    responses={400: {"model": ErrorResponse}, 502: {"model": ErrorResponse}},
)
async def extract_template(extract_request: ExtractRequest, extractor: TemplateExtractorDep) -> ExtractResponse:
    """Download a shared video, sample its frames and describe its text template."""
    result = await extractor.extract(extract_request.url)
    return ExtractResponse(
        video_info=VideoInfo(
            title=result.video.title,
            author=result.video.author,
            duration=result.video.duration,
            thumbnail=result.video.thumbnail,
        ),
        frames_extracted=result.frames_extracted,
        analysis=result.analysis,
    )
