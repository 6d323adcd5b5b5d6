"""Template extraction: share link -> frames -> vision analysis.

Uses the same workspace rules as rendering: one scratch directory per
request, always deleted before the response goes out.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any
from uuid import uuid4

import httpx

from clipstitch.config import Settings, get_settings
from clipstitch.exceptions import ExtractionError
from clipstitch.services.frame_sampler import FrameSampler
from clipstitch.services.share_link_resolver import ShareLinkResolver, ShareVideoInfo
from clipstitch.services.template_analyzer import TemplateAnalyzer
from clipstitch.utils.workspace import create_workspace, remove_workspace

logger = logging.getLogger(__name__)


@dataclass
class ExtractionResult:
    video: ShareVideoInfo
    frames_extracted: int
    analysis: dict[str, Any]


class TemplateExtractor:
    def __init__(
        self,
        resolver: ShareLinkResolver | None = None,
        sampler: FrameSampler | None = None,
        analyzer: TemplateAnalyzer | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        settings: Settings | None = None,
    ):
        self.settings = settings or get_settings()
        self.resolver = resolver or ShareLinkResolver(transport=transport)
        self.sampler = sampler or FrameSampler()
        self.analyzer = analyzer or TemplateAnalyzer(transport=transport)
        self._transport = transport
        self.timeout = self.settings.fetch_timeout_s

    async def extract(self, url: str) -> ExtractionResult:
        logger.info(f"[EXTRACT] Processing URL: {url}")
        workspace = create_workspace(f"template_{uuid4().hex}_", self.settings.workspace_root)
        try:
            video = await self.resolver.resolve(url)
            logger.info(f"[EXTRACT] Video info: title={video.title!r}, duration={video.duration}")

            video_path = workspace / "video.mp4"
            await self._download(video.video_url, video_path)

            frames = await self.sampler.sample(video_path, workspace / "frames")
            analysis = await self.analyzer.analyze(frames)

            return ExtractionResult(video=video, frames_extracted=len(frames), analysis=analysis)
        finally:
            remove_workspace(workspace)

    async def _download(self, url: str, dest: Path) -> None:
        logger.info("[EXTRACT] Downloading video...")
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout,
                follow_redirects=True,
                transport=self._transport,
            ) as client:
                async with client.stream("GET", url) as response:
                    if not response.is_success:
                        raise ExtractionError(f"Failed to download video: {response.status_code}")
                    with open(dest, "wb") as f:
                        async for chunk in response.aiter_bytes():
                            f.write(chunk)
        except httpx.HTTPError as e:
            raise ExtractionError(f"Failed to download video: {e}") from e
