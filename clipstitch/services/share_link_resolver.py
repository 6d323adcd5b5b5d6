"""Resolve a short-video share link to a directly downloadable media URL.

Strategies are tried in order until one returns a URL:
1. TikWM API (GET)
2. TikWM API (POST, HD)
3. yt-dlp JSON dump
4. Snaptik page scrape
"""

import asyncio
import json
import logging
import re
import subprocess
from dataclasses import dataclass
from typing import Any, Awaitable, Callable
from urllib.parse import quote

import httpx

from clipstitch.config import get_settings
from clipstitch.exceptions import ExtractionError

logger = logging.getLogger(__name__)

TIKWM_API_URL = "https://www.tikwm.com/api/"
SNAPTIK_URL = "https://snaptik.app/abc2.php"
MP4_URL_PATTERN = re.compile(r"https://[^\"'\s]+\.mp4[^\"'\s]*")

DEFAULT_TITLE = "TikTok Video"
DEFAULT_AUTHOR = "Creator"
DEFAULT_DURATION = 30


@dataclass
class ShareVideoInfo:
    """What a resolver strategy found out about the shared video."""

    title: str
    author: str
    duration: float
    video_url: str
    thumbnail: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "author": self.author,
            "duration": self.duration,
            "video_url": self.video_url,
            "thumbnail": self.thumbnail,
        }


def parse_tikwm_response(payload: dict[str, Any]) -> ShareVideoInfo | None:
    """TikWM answers ``{"code": 0, "data": {...}}`` on success."""
    if not isinstance(payload, dict):
        return None
    data = payload.get("data") or {}
    if payload.get("code") != 0 or not data.get("play"):
        return None
    author = data.get("author") or {}
    return ShareVideoInfo(
        title=data.get("title") or DEFAULT_TITLE,
        author=author.get("nickname") or author.get("unique_id") or DEFAULT_AUTHOR,
        duration=data.get("duration") or DEFAULT_DURATION,
        video_url=data.get("play") or data.get("hdplay"),
        thumbnail=data.get("origin_cover") or data.get("cover"),
    )


def parse_ytdlp_info(info: dict[str, Any]) -> ShareVideoInfo | None:
    formats = info.get("formats") or []
    video_url = info.get("url") or (formats[0].get("url") if formats else None)
    if not video_url:
        return None
    return ShareVideoInfo(
        title=info.get("title") or DEFAULT_TITLE,
        author=info.get("uploader") or DEFAULT_AUTHOR,
        duration=info.get("duration") or DEFAULT_DURATION,
        video_url=video_url,
        thumbnail=info.get("thumbnail"),
    )


def parse_snaptik_page(text: str) -> ShareVideoInfo | None:
    match = MP4_URL_PATTERN.search(text)
    if not match:
        return None
    return ShareVideoInfo(
        title=DEFAULT_TITLE,
        author=DEFAULT_AUTHOR,
        duration=DEFAULT_DURATION,
        video_url=match.group(0),
        thumbnail="",
    )


class ShareLinkResolver:
    """Tries every strategy in turn; the first usable answer wins."""

    def __init__(
        self,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float | None = None,
        ytdlp_path: str | None = None,
    ):
        settings = get_settings()
        self._transport = transport
        self.timeout = timeout if timeout is not None else settings.fetch_timeout_s
        self.ytdlp_path = ytdlp_path or settings.ytdlp_path

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self._transport)

    @property
    def strategies(self) -> list[tuple[str, Callable[[str], Awaitable[ShareVideoInfo | None]]]]:
        return [
            ("TikWM GET", self._tikwm_get),
            ("TikWM POST", self._tikwm_post),
            ("yt-dlp", self._ytdlp),
            ("Snaptik", self._snaptik),
        ]

    async def resolve(self, url: str) -> ShareVideoInfo:
        for name, strategy in self.strategies:
            logger.info(f"[EXTRACT] Trying {name}...")
            try:
                info = await strategy(url)
            except (httpx.HTTPError, ValueError, OSError, subprocess.SubprocessError) as e:
                logger.info(f"[EXTRACT] {name} failed: {e}")
                continue
            if info is not None:
                logger.info(f"[EXTRACT] {name} success!")
                return info
            logger.info(f"[EXTRACT] {name} returned no video")

        raise ExtractionError("All download methods failed")

    async def _tikwm_get(self, url: str) -> ShareVideoInfo | None:
        async with self._client() as client:
            response = await client.get(f"{TIKWM_API_URL}?url={quote(url, safe='')}")
        return parse_tikwm_response(response.json())

    async def _tikwm_post(self, url: str) -> ShareVideoInfo | None:
        async with self._client() as client:
            response = await client.post(TIKWM_API_URL, data={"url": url, "hd": "1"})
        return parse_tikwm_response(response.json())

    async def _ytdlp(self, url: str) -> ShareVideoInfo | None:
        result = await asyncio.to_thread(
            subprocess.run,
            [self.ytdlp_path, "-j", url],
            capture_output=True,
            text=True,
            errors="replace",
            timeout=self.timeout,
        )
        if result.returncode != 0:
            return None
        return parse_ytdlp_info(json.loads(result.stdout))

    async def _snaptik(self, url: str) -> ShareVideoInfo | None:
        async with self._client() as client:
            response = await client.post(SNAPTIK_URL, data={"url": url})
        return parse_snaptik_page(response.text)
