"""Frame sampling for template analysis.

Extracts JPEG stills from a downloaded video at a fixed rate so they can be
sent to a vision model.
"""

import asyncio
import base64
import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path

from clipstitch.config import get_settings
from clipstitch.exceptions import ExtractionError

logger = logging.getLogger(__name__)

FRAME_PATTERN = "frame_%02d.jpg"


@dataclass
class SampledFrame:
    file: str
    base64: str


class FrameSampler:
    """Samples frames from a local video with ffmpeg."""

    def __init__(self, ffmpeg_path: str | None = None, fps: int | None = None, timeout: float | None = None):
        settings = get_settings()
        self.ffmpeg_path = ffmpeg_path or settings.ffmpeg_path
        self.fps = fps or settings.extract_frame_fps
        self.timeout = timeout if timeout is not None else settings.encode_timeout_s

    def build_command(self, video_path: Path, frames_dir: Path) -> list[str]:
        return [
            self.ffmpeg_path,
            "-y",
            "-i", str(video_path),
            "-vf", f"fps={self.fps}",
            str(frames_dir / FRAME_PATTERN),
        ]

    async def sample(self, video_path: Path, frames_dir: Path) -> list[SampledFrame]:
        """Extract frames into ``frames_dir`` and return them base64-encoded, in order."""
        frames_dir.mkdir(parents=True, exist_ok=True)
        cmd = self.build_command(video_path, frames_dir)

        try:
            result = await asyncio.to_thread(
                subprocess.run,
                cmd,
                capture_output=True,
                text=True,
                errors="replace",
                timeout=self.timeout,
            )
        except (subprocess.TimeoutExpired, OSError) as e:
            raise ExtractionError(f"Frame extraction failed: {e}") from e

        if result.returncode != 0:
            logger.error(f"[EXTRACT] ffmpeg frame extraction failed: {result.stderr}")
            raise ExtractionError(f"Frame extraction failed with code {result.returncode}")

        return read_frames(frames_dir)


def read_frames(frames_dir: Path) -> list[SampledFrame]:
    frame_files = sorted(p for p in frames_dir.iterdir() if p.suffix == ".jpg")
    logger.info(f"[EXTRACT] Extracted {len(frame_files)} frames")
    return [
        SampledFrame(file=p.name, base64=base64.b64encode(p.read_bytes()).decode("utf-8"))
        for p in frame_files
    ]
