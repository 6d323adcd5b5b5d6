"""External media process port and its ffmpeg implementation.

The render pipeline only talks to ``MediaProcessor``. ``FFmpegProcessor``
shells out to ffmpeg; tests substitute a fake that writes files directly.
"""

import asyncio
import logging
import subprocess
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path

from clipstitch.config import Settings, get_settings
from clipstitch.exceptions import ConcatenationError, EncodingError
from clipstitch.render.transform import ClipTransform

logger = logging.getLogger(__name__)

STDERR_TAIL_CHARS = 500


@dataclass(frozen=True)
class EncoderProfile:
    """Output codec settings shared by every clip of a job.

    The concat pass stream-copies, so all clips must come out of the encoder
    with identical codec parameters.
    """

    video_codec: str = "libx264"
    preset: str = "fast"
    crf: int = 23
    audio_codec: str = "aac"
    audio_bitrate: str = "128k"
    faststart: bool = True

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "EncoderProfile":
        settings = settings or get_settings()
        return cls(
            video_codec=settings.render_video_codec,
            preset=settings.render_preset,
            crf=settings.render_crf,
            audio_codec=settings.render_audio_codec,
            audio_bitrate=settings.render_audio_bitrate,
        )

    def args(self) -> list[str]:
        """ffmpeg output arguments for this profile."""
        args = [
            "-c:v", self.video_codec,
            "-preset", self.preset,
            "-crf", str(self.crf),
            "-c:a", self.audio_codec,
            "-b:a", self.audio_bitrate,
        ]
        if self.faststart:
            args.extend(["-movflags", "+faststart"])
        return args


def _stderr_tail(stderr: str | None) -> str:
    if not stderr:
        return ""
    return stderr.strip()[-STDERR_TAIL_CHARS:]


class MediaProcessor(ABC):
    """Port for the two external process invocations of a render job."""

    @abstractmethod
    async def encode_clip(
        self,
        index: int,
        input_path: Path,
        transform: ClipTransform,
        output_path: Path,
        profile: EncoderProfile,
    ) -> None:
        """Re-encode one clip with its filter chain. Raises EncodingError."""

    @abstractmethod
    async def concat(self, manifest_path: Path, output_path: Path) -> None:
        """Stream-copy the clips listed in the manifest. Raises ConcatenationError."""


class FFmpegProcessor(MediaProcessor):
    """MediaProcessor backed by the ffmpeg executable."""

    def __init__(
        self,
        ffmpeg_path: str | None = None,
        encode_timeout: float | None = None,
        concat_timeout: float | None = None,
    ):
        settings = get_settings()
        self.ffmpeg_path = ffmpeg_path or settings.ffmpeg_path
        self.encode_timeout = encode_timeout if encode_timeout is not None else settings.encode_timeout_s
        self.concat_timeout = concat_timeout if concat_timeout is not None else settings.concat_timeout_s

    def build_encode_command(
        self,
        input_path: Path,
        transform: ClipTransform,
        output_path: Path,
        profile: EncoderProfile,
    ) -> list[str]:
        return [
            self.ffmpeg_path,
            "-y",
            *transform.input_options,
            "-i", str(input_path),
            "-vf", transform.filter_string,
            *profile.args(),
            str(output_path),
        ]

    def build_concat_command(self, manifest_path: Path, output_path: Path) -> list[str]:
        return [
            self.ffmpeg_path,
            "-y",
            "-f", "concat",
            "-safe", "0",
            "-i", str(manifest_path),
            "-c", "copy",
            "-movflags", "+faststart",
            str(output_path),
        ]

    async def _run(self, cmd: list[str], timeout: float) -> subprocess.CompletedProcess:
        logger.debug(f"[FFMPEG] {' '.join(cmd)}")
        # Blocking call in a worker thread so other jobs keep running
        return await asyncio.to_thread(
            subprocess.run,
            cmd,
            capture_output=True,
            text=True,
            errors="replace",
            timeout=timeout,
        )

    async def encode_clip(
        self,
        index: int,
        input_path: Path,
        transform: ClipTransform,
        output_path: Path,
        profile: EncoderProfile,
    ) -> None:
        cmd = self.build_encode_command(input_path, transform, output_path, profile)
        try:
            result = await self._run(cmd, self.encode_timeout)
        except subprocess.TimeoutExpired as e:
            raise EncodingError(
                f"Failed to process clip {index}: ffmpeg timed out after {self.encode_timeout}s",
                clip_index=index,
            ) from e
        except OSError as e:
            raise EncodingError(f"Failed to process clip {index}: {e}", clip_index=index) from e

        if result.returncode != 0:
            logger.error(f"[ENCODE] ffmpeg failed for clip {index}: {result.stderr}")
            raise EncodingError(
                f"Failed to process clip {index}: ffmpeg exited with code {result.returncode}: "
                f"{_stderr_tail(result.stderr)}",
                clip_index=index,
            )

    async def concat(self, manifest_path: Path, output_path: Path) -> None:
        cmd = self.build_concat_command(manifest_path, output_path)
        try:
            result = await self._run(cmd, self.concat_timeout)
        except subprocess.TimeoutExpired as e:
            raise ConcatenationError(
                f"Concatenation timed out after {self.concat_timeout}s"
            ) from e
        except OSError as e:
            raise ConcatenationError(f"Concatenation failed: {e}") from e

        if result.returncode != 0:
            logger.error(f"[CONCAT] ffmpeg failed: {result.stderr}")
            raise ConcatenationError(
                f"Concatenation failed: ffmpeg exited with code {result.returncode}: "
                f"{_stderr_tail(result.stderr)}"
            )
