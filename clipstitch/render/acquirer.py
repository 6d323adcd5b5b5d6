"""Clip acquisition: remote URL or inline base64 payload -> local file."""

import base64
import binascii
import logging
from pathlib import Path

import httpx

from clipstitch.config import get_settings
from clipstitch.exceptions import AcquisitionError, ClipSourceConflictError, ClipSourceMissingError
from clipstitch.schemas.render import ClipDescriptor

logger = logging.getLogger(__name__)

DOWNLOAD_CHUNK_SIZE = 1024 * 1024


def validate_clip_source(index: int, clip: ClipDescriptor) -> None:
    """Exactly one of URL / inline payload must be set."""
    if clip.has_url and clip.has_inline_payload:
        raise ClipSourceConflictError(index)
    if not clip.has_url and not clip.has_inline_payload:
        raise ClipSourceMissingError(index)


def decode_inline_payload(payload: str) -> bytes:
    """Decode base64, tolerating a ``data:...;base64,`` prefix and line breaks."""
    if payload.startswith("data:") and "," in payload:
        payload = payload.split(",", 1)[1]
    return base64.b64decode("".join(payload.split()), validate=True)


class ClipAcquirer:
    """Writes each clip's raw encoded bytes into the job workspace."""

    def __init__(
        self,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.timeout = timeout if timeout is not None else get_settings().fetch_timeout_s
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.timeout,
            follow_redirects=True,
            transport=self._transport,
        )

    async def acquire(self, index: int, clip: ClipDescriptor, dest: Path) -> Path:
        validate_clip_source(index, clip)

        if clip.has_url:
            await self._download(index, clip.video_url, dest)
        else:
            self._write_inline(index, clip.video_base64, dest)

        return dest

    async def _download(self, index: int, url: str, dest: Path) -> None:
        logger.info(f"[ACQUIRE] Downloading clip {index} from {url}")
        try:
            async with self._client() as client:
                async with client.stream("GET", url) as response:
                    if not response.is_success:
                        raise AcquisitionError(
                            f"Failed to download clip {index}: {response.status_code}",
                            clip_index=index,
                        )
                    with open(dest, "wb") as f:
                        async for chunk in response.aiter_bytes(DOWNLOAD_CHUNK_SIZE):
                            f.write(chunk)
        except httpx.TimeoutException as e:
            raise AcquisitionError(
                f"Failed to download clip {index}: timed out after {self.timeout}s",
                clip_index=index,
            ) from e
        except httpx.HTTPError as e:
            raise AcquisitionError(
                f"Failed to download clip {index}: {e}",
                clip_index=index,
            ) from e
        except OSError as e:
            raise AcquisitionError(
                f"Failed to write clip {index}: {e}",
                clip_index=index,
            ) from e

    def _write_inline(self, index: int, payload: str, dest: Path) -> None:
        try:
            data = decode_inline_payload(payload)
        except (binascii.Error, ValueError) as e:
            raise AcquisitionError(
                f"Failed to decode clip {index}: invalid base64 payload",
                clip_index=index,
            ) from e
        if not data:
            raise AcquisitionError(f"Failed to decode clip {index}: empty payload", clip_index=index)

        try:
            dest.write_bytes(data)
        except OSError as e:
            raise AcquisitionError(f"Failed to write clip {index}: {e}", clip_index=index) from e
        logger.info(f"[ACQUIRE] Decoded clip {index} ({len(data)} bytes)")
