"""
Render job lifecycle.

A job walks through these stages, strictly one after another:
1. Acquire every clip into the job workspace (request order)
2. Transform + encode every clip with the same codec profile
3. Concatenate the processed clips with a stream-copy pass
4. Read the merged file back

The workspace is deleted on every exit path. Any stage error aborts the job
and no partial output is returned.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Awaitable, Callable, TypeVar
from uuid import uuid4

from clipstitch.config import Settings, get_settings
from clipstitch.exceptions import (
    ClipstitchError,
    EncodingError,
    ReadbackError,
    TooManyClipsError,
)
from clipstitch.render.acquirer import ClipAcquirer, validate_clip_source
from clipstitch.render.concatenator import concatenate
from clipstitch.render.fonts import FontRegistry, get_font_registry
from clipstitch.render.media_processor import EncoderProfile, FFmpegProcessor, MediaProcessor
from clipstitch.render.transform import build_clip_transform
from clipstitch.schemas.render import ClipDescriptor, RenderRequest
from clipstitch.utils.workspace import create_workspace, remove_workspace

logger = logging.getLogger(__name__)

T = TypeVar("T")

WORKSPACE_PREFIX = "render_"
OUTPUT_MIME_TYPE = "video/mp4"


class RenderStage(Enum):
    """Render job stage."""

    CREATED = "created"
    ACQUIRING = "acquiring"
    TRANSFORMING = "transforming"
    CONCATENATING = "concatenating"
    READING_OUTPUT = "reading_output"
    CLEANUP = "cleanup"
    DONE = "done"
    FAILED = "failed"


TERMINAL_STAGES = (RenderStage.DONE, RenderStage.FAILED)


@dataclass
class ClipSource:
    """A downloaded clip and the descriptor it came from."""

    path: Path
    clip: ClipDescriptor


@dataclass
class RenderJob:
    """State of one render request. Never shared between requests."""

    id: str
    stage: RenderStage = RenderStage.CREATED
    workspace_dir: Path | None = None
    clip_paths: list[ClipSource] = field(default_factory=list)
    processed_paths: list[Path] = field(default_factory=list)
    output_path: Path | None = None
    error: ClipstitchError | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    completed_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "id": self.id,
            "stage": self.stage.value,
            "workspace_dir": str(self.workspace_dir) if self.workspace_dir else None,
            "clip_count": len(self.clip_paths),
            "processed_count": len(self.processed_paths),
            "output_path": str(self.output_path) if self.output_path else None,
            "error_message": self.error.message if self.error else None,
            "created_at": self.created_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
        }


@dataclass
class RenderResult:
    """Final artifact of a successful job."""

    job_id: str
    data: bytes
    mime_type: str = OUTPUT_MIME_TYPE

    @property
    def size_bytes(self) -> int:
        return len(self.data)

    @property
    def size_mb(self) -> str:
        return f"{self.size_bytes / 1024 / 1024:.2f}"


async def run_in_order(
    count: int,
    worker: Callable[[int], Awaitable[T]],
    limit: int = 1,
) -> list[T]:
    """Run ``worker(0..count-1)`` with at most ``limit`` in flight.

    Results come back in index order. After the first failure no new work
    is started; everything in flight is awaited before the error with the
    lowest index is raised.
    """
    semaphore = asyncio.Semaphore(max(1, limit))
    aborted = asyncio.Event()

    async def run(index: int) -> T | None:
        async with semaphore:
            if aborted.is_set():
                return None
            try:
                return await worker(index)
            except BaseException:
                aborted.set()
                raise

    results = await asyncio.gather(*(run(i) for i in range(count)), return_exceptions=True)
    for result in results:
        if isinstance(result, BaseException):
            raise result
    return results


class RenderPipeline:
    """
    Assembles one vertical video from an ordered list of clips.

    Handles:
    - Per-job workspace allocation and unconditional cleanup
    - Clip download / base64 decode
    - Canvas fit + text overlay per clip, fixed codec profile
    - Lossless concat of the processed clips
    """

    def __init__(
        self,
        processor: MediaProcessor | None = None,
        acquirer: ClipAcquirer | None = None,
        registry: FontRegistry | None = None,
        settings: Settings | None = None,
    ):
        self.settings = settings or get_settings()
        self.processor = processor or FFmpegProcessor()
        self.acquirer = acquirer or ClipAcquirer()
        self.registry = registry or get_font_registry()
        self._progress_callback: Callable[[RenderJob], None] | None = None

    def set_progress_callback(self, callback: Callable[[RenderJob], None]) -> None:
        """Called with the job on every stage change."""
        self._progress_callback = callback

    def _set_stage(self, job: RenderJob, stage: RenderStage) -> None:
        job.stage = stage
        if stage in TERMINAL_STAGES:
            job.completed_at = datetime.now(timezone.utc)
        if self._progress_callback:
            self._progress_callback(job)

    # ========================================================================
    # Validation & workspace
    # ========================================================================

    def validate(self, request: RenderRequest) -> None:
        """Reject unsatisfiable requests before any network or process work."""
        if len(request.clips) > self.settings.max_clips:
            raise TooManyClipsError(len(request.clips), self.settings.max_clips)
        for index, clip in enumerate(request.clips):
            validate_clip_source(index, clip)

    def create_job(self) -> RenderJob:
        """Allocate a job with its own uniquely named workspace."""
        job = RenderJob(id=uuid4().hex)
        job.workspace_dir = create_workspace(f"{WORKSPACE_PREFIX}{job.id}_", self.settings.workspace_root)
        return job

    def _cleanup(self, job: RenderJob) -> None:
        """Delete the workspace. Failures are logged, never raised."""
        if not remove_workspace(job.workspace_dir):
            logger.warning(f"[CLEANUP] Job {job.id} left files behind in {job.workspace_dir}")

    # ========================================================================
    # Render
    # ========================================================================

    async def render(self, request: RenderRequest) -> RenderResult:
        """Run a full job for ``request`` and return the merged video."""
        self.validate(request)

        job = self.create_job()
        logger.info(f"[RENDER] Job {job.id}: rendering video with {len(request.clips)} clips")

        succeeded = False
        try:
            result = await self._execute(job, request)
            succeeded = True
            return result
        except ClipstitchError as e:
            if e.stage is None:
                e.stage = job.stage.value
            job.error = e
            logger.error(f"[RENDER] Job {job.id} failed during {e.stage}: {e.message}")
            raise
        finally:
            if succeeded:
                self._set_stage(job, RenderStage.CLEANUP)
            self._cleanup(job)
            self._set_stage(job, RenderStage.DONE if succeeded else RenderStage.FAILED)

    async def _execute(self, job: RenderJob, request: RenderRequest) -> RenderResult:
        self._set_stage(job, RenderStage.ACQUIRING)
        await self._acquire_clips(job, request.clips)

        self._set_stage(job, RenderStage.TRANSFORMING)
        await self._process_clips(job, request.output_width, request.output_height)

        self._set_stage(job, RenderStage.CONCATENATING)
        job.output_path = job.workspace_dir / "output.mp4"
        await concatenate(
            self.processor,
            job.processed_paths,
            job.workspace_dir / "concat.txt",
            job.output_path,
        )

        self._set_stage(job, RenderStage.READING_OUTPUT)
        data = self._read_output(job)

        result = RenderResult(job_id=job.id, data=data)
        logger.info(f"[RENDER] Job {job.id} complete! Size: {result.size_mb}MB")
        return result

    async def _acquire_clips(self, job: RenderJob, clips: list[ClipDescriptor]) -> None:
        total = len(clips)

        async def acquire_one(index: int) -> ClipSource:
            dest = job.workspace_dir / f"clip_{index}.mp4"
            await self.acquirer.acquire(index, clips[index], dest)
            logger.info(f"[ACQUIRE] Downloaded clip {index + 1}/{total}")
            return ClipSource(path=dest, clip=clips[index])

        job.clip_paths = await run_in_order(total, acquire_one, self.settings.acquire_concurrency)

    async def _process_clips(self, job: RenderJob, width: int, height: int) -> None:
        total = len(job.clip_paths)
        # One profile per job: every clip must share codec parameters
        profile = EncoderProfile.from_settings(self.settings)

        async def process_one(index: int) -> Path:
            source = job.clip_paths[index]
            output_path = job.workspace_dir / f"processed_{index}.mp4"
            transform = build_clip_transform(source.clip, width, height, self.registry)

            logger.info(f"[ENCODE] Processing clip {index + 1}/{total}")
            await self.processor.encode_clip(index, source.path, transform, output_path, profile)

            if not output_path.is_file():
                raise EncodingError(
                    f"Failed to process clip {index}: no output file produced",
                    clip_index=index,
                )
            return output_path

        job.processed_paths = await run_in_order(total, process_one, self.settings.encode_concurrency)

    def _read_output(self, job: RenderJob) -> bytes:
        output_path = job.output_path
        if output_path is None or not output_path.is_file():
            raise ReadbackError("Rendered output file is missing")
        try:
            data = output_path.read_bytes()
        except OSError as e:
            raise ReadbackError(f"Failed to read rendered output: {e}") from e
        if not data:
            raise ReadbackError("Rendered output file is empty")
        return data
