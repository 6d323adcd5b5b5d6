"""Concat manifest writing and the stream-copy merge."""

import logging
from pathlib import Path

from clipstitch.exceptions import ConcatenationError
from clipstitch.render.media_processor import MediaProcessor

logger = logging.getLogger(__name__)


def manifest_line(path: Path) -> str:
    """One concat-demuxer entry; single quotes in the path are escaped."""
    escaped = str(path).replace("'", "'\\''")
    return f"file '{escaped}'"


def write_manifest(paths: list[Path], manifest_path: Path) -> Path:
    """Write the concat list in the given order."""
    manifest_path.write_text("\n".join(manifest_line(p) for p in paths) + "\n", encoding="utf-8")
    return manifest_path


async def concatenate(
    processor: MediaProcessor,
    paths: list[Path],
    manifest_path: Path,
    output_path: Path,
) -> Path:
    """Merge ``paths`` in order into ``output_path`` without re-encoding."""
    if not paths:
        raise ConcatenationError("Concatenation failed: no processed clips")

    for index, path in enumerate(paths):
        if not path.is_file():
            raise ConcatenationError(
                f"Concatenation failed: processed clip {index} is missing",
                clip_index=index,
            )

    try:
        write_manifest(paths, manifest_path)
    except OSError as e:
        raise ConcatenationError(f"Concatenation failed: cannot write manifest: {e}") from e

    logger.info(f"[CONCAT] Concatenating {len(paths)} clips")
    await processor.concat(manifest_path, output_path)
    return output_path
