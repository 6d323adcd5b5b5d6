"""Per-job scratch directories."""

import logging
import os
import shutil
import tempfile
from pathlib import Path

from clipstitch.config import get_settings
from clipstitch.exceptions import CleanupError

logger = logging.getLogger(__name__)


def create_workspace(prefix: str, root: str | None = None) -> Path:
    """Create a fresh, uniquely named directory.

    ``prefix`` should already contain a unique job id; mkdtemp adds its own
    random suffix on top.
    """
    root = root if root is not None else get_settings().workspace_root
    if root:
        os.makedirs(root, exist_ok=True)
    return Path(tempfile.mkdtemp(prefix=prefix, dir=root or None))


def remove_workspace(path: Path | None) -> bool:
    """Best-effort recursive delete. Returns False if anything was left behind."""
    if path is None:
        return True
    try:
        shutil.rmtree(path)
    except FileNotFoundError:
        return True
    except OSError as e:
        error = CleanupError(f"Failed to delete workspace {path}: {e}", stage="cleanup")
        logger.warning(f"[CLEANUP] {error.message}")
        shutil.rmtree(path, ignore_errors=True)
        return not path.exists()
    return True
