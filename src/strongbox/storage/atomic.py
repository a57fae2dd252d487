"""
Atomic file replacement and private scratch space.

Every persistent mutation goes through atomic_write: the new content is
written to a temporary sibling, flushed to disk and renamed over the target.
A reader sees either the old or the new file, never a torn one.
"""

import logging
import os
import shutil
import tempfile
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from strongbox.exceptions import StorageError

logger = logging.getLogger(__name__)

# Memory-backed on Linux; plaintext placed here never reaches a disk.
SHM_DIR = Path("/dev/shm")

TEMP_SUFFIX = ".tmp"


def fsync_directory(path: Path) -> None:
    """Flush a directory entry so a completed rename survives a crash."""
    try:
        fd = os.open(path, os.O_RDONLY)
    except OSError:
        return
    try:
        os.fsync(fd)
    except OSError:
        logger.debug(f"Could not fsync directory: {path}")
    finally:
        os.close(fd)


def atomic_write(path: Path, data: bytes, mode: int = 0o600) -> None:
    """
    Atomically replace ``path`` with ``data``.

    Args:
        path: Final destination. Its parent directory must exist.
        data: Complete new file content.
        mode: Permission bits for the new file.

    Raises:
        StorageError: If the temporary file cannot be written or renamed.
    """
    path = Path(path)
    try:
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{path.name}.", suffix=TEMP_SUFFIX, dir=path.parent
        )
    except OSError as e:
        raise StorageError(f"cannot create temporary file in {path.parent}: {e}") from e

    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        os.chmod(tmp_path, mode)
        os.replace(tmp_path, path)
    except BaseException as e:
        tmp_path.unlink(missing_ok=True)
        if isinstance(e, OSError):
            raise StorageError(f"cannot replace {path}: {e}") from e
        raise

    fsync_directory(path.parent)


def _scratch_base() -> Path | None:
    if SHM_DIR.is_dir() and os.access(SHM_DIR, os.W_OK | os.X_OK):
        return SHM_DIR
    return None


@contextmanager
def scratch_directory(prefix: str = "strongbox.") -> Iterator[Path]:
    """
    Provide a private directory for short-lived plaintext.

    Prefers memory-backed storage and falls back to the system temporary
    directory. The directory and everything in it is removed on exit, whether
    the block completes, raises or is interrupted.

    Yields:
        Path to a directory only the current user can access.
    """
    base = _scratch_base()
    if base is None:
        logger.warning(
            "No memory-backed scratch space available; using the system temporary directory"
        )

    try:
        scratch = Path(tempfile.mkdtemp(prefix=prefix, dir=base))
    except OSError as e:
        raise StorageError(f"cannot create scratch directory: {e}") from e

    try:
        os.chmod(scratch, 0o700)
        yield scratch
    finally:
        shutil.rmtree(scratch, ignore_errors=True)
        if scratch.exists():
            logger.warning(f"Scratch directory could not be removed: {scratch}")
