"""File locking that serializes writers of the same note.

The remap engine itself is pure; two processes editing one note must still
not interleave their read-remap-write cycles. Each note gets a hidden lock
file next to it (``notes/.<name>.lock``) that writers hold exclusively.

A holder may unlink the lock file while it still holds the lock (when the
note is deleted or moved). Waiters that opened the old file notice this
after acquiring it and retry on the current one.
"""

import contextlib
import os
import sys
import time
from collections.abc import Generator
from pathlib import Path

# Platform-specific imports
try:
    import fcntl  # Unix file locking
except ImportError:
    fcntl = None  # type: ignore[assignment]

try:
    import msvcrt  # Windows file locking
except ImportError:
    msvcrt = None  # type: ignore[assignment]


class LockTimeout(Exception):  # noqa: N818
    """Raised when file lock acquisition times out."""

    pass


def get_lock_path(note_path: Path) -> Path:
    """Lock file guarding ``note_path`` and its sidecar."""
    return note_path.with_name(f".{note_path.stem}.lock")


def _try_lock(fd: int) -> bool:
    """Attempt a non-blocking exclusive lock; False if it is held elsewhere."""
    if sys.platform == "win32":
        try:
            os.lseek(fd, 0, os.SEEK_SET)
            msvcrt.locking(fd, msvcrt.LK_NBLCK, 1)  # type: ignore[attr-defined]
            return True
        except OSError:
            return False

    try:
        fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
        return True
    except BlockingIOError:
        return False


def _unlock(fd: int) -> None:
    if sys.platform == "win32":
        os.lseek(fd, 0, os.SEEK_SET)
        msvcrt.locking(fd, msvcrt.LK_UNLCK, 1)  # type: ignore[attr-defined]
    else:
        fcntl.flock(fd, fcntl.LOCK_UN)


def _is_current(fd: int, path: Path) -> bool:
    """True if ``fd`` still refers to the file at ``path``."""
    try:
        return os.path.samestat(os.fstat(fd), os.stat(path))
    except FileNotFoundError:
        return False


@contextlib.contextmanager
def file_lock(path: Path, timeout: float = 5.0) -> Generator[None, None, None]:
    """
    Hold an exclusive OS-level lock on ``path`` for the duration of the block.

    The lock file is created if missing and never truncated. Acquisition
    retries with exponential backoff (capped at 100ms) until ``timeout``.

    Args:
        path: Lock file path
        timeout: Maximum seconds to wait for the lock

    Raises:
        LockTimeout: If the lock cannot be acquired within timeout
        OSError: If the lock file cannot be opened

    Example:
        >>> with file_lock(get_lock_path(note_path)):
        ...     write_sidecar(note_path, tags, comments, rev)
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    start_time = time.monotonic()
    attempt = 0

    while True:
        lock_file = open(path, "a+", encoding="utf-8")
        fd = lock_file.fileno()
        if _try_lock(fd):
            if _is_current(fd, path):
                break
            # Previous holder removed the file; lock the one now at path
            _unlock(fd)
        lock_file.close()

        if time.monotonic() - start_time >= timeout:
            raise LockTimeout(f"Failed to acquire lock on {path} after {timeout:.1f} seconds")
        time.sleep(min(0.01 * (2**attempt), 0.1))
        attempt += 1

    try:
        yield
    finally:
        with contextlib.suppress(OSError):
            _unlock(fd)
        lock_file.close()
