"""Exclusive file updates through ``<file>.lock``.

Writers create the lock file with O_EXCL, write the new content into it,
fsync, and rename it over the target. A lock that already exists means
another writer is active; we fail immediately instead of waiting.
"""

import os
from pathlib import Path
from typing import Optional, Union

from xgit.exceptions import LockError
from xgit.utils.log import get_logger

logger = get_logger(__name__)


class LockFile:
    """
    Context manager guarding an update of a single file.

    Usage::

        with LockFile(path) as lock:
            lock.write(b'new content')
        # committed on clean exit, rolled back on exception

    Raises:
        LockError: If ``<path>.lock`` already exists
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self.lock_path = self.path.with_name(self.path.name + '.lock')
        self._fd: Optional[int] = None

    def acquire(self) -> 'LockFile':
        self.path.parent.mkdir(parents=True, exist_ok=True)
        try:
            self._fd = os.open(self.lock_path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o644)
        except FileExistsError:
            raise LockError(self.lock_path) from None
        return self

    def write(self, data: Union[bytes, str]) -> None:
        if isinstance(data, str):
            data = data.encode()
        os.write(self._fd, data)

    def commit(self) -> None:
        """Flush the lock file and rename it over the target."""
        os.fsync(self._fd)
        os.close(self._fd)
        self._fd = None
        os.replace(self.lock_path, self.path)

    def rollback(self) -> None:
        if self._fd is not None:
            os.close(self._fd)
            self._fd = None
        if self.lock_path.exists():
            self.lock_path.unlink()

    def __enter__(self) -> 'LockFile':
        return self.acquire()

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is None:
            self.commit()
        else:
            logger.debug(f"Rolling back {self.lock_path}")
            self.rollback()


def write_locked(path: Union[str, Path], data: Union[bytes, str]) -> None:
    """Replace the content of path under its lock file."""
    with LockFile(path) as lock:
        lock.write(data)
