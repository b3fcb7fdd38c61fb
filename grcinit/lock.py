"""Single-instance lock for the launcher.

Two launchers racing would both see "no .env" and write different secrets.
The lock file holds the owner's PID for diagnostics.
"""

import logging
import os
import platform
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)


class ProcessLock:
    """Non-blocking exclusive lock on a file (flock on Unix, msvcrt on Windows)."""

    def __init__(self, lock_path: Path):
        self.lock_path = lock_path
        self._fd: Optional[int] = None
        self.owner_pid: Optional[str] = None

    def acquire(self) -> bool:
        fd = os.open(str(self.lock_path), os.O_CREAT | os.O_RDWR, 0o600)
        try:
            _lock(fd)
        except OSError:
            self.owner_pid = _read_pid(fd)
            os.close(fd)
            logger.debug("Lock %s held by pid %s", self.lock_path, self.owner_pid)
            return False

        os.ftruncate(fd, 0)
        os.lseek(fd, 0, os.SEEK_SET)
        os.write(fd, str(os.getpid()).encode())
        self._fd = fd
        return True

    def release(self) -> None:
        if self._fd is None:
            return
        try:
            _unlock(self._fd)
        except OSError:
            pass
        os.close(self._fd)
        self._fd = None
        self.lock_path.unlink(missing_ok=True)

    def __enter__(self) -> "ProcessLock":
        return self

    def __exit__(self, *exc) -> None:
        self.release()


def _lock(fd: int) -> None:
    if platform.system() == 'Windows':
        import msvcrt
        msvcrt.locking(fd, msvcrt.LK_NBLCK, 1)  # type: ignore[attr-defined]
    else:
        import fcntl
        fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)


def _unlock(fd: int) -> None:
    if platform.system() == 'Windows':
        import msvcrt
        os.lseek(fd, 0, os.SEEK_SET)
        msvcrt.locking(fd, msvcrt.LK_UNLCK, 1)  # type: ignore[attr-defined]
    else:
        import fcntl
        fcntl.flock(fd, fcntl.LOCK_UN)


def _read_pid(fd: int) -> Optional[str]:
    try:
        os.lseek(fd, 0, os.SEEK_SET)
        return os.read(fd, 32).decode().strip() or None
    except (OSError, UnicodeDecodeError):
        return None
