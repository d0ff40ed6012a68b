"""Exclusive locking of the renewal directory across processes."""

import fcntl
import os
from pathlib import Path
from types import TracebackType
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from perennial.config import PerennialConfig


class DirectoryLock:
    """Holds an exclusive flock on the lock file of a renewal directory."""

    def __init__(self, lock_file: Path) -> None:
        self.lock_file = lock_file
        self.lock_fd: int | None = None

    @classmethod
    def for_config(cls, config: "PerennialConfig") -> "DirectoryLock":
        return cls(config.lock_file)

    @property
    def held(self) -> bool:
        return self.lock_fd is not None

    def acquire(self, *, blocking: bool = True) -> bool:
        """Take the lock. Returns False if non-blocking and already held elsewhere."""
        if self.lock_fd is not None:
            msg = f"Lock {self.lock_file} is already held by this object"
            raise RuntimeError(msg)

        self.lock_file.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(str(self.lock_file), os.O_CREAT | os.O_WRONLY, 0o600)
        flags = fcntl.LOCK_EX if blocking else fcntl.LOCK_EX | fcntl.LOCK_NB
        try:
            fcntl.flock(fd, flags)
        except BlockingIOError:
            os.close(fd)
            return False
        except OSError:
            os.close(fd)
            raise

        # Write our PID to the lock file for informational purposes
        try:
            os.ftruncate(fd, 0)
            os.write(fd, str(os.getpid()).encode())
        except OSError:
            os.close(fd)
            raise
        self.lock_fd = fd
        return True

    def release(self) -> None:
        """Release the lock."""
        if self.lock_fd is not None:
            try:
                fcntl.flock(self.lock_fd, fcntl.LOCK_UN)
                os.close(self.lock_fd)
            finally:
                self.lock_fd = None

    def __enter__(self) -> "DirectoryLock":
        self.acquire()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.release()
