"""Cross-process run lock.

Every `newspulse run` is its own process, so overlapping runs (a manual run
while a scheduled one is still going) are kept apart with an exclusive
flock on a file next to the dedup database.
"""

from __future__ import annotations

import fcntl
import logging
import os
from typing import IO, Optional

LOGGER = logging.getLogger(__name__)


def lock_path_for(db_path: str) -> str:
    return f"{db_path}.lock"


class RunLock:
    """Non-blocking exclusive lock held for the duration of one run."""

    def __init__(self, path: str) -> None:
        self._path = path
        self._handle: Optional[IO[str]] = None

    @property
    def held(self) -> bool:
        return self._handle is not None

    def acquire(self) -> bool:
        """Take the lock; return False when another run already holds it."""

        directory = os.path.dirname(self._path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        # Opened without truncation so the holder's PID stays readable.
        handle = open(self._path, "a+", encoding="utf-8")
        try:
            fcntl.flock(handle, fcntl.LOCK_EX | fcntl.LOCK_NB)
        except BlockingIOError:
            handle.seek(0)
            holder = handle.read().strip() or "unknown"
            handle.close()
            LOGGER.warning("Another newspulse run is in progress (PID: %s)", holder)
            return False
        except OSError:
            handle.close()
            raise

        handle.seek(0)
        handle.truncate()
        handle.write(str(os.getpid()))
        handle.flush()
        self._handle = handle
        LOGGER.debug("Run lock acquired at %s", self._path)
        return True

    def release(self) -> None:
        if self._handle is None:
            return
        try:
            fcntl.flock(self._handle, fcntl.LOCK_UN)
        finally:
            self._handle.close()
            self._handle = None
        LOGGER.debug("Run lock released at %s", self._path)

    def __enter__(self) -> "RunLock":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()
