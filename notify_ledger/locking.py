"""Best-effort mutual exclusion between ingest runs.

The lock is advisory and bounded: if it cannot be taken within the timeout
the run goes ahead anyway, relying on the dedup keys to keep the ledger free
of duplicates.
"""

from __future__ import annotations

import fcntl
import os
import time
from collections.abc import Iterator
from contextlib import contextmanager

from .logging_setup import get_logger

logger = get_logger("notify_ledger.locking")

_POLL_SECONDS = 0.2


@contextmanager
def advisory_lock(path: str | os.PathLike[str], timeout: float = 20.0) -> Iterator[bool]:
    """Hold an exclusive ``flock`` on ``path`` for the duration of the block.

    Yields ``True`` when the lock was acquired and ``False`` when the wait
    timed out or the lock file could not be opened.
    """

    try:
        fd = os.open(os.fspath(path), os.O_RDWR | os.O_CREAT, 0o644)
    except OSError as e:
        logger.warning("cannot open lock file %s: %s; continuing unlocked", path, e)
        yield False
        return

    acquired = False
    deadline = time.monotonic() + max(timeout, 0.0)
    try:
        while True:
            try:
                fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
                acquired = True
                break
            except BlockingIOError:
                if time.monotonic() >= deadline:
                    break
                time.sleep(_POLL_SECONDS)
        if not acquired:
            logger.warning("lock %s busy after %.1fs; continuing unlocked", path, timeout)
        yield acquired
    finally:
        if acquired:
            try:
                fcntl.flock(fd, fcntl.LOCK_UN)
            except OSError:
                logger.debug("lock release failed", exc_info=True)
        os.close(fd)


__all__ = ["advisory_lock"]
