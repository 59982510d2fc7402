"""
Write lock for the document store.

All writers (`wg` commands, `wg watch`) serialize their read-modify-write
of a document on one flock held on `<root>/.workgraph/write.lock`.
Readers never take it.
"""

import fcntl
import logging
import os
import time
from contextlib import contextmanager
from pathlib import Path

logger = logging.getLogger(__name__)

LOCK_DIRNAME = ".workgraph"
LOCK_FILENAME = "write.lock"
POLL_INTERVAL = 0.1


class LockTimeout(Exception):
    """Another writer held the store lock for longer than the timeout."""

    def __init__(self, lock_file: Path, timeout: float):
        self.lock_file = lock_file
        self.timeout = timeout
        super().__init__(f"Store is locked by another writer ({lock_file}); gave up after {timeout}s")


def lock_path(store_root: Path) -> Path:
    return Path(store_root) / LOCK_DIRNAME / LOCK_FILENAME


@contextmanager
def store_write_lock(store_root: Path, timeout: float = 30):
    """Hold the store-wide write lock for the duration of the block.

    The lock file is left in place on release; removing it would let a
    waiting writer lock an inode nobody else can see.

    Raises:
        LockTimeout: If the lock isn't free within `timeout` seconds
    """
    lock_file = lock_path(store_root)
    lock_file.parent.mkdir(parents=True, exist_ok=True)

    handle = open(lock_file, "a+")
    deadline = time.monotonic() + timeout
    waited = False
    try:
        while True:
            try:
                fcntl.flock(handle, fcntl.LOCK_EX | fcntl.LOCK_NB)
                break
            except BlockingIOError:
                if time.monotonic() >= deadline:
                    raise LockTimeout(lock_file, timeout)
                if not waited:
                    logger.debug(f"Waiting for store lock {lock_file}")
                    waited = True
                time.sleep(POLL_INTERVAL)

        # Record the holder for anyone inspecting a stuck lock
        handle.seek(0)
        handle.truncate()
        handle.write(f"{os.getpid()}\n")
        handle.flush()
        try:
            yield
        finally:
            fcntl.flock(handle, fcntl.LOCK_UN)
    finally:
        handle.close()
