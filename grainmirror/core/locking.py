"""
Registry lock — exclusive file lock around read-modify-write

Two CLI invocations can race on the same registry file. Every mutation holds
an exclusive flock on a sidecar lock file for the whole
load -> mutate -> save cycle, so neither update is lost.

- registry_lock(path, timeout) -- blocking with polling, raises on timeout
- Thread-local reentrancy detection -- raises immediately instead of deadlocking
"""

import fcntl
import logging
import os
import threading
import time
from contextlib import contextmanager
from pathlib import Path

from ..errors import RegistryLocked

logger = logging.getLogger(__name__)

POLL_INTERVAL = 0.05
DEFAULT_LOCK_TIMEOUT = 10.0

# Thread-local storage for reentrancy detection
_thread_local = threading.local()


def _get_held_locks() -> set:
    """Get the set of lock paths currently held by this thread."""
    if not hasattr(_thread_local, "held_locks"):
        _thread_local.held_locks = set()
    return _thread_local.held_locks


@contextmanager
def registry_lock(lock_path: Path, timeout: float = DEFAULT_LOCK_TIMEOUT):
    """
    Hold an exclusive lock on lock_path for the duration of the block.

    Args:
        lock_path: Sidecar lock file (created if missing)
        timeout: Maximum seconds to wait; 0 means try once

    Raises:
        RegistryLocked: If the lock cannot be acquired within timeout,
            or if this thread already holds it.
    """
    key = str(Path(lock_path).expanduser().resolve())

    held = _get_held_locks()
    if key in held:
        raise RegistryLocked(f"reentrant lock on {key} would deadlock")

    Path(key).parent.mkdir(parents=True, exist_ok=True)
    fd = os.open(key, os.O_RDWR | os.O_CREAT, 0o644)
    try:
        deadline = time.monotonic() + timeout
        while True:
            try:
                fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
                break
            except BlockingIOError:
                if time.monotonic() >= deadline:
                    raise RegistryLocked(f"{key} (waited {timeout}s)")
                time.sleep(POLL_INTERVAL)

        held.add(key)
        logger.debug("Acquired registry lock %s", key)
        try:
            yield
        finally:
            held.discard(key)
            fcntl.flock(fd, fcntl.LOCK_UN)
            logger.debug("Released registry lock %s", key)
    finally:
        os.close(fd)
