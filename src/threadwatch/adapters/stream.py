"""Tail-follow reader for the append-only metrics file.

Lines are yielded as the collector appends them. When no data is available
the reader suspends for a bounded interval instead of spinning, and when the
file shrinks under it (the Size Guard truncated it) reading restarts at the
beginning of the file.
"""

import asyncio
import logging
import os
from collections.abc import AsyncIterator, Callable
from pathlib import Path

logger = logging.getLogger(__name__)


async def wait_for_file(
    path: Path,
    interval: float = 1.0,
    stop: asyncio.Event | None = None,
    give_up: Callable[[], bool] | None = None,
) -> bool:
    """Suspend until ``path`` exists.

    Args:
        path: File to wait for.
        interval: Seconds between checks.
        stop: Optional event that ends the wait early.
        give_up: Optional predicate that ends the wait early when true.

    Returns:
        True once the file exists, False if the wait was abandoned.
    """
    while not path.exists():
        if give_up is not None and give_up():
            return False
        if stop is None:
            await asyncio.sleep(interval)
            continue
        try:
            await asyncio.wait_for(stop.wait(), timeout=interval)
        except TimeoutError:
            continue
        return False
    return True


def _truncated(handle) -> bool:
    """Return True if the file is now shorter than our read position."""
    return os.fstat(handle.fileno()).st_size < handle.tell()


async def follow(
    path: Path,
    poll_interval: float = 0.25,
    stop: asyncio.Event | None = None,
) -> AsyncIterator[str]:
    """Yield complete lines appended to ``path``, forever.

    Args:
        path: File to follow. Must exist.
        poll_interval: Seconds to sleep when no new data is available.
        stop: Optional event; the iterator ends once it is set.

    Yields:
        Lines without their trailing newline.
    """
    with open(path, "rb") as handle:
        pending = b""
        while stop is None or not stop.is_set():
            chunk = handle.readline()
            if chunk:
                pending += chunk
                if pending.endswith(b"\n"):
                    yield pending.decode("utf-8", errors="replace").rstrip("\r\n")
                    pending = b""
                continue
            if _truncated(handle):
                logger.debug("%s was truncated, reading from the start", path)
                handle.seek(0)
                pending = b""
                continue
            await asyncio.sleep(poll_interval)
