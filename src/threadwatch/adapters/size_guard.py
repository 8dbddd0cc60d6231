"""Size ceiling enforcement for the raw metrics file.

The collector appends to its output forever. The guard truncates the file
to zero bytes once it reaches the ceiling. Truncating to zero only, never to
a byte offset, means a reader never sees half of a line.
"""

import asyncio
import logging
import os
from pathlib import Path

from threadwatch.config import MAX_METRICS_BYTES

logger = logging.getLogger(__name__)


class SizeGuard:
    """Truncates ``path`` whenever it grows to ``max_bytes`` or beyond.

    Args:
        path: File to bound.
        max_bytes: Ceiling in bytes (default 1 MiB).
        interval: Seconds between checks.
    """

    def __init__(
        self,
        path: Path,
        max_bytes: int = MAX_METRICS_BYTES,
        interval: float = 0.5,
    ) -> None:
        self.path = path
        self.max_bytes = max_bytes
        self.interval = interval
        self.truncations = 0

    def check(self) -> bool | None:
        """Measure the file once and truncate it if needed.

        Returns:
            True if truncated, False if below the ceiling, None if the file
            no longer exists.
        """
        try:
            size = self.path.stat().st_size
            if size < self.max_bytes:
                return False
            os.truncate(self.path, 0)
        except FileNotFoundError:
            return None
        self.truncations += 1
        logger.debug("Truncated %s at %d bytes", self.path, size)
        return True

    async def run(self) -> None:
        """Check repeatedly until the file disappears."""
        while self.path.exists():
            if self.check() is None:
                break
            await asyncio.sleep(self.interval)
        logger.info("%s no longer exists, size guard stopped", self.path)
