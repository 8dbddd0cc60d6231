"""The monitoring pipeline: reader, rotator, evaluator and coordinator."""

import asyncio
import contextlib
import logging
from pathlib import Path

from threadwatch.adapters.logging import RotatedLogHandler
from threadwatch.adapters.rotation import HourlyLogRotator
from threadwatch.adapters.size_guard import SizeGuard
from threadwatch.adapters.stream import follow
from threadwatch.core.models import Sample
from threadwatch.core.parsing import THREAD_COUNT_MARKER, parse_line
from threadwatch.core.threshold import DEFAULT_THRESHOLD, evaluate
from threadwatch.runtime.dump import DumpCoordinator

logger = logging.getLogger(__name__)


class ThreadCountMonitor:
    """Follows the metrics file and reacts to each thread count sample.

    Each line is handled synchronously: the sample is written to the hourly
    log, then compared against the threshold, and a breach is handed to the
    coordinator, which returns at once. A failure while handling one line is
    logged and the loop carries on.

    Args:
        metrics_path: Raw metrics file to follow.
        rotator: Hourly log rotator for sample and status lines.
        coordinator: Dump coordinator receiving breaches.
        threshold: Breach threshold (>=).
        size_guard: Optional guard run alongside the pipeline.
        marker: Counter name to extract.
        poll_interval: Reader sleep when no data is available.
    """

    def __init__(
        self,
        metrics_path: Path,
        rotator: HourlyLogRotator,
        coordinator: DumpCoordinator,
        threshold: int = DEFAULT_THRESHOLD,
        size_guard: SizeGuard | None = None,
        marker: str = THREAD_COUNT_MARKER,
        poll_interval: float = 0.25,
    ) -> None:
        self.metrics_path = metrics_path
        self.rotator = rotator
        self.coordinator = coordinator
        self.threshold = threshold
        self.size_guard = size_guard
        self.marker = marker
        self.poll_interval = poll_interval
        self.samples_seen = 0

    def handle_sample(self, sample: Sample) -> None:
        """Write one sample and evaluate it."""
        self.samples_seen += 1
        self.rotator.write_sample(sample)
        if evaluate(sample.value, self.threshold):
            self.coordinator.on_breach(sample)

    def handle_line(self, line: str) -> Sample | None:
        """Parse and handle one raw line. Never raises."""
        try:
            sample = parse_line(line, self.marker)
            if sample is None:
                if self.marker in line:
                    logger.debug("Skipping malformed metrics line: %r", line)
                return None
            self.handle_sample(sample)
            return sample
        except Exception:
            logger.exception("Failed to process metrics line %r", line)
            return None

    @contextlib.contextmanager
    def _status_routing(self):
        """Send status records to the active rotated file while running."""
        handler = RotatedLogHandler(self.rotator)
        status_log = self.coordinator.status_log
        status_log.addHandler(handler)
        if status_log.level == logging.NOTSET:
            status_log.setLevel(logging.INFO)
        try:
            yield handler
        finally:
            status_log.removeHandler(handler)

    async def run(self, stop: asyncio.Event | None = None) -> None:
        """Process the stream until ``stop`` is set or the task is cancelled."""
        guard_task = None
        if self.size_guard is not None:
            guard_task = asyncio.create_task(self.size_guard.run(), name="size-guard")
        try:
            with self._status_routing():
                async for line in follow(self.metrics_path, self.poll_interval, stop):
                    self.handle_line(line)
        finally:
            if guard_task is not None:
                guard_task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await guard_task
            self.rotator.close()
