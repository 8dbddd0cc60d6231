"""One-shot diagnostic capture coordination.

The coordinator starts ARMED and moves to LOCKED on the first breach, for
the rest of the process lifetime. The lock is an in-process flag backed by
``dump_taken.lock`` created with O_CREAT | O_EXCL, so only one capture can
ever be started even if two breaching samples race, or two monitors share a
working directory. The lock file is never removed here.

Capture and upload run as a background task. The pipeline does not wait
for it and neither does process shutdown unless ``wait_idle`` is awaited.
"""

import asyncio
import enum
import logging
import os
from collections.abc import Callable
from datetime import datetime
from pathlib import Path

from threadwatch.core.errors import CaptureError, UploadError
from threadwatch.core.models import DumpOutcome, MonitorTarget, Sample
from threadwatch.core.naming import artifact_name
from threadwatch.core.ports import DiagnosticCapturePort, UploaderPort

logger = logging.getLogger(__name__)

STATUS_LOGGER_NAME = "threadwatch.status"


class DumpState(enum.Enum):
    """Lifecycle of the coordinator."""

    ARMED = "armed"
    LOCKED = "locked"


class DumpCoordinator:
    """Runs at most one capture-and-upload sequence per process.

    Args:
        target: Process to capture, with its instance name and upload URL.
        lock_path: Path of the lock file.
        dump_dir: Directory the artifact is written to.
        capturer: Adapter producing the dump.
        uploader: Adapter shipping the dump.
        status_log: Logger for status lines (routed to the rotated file).
        clock: Source of the artifact timestamp.
    """

    def __init__(
        self,
        target: MonitorTarget,
        lock_path: Path,
        dump_dir: Path,
        capturer: DiagnosticCapturePort,
        uploader: UploaderPort,
        status_log: logging.Logger | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.target = target
        self.lock_path = lock_path
        self.dump_dir = dump_dir
        self.capturer = capturer
        self.uploader = uploader
        self.status_log = status_log or logging.getLogger(STATUS_LOGGER_NAME)
        self.clock = clock
        self.captures_started = 0
        self._tasks: set[asyncio.Task[DumpOutcome]] = set()
        if lock_path.exists():
            logger.info("%s already exists, captures are disabled", lock_path)
            self.state = DumpState.LOCKED
        else:
            self.state = DumpState.ARMED

    @property
    def armed(self) -> bool:
        return self.state is DumpState.ARMED

    def _acquire(self) -> bool:
        """Move to LOCKED and create the lock file exclusively.

        Returns:
            True if this call created the lock file.
        """
        if self.state is DumpState.LOCKED:
            return False
        self.state = DumpState.LOCKED
        try:
            fd = os.open(self.lock_path, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o644)
        except FileExistsError:
            self.status_log.warning(
                "Memory dump lock %s is held by another monitor, skipping collection",
                self.lock_path.name,
            )
            return False
        except OSError as exc:
            self.status_log.error("Cannot create lock %s: %s", self.lock_path, exc)
            return False
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(f"Memory dump is collected by {self.target.instance}\n")
        return True

    def on_breach(self, sample: Sample) -> asyncio.Task[DumpOutcome] | None:
        """Handle a breaching sample.

        Must be called from a running event loop. Returns immediately.

        Returns:
            The background capture task if this breach started one, else None.
        """
        if self.state is DumpState.LOCKED:
            return None
        self.status_log.warning(
            "The number of thread counts exceed the threshold (%s), "
            "collecting memory dump...",
            sample.display_value(),
        )
        self.status_log.info("Acquiring lock...")
        if not self._acquire():
            return None
        artifact = self.dump_dir / artifact_name(self.target.instance, self.clock())
        self.captures_started += 1
        task = asyncio.get_running_loop().create_task(
            self._capture_and_upload(artifact), name="threadwatch-dump"
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _capture_and_upload(self, artifact: Path) -> DumpOutcome:
        try:
            await self.capturer.capture(self.target.pid, artifact)
        except CaptureError as exc:
            self.status_log.error("Memory dump collection failed: %s", exc)
            return DumpOutcome(artifact=artifact, error=str(exc))
        except Exception as exc:
            self.status_log.exception("Memory dump collection failed")
            return DumpOutcome(artifact=artifact, error=repr(exc))

        if not self.target.upload_url:
            self.status_log.info("Memory dump has been collected: %s", artifact.name)
            self.status_log.error(
                "No upload destination configured, keeping %s locally", artifact.name
            )
            return DumpOutcome(
                artifact=artifact, captured=True, error="no upload destination"
            )

        self.status_log.info(
            "Memory dump has been collected. Uploading %s to Azure Blob Container",
            artifact.name,
        )
        try:
            await self.uploader.upload(artifact, self.target.upload_url)
        except UploadError as exc:
            self.status_log.error("Memory dump upload failed: %s", exc)
            return DumpOutcome(artifact=artifact, captured=True, error=str(exc))
        except Exception as exc:
            self.status_log.exception("Memory dump upload failed")
            return DumpOutcome(artifact=artifact, captured=True, error=repr(exc))

        self.status_log.info("Memory dump has been uploaded to Azure Blob Container")
        return DumpOutcome(artifact=artifact, captured=True, uploaded=True)

    async def wait_idle(self) -> list[DumpOutcome]:
        """Wait for any running capture-and-upload task to finish."""
        if not self._tasks:
            return []
        return list(await asyncio.gather(*self._tasks))
