"""Port interfaces for external collaborators.

These protocols define the contracts that collaborator adapters must implement.
The monitoring runtime depends only on these interfaces, not on the concrete
tools (psutil, dotnet-counters, dotnet-dump, azcopy).
"""

import asyncio
from collections.abc import Mapping
from pathlib import Path
from typing import Protocol, runtime_checkable


@runtime_checkable
class ProcessInspectorPort(Protocol):
    """Port for discovering and inspecting processes on the host.

    Examples: PsutilProcessInspector.
    """

    def discover_target_process(self) -> int | None:
        """Return the pid of the monitored runtime, or None if not running."""
        ...

    def read_environment(self, pid: int) -> Mapping[str, str]:
        """Return the environment variables of process ``pid``."""
        ...

    def terminate_matching(self, pattern: str) -> list[int]:
        """Send SIGTERM to processes whose command line contains ``pattern``.

        Returns:
            Pids that were signalled. The calling process is never included.
        """
        ...


@runtime_checkable
class MetricsCollectorPort(Protocol):
    """Port for the long-running metrics source.

    Examples: DotnetCountersCollector.
    """

    async def start(
        self, pid: int, counters: str, output_path: Path
    ) -> asyncio.subprocess.Process:
        """Start streaming ``counters`` of ``pid`` into ``output_path``."""
        ...


@runtime_checkable
class DiagnosticCapturePort(Protocol):
    """Port for capturing a diagnostic snapshot of a process.

    Examples: DotnetDumpCapture.
    """

    async def capture(self, pid: int, output_path: Path) -> Path:
        """Write a dump of ``pid`` to ``output_path``.

        Raises:
            CaptureError: If the capture did not complete.
        """
        ...


@runtime_checkable
class UploaderPort(Protocol):
    """Port for shipping an artifact to remote storage.

    Examples: AzCopyUploader, BlobHttpUploader.
    """

    async def upload(self, local_path: Path, destination: str) -> None:
        """Upload ``local_path`` to ``destination``.

        Raises:
            UploadError: If the upload did not complete.
        """
        ...
