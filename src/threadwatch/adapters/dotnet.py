"""Subprocess adapters for the .NET diagnostic tools."""

import asyncio
import logging
from pathlib import Path

from threadwatch.core.errors import CaptureError, CollectorStartError

logger = logging.getLogger(__name__)


class DotnetCountersCollector:
    """Implementation of MetricsCollectorPort running ``dotnet-counters collect``.

    Args:
        tool: Path of the dotnet-counters executable.
    """

    def __init__(self, tool: Path = Path("/tools/dotnet-counters")) -> None:
        self.tool = tool

    async def start(
        self, pid: int, counters: str, output_path: Path
    ) -> asyncio.subprocess.Process:
        """Start the collector in the background; its stdout is discarded.

        Raises:
            CollectorStartError: If the tool cannot be started.
        """
        logger.info("Starting %s for pid %d -> %s", self.tool, pid, output_path)
        try:
            return await asyncio.create_subprocess_exec(
                str(self.tool),
                "collect",
                "--process-id",
                str(pid),
                "--counters",
                counters,
                "--output",
                str(output_path),
                stdout=asyncio.subprocess.DEVNULL,
            )
        except OSError as exc:
            raise CollectorStartError(f"cannot run {self.tool}: {exc}") from exc


class DotnetDumpCapture:
    """Implementation of DiagnosticCapturePort running ``dotnet-dump collect``.

    Args:
        tool: Path of the dotnet-dump executable.
    """

    def __init__(self, tool: Path = Path("/tools/dotnet-dump")) -> None:
        self.tool = tool

    async def capture(self, pid: int, output_path: Path) -> Path:
        """Collect a dump of ``pid`` into ``output_path``.

        Raises:
            CaptureError: If the tool cannot be started or exits non-zero.
        """
        try:
            proc = await asyncio.create_subprocess_exec(
                str(self.tool),
                "collect",
                "-p",
                str(pid),
                "-o",
                str(output_path),
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            raise CaptureError(f"cannot run {self.tool}: {exc}") from exc
        _, stderr = await proc.communicate()
        if proc.returncode != 0:
            detail = stderr.decode(errors="replace").strip()
            raise CaptureError(
                f"{self.tool.name} exited with status {proc.returncode}: {detail}"
            )
        return output_path
