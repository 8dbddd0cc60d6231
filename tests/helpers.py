"""Fake collaborators and shared helpers for threadwatch tests."""

import asyncio
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

from threadwatch.core.errors import CaptureError, UploadError


def csv_line(timestamp: str, value: object, counter: str = "ThreadPool Thread Count") -> str:
    """Build a dotnet-counters style CSV line."""
    return f"{timestamp},System.Runtime,{counter},Metric,{value}\n"


async def wait_until(predicate: Callable[[], bool], timeout: float = 5.0) -> None:
    """Poll ``predicate`` until it holds or ``timeout`` expires."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met before timeout")
        await asyncio.sleep(0.01)


@dataclass
class FakeCapture:
    """DiagnosticCapturePort that records calls and writes a stub dump."""

    fail: bool = False
    delay: float = 0.0
    calls: list[tuple[int, Path]] = field(default_factory=list)

    async def capture(self, pid: int, output_path: Path) -> Path:
        self.calls.append((pid, output_path))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail:
            raise CaptureError("dotnet-dump exited with status 1: no such process")
        output_path.write_bytes(b"MDMP")
        return output_path


@dataclass
class FakeUploader:
    """UploaderPort that records calls."""

    fail: bool = False
    calls: list[tuple[Path, str]] = field(default_factory=list)

    async def upload(self, local_path: Path, destination: str) -> None:
        self.calls.append((local_path, destination))
        if self.fail:
            raise UploadError("azcopy exited with status 1: 403 Forbidden")


@dataclass
class FakeInspector:
    """ProcessInspectorPort backed by a fixed pid and environment."""

    pid: int | None = 4242
    environ: dict[str, str] = field(default_factory=dict)
    terminated: list[str] = field(default_factory=list)

    def discover_target_process(self) -> int | None:
        return self.pid

    def read_environment(self, pid: int) -> dict[str, str]:
        return dict(self.environ)

    def terminate_matching(self, pattern: str) -> list[int]:
        self.terminated.append(pattern)
        return [1000 + len(self.terminated)]


class FakeProcess:
    """Stand-in for asyncio.subprocess.Process."""

    def __init__(self) -> None:
        self.returncode: int | None = None

    def terminate(self) -> None:
        self.returncode = -15


@dataclass
class FakeCollector:
    """MetricsCollectorPort that writes canned lines to the output file."""

    lines: list[str] = field(default_factory=list)
    calls: list[tuple[int, str, Path]] = field(default_factory=list)
    process: FakeProcess = field(default_factory=FakeProcess)
    writes_file: bool = True
    exit_code: int | None = None

    async def start(self, pid: int, counters: str, output_path: Path) -> FakeProcess:
        self.calls.append((pid, counters, output_path))
        if self.writes_file:
            output_path.write_text("".join(self.lines), encoding="utf-8")
        self.process.returncode = self.exit_code
        return self.process
