"""Runtime configuration for a monitoring session."""

from dataclasses import dataclass, field
from pathlib import Path

from threadwatch.core.naming import (
    LOCK_FILE_NAME,
    metrics_file_name,
    output_dir_name,
)
from threadwatch.core.parsing import THREAD_COUNT_MARKER
from threadwatch.core.threshold import DEFAULT_THRESHOLD

MAX_METRICS_BYTES = 1024 * 1024
INSTANCE_ENV_VAR = "COMPUTERNAME"
UPLOAD_URL_ENV_VAR = "DIAGNOSTICS_AZUREBLOBCONTAINERSASURL"


@dataclass(frozen=True)
class MonitorConfig:
    """Settings for one threadwatch run.

    Attributes:
        threshold: Thread count that triggers a capture (>=).
        work_dir: Directory holding the metrics file, logs, lock and dumps.
        tools_dir: Directory containing dotnet-counters, dotnet-dump, azcopy.
        dotnet_host: Executable path identifying the monitored runtime.
        counters: Counter provider passed to the collector.
        marker: Counter name extracted from the stream.
        max_metrics_bytes: Size ceiling of the raw metrics file.
        size_check_interval: Seconds between Size Guard checks.
        poll_interval: Seconds the reader sleeps when no data is available.
        file_wait_interval: Seconds between checks for the metrics file.
        upload_method: "azcopy" or "http".
    """

    threshold: int = DEFAULT_THRESHOLD
    work_dir: Path = field(default_factory=Path.cwd)
    tools_dir: Path = Path("/tools")
    dotnet_host: str = "/usr/share/dotnet/dotnet"
    counters: str = "System.Runtime"
    marker: str = THREAD_COUNT_MARKER
    max_metrics_bytes: int = MAX_METRICS_BYTES
    size_check_interval: float = 0.5
    poll_interval: float = 0.25
    file_wait_interval: float = 1.0
    upload_method: str = "azcopy"

    def __post_init__(self) -> None:
        if self.threshold < 0:
            raise ValueError(f"threshold must be non-negative, got {self.threshold}")
        if self.upload_method not in ("azcopy", "http"):
            raise ValueError(f"unknown upload method: {self.upload_method}")

    @property
    def counters_tool(self) -> Path:
        return self.tools_dir / "dotnet-counters"

    @property
    def dump_tool(self) -> Path:
        return self.tools_dir / "dotnet-dump"

    @property
    def azcopy_tool(self) -> Path:
        return self.tools_dir / "azcopy"


@dataclass(frozen=True)
class SessionPaths:
    """Filesystem layout of a session for one instance."""

    output_dir: Path
    metrics_file: Path
    lock_file: Path
    dump_dir: Path

    @classmethod
    def for_instance(cls, config: MonitorConfig, instance: str) -> "SessionPaths":
        """Derive the session layout from the instance name."""
        return cls(
            output_dir=config.work_dir / output_dir_name(instance),
            metrics_file=config.work_dir / metrics_file_name(instance),
            lock_file=config.work_dir / LOCK_FILE_NAME,
            dump_dir=config.work_dir,
        )
