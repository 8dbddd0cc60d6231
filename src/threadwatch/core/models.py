"""Core domain models for thread count monitoring."""

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class Sample:
    """A single counter reading parsed from the metrics stream.

    Attributes:
        timestamp: Timestamp text exactly as emitted by the collector.
        counter_name: Name of the counter (e.g., ThreadPool Thread Count).
        value: The counter value.
    """

    timestamp: str
    counter_name: str
    value: float

    def display_value(self) -> str:
        """Render the value without a trailing ``.0`` for whole numbers."""
        if float(self.value).is_integer():
            return str(int(self.value))
        return str(self.value)


@dataclass(frozen=True)
class MonitorTarget:
    """The runtime process being watched.

    Attributes:
        pid: Process id of the .NET host.
        instance: Instance name read from the process environment.
        upload_url: Container SAS URL for uploads, if the process has one.
    """

    pid: int
    instance: str
    upload_url: str | None = None


@dataclass(frozen=True)
class DumpOutcome:
    """Result of one capture-and-upload sequence.

    Attributes:
        artifact: Path the dump was written to (or would have been).
        captured: True if the capture tool succeeded.
        uploaded: True if the artifact reached remote storage.
        error: Description of the failure that stopped the sequence, if any.
    """

    artifact: Path
    captured: bool = False
    uploaded: bool = False
    error: str | None = None
