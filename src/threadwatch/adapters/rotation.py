"""Hourly rotated log files for thread count samples."""

import threading
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import IO

from threadwatch.core.models import Sample
from threadwatch.core.naming import HOUR_KEY_FORMAT, hour_key, hourly_log_name


@dataclass
class RotationState:
    """The hour currently written to and its open file.

    Attributes:
        current_hour_key: Hour key of the active file, None before the first write.
        active_output: Handle of the active file, None before the first write.
    """

    current_hour_key: str | None = None
    active_output: IO[str] | None = None


class HourlyLogRotator:
    """Writes samples to ``<output_dir>/threadcount_<hour>.log``.

    The hour is taken from each sample's timestamp. A new file is opened
    exactly when the hour key changes, so there is always one active target
    and the sample that crosses the boundary lands in the new file.

    Args:
        output_dir: Directory for rotated files. Created if missing.
    """

    def __init__(self, output_dir: Path) -> None:
        self.output_dir = output_dir
        self.state = RotationState()
        self._lock = threading.Lock()

    @property
    def active_path(self) -> Path | None:
        """Path of the active file, or None before the first sample."""
        if self.state.current_hour_key is None:
            return None
        return self.output_dir / hourly_log_name(self.state.current_hour_key)

    def rotate_to(self, key: str) -> bool:
        """Make ``key`` the active hour.

        Returns:
            True if a new file was opened.
        """
        with self._lock:
            if key == self.state.current_hour_key:
                return False
            self.output_dir.mkdir(parents=True, exist_ok=True)
            previous = self.state.active_output
            if previous is not None:
                previous.close()
            path = self.output_dir / hourly_log_name(key)
            self.state = RotationState(
                current_hour_key=key,
                active_output=open(path, "a", encoding="utf-8"),
            )
            return True

    def write_sample(self, sample: Sample, now: datetime | None = None) -> None:
        """Route a sample to its hour's file, rotating first if needed."""
        self.rotate_to(hour_key(sample.timestamp, now))
        self.write_line(
            f"{sample.timestamp}: Thread Pool Thread Count: {sample.display_value()}"
        )

    def write_line(self, line: str) -> None:
        """Append a line to the active file.

        Before the first sample the current wall-clock hour is opened.
        """
        if self.state.active_output is None:
            self.rotate_to(datetime.now().strftime(HOUR_KEY_FORMAT))
        with self._lock:
            handle = self.state.active_output
            if handle is None or handle.closed:
                return
            handle.write(line + "\n")
            handle.flush()

    def close(self) -> None:
        """Close the active file. A later write reopens it."""
        with self._lock:
            if self.state.active_output is not None:
                self.state.active_output.close()
            self.state = RotationState()
