"""Python logging handler adapter for rotated status logs.

This adapter bridges Python's standard library logging module to the
HourlyLogRotator, so status messages emitted by the dump coordinator land in
the same hourly file as the samples that triggered them.
"""

import logging

from threadwatch.adapters.rotation import HourlyLogRotator

STATUS_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class RotatedLogHandler(logging.Handler):
    """Logging handler that appends records to the rotator's active file.

    Example:
        ```python
        rotator = HourlyLogRotator(Path("threadcount-logs-web01"))
        logging.getLogger("threadwatch.status").addHandler(RotatedLogHandler(rotator))
        ```
    """

    def __init__(self, rotator: HourlyLogRotator, level: int = logging.NOTSET) -> None:
        """Initialize the handler with the rotator to write into.

        Args:
            rotator: Rotator whose active file receives the records.
            level: Minimum level handled.
        """
        super().__init__(level)
        self._rotator = rotator
        self.setFormatter(
            logging.Formatter("%(asctime)s: %(message)s", datefmt=STATUS_DATE_FORMAT)
        )

    def emit(self, record: logging.LogRecord) -> None:
        """Emit a log record as one line of the active rotated file.

        Args:
            record: The log record to emit.
        """
        try:
            line = self.format(record)
            # Keep the status file line oriented, tracebacks go to the console
            line = line.splitlines()[0] if line else line
            if record.exc_info and record.exc_info[1] is not None:
                exc = record.exc_info[1]
                line = f"{line} ({type(exc).__name__}: {exc})"
            self._rotator.write_line(line)
        except Exception:
            self.handleError(record)
