"""Parsing of dotnet-counters CSV lines into samples."""

import math

from threadwatch.core.models import Sample

THREAD_COUNT_MARKER = "ThreadPool Thread Count"


def parse_line(line: str, marker: str = THREAD_COUNT_MARKER) -> Sample | None:
    """Parse one metrics line into a Sample.

    The first comma-separated field is the timestamp and the last one is the
    value. Lines without ``marker`` are ignored.

    Args:
        line: Raw line from the metrics stream.
        marker: Counter name a line must contain to be considered.

    Returns:
        Sample, or None if the line is irrelevant or malformed.
    """
    if marker not in line:
        return None
    fields = line.strip().split(",")
    if len(fields) < 2:
        return None
    try:
        value = float(fields[-1].strip())
    except ValueError:
        return None
    if not math.isfinite(value):
        return None
    return Sample(
        timestamp=fields[0].strip(),
        counter_name=marker,
        value=value,
    )
