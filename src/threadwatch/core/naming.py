"""File naming helpers: hour keys, session files and dump artifacts."""

from datetime import datetime, timedelta

HOUR_KEY_FORMAT = "%Y-%m-%d_%H"
ARTIFACT_TIME_FORMAT = "%Y%m%d_%H%M%S"
LOCK_FILE_NAME = "dump_taken.lock"

# How far a bare time of day may run ahead of the clock before it is read as
# belonging to the previous day
CLOCK_SKEW = timedelta(minutes=5)

# Timestamp layouts written by dotnet-counters, most specific first
_TIMESTAMP_FORMATS = (
    "%m/%d/%Y %I:%M:%S %p",
    "%m/%d/%Y %H:%M:%S",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%dT%H:%M:%S",
)


def parse_timestamp(timestamp: str, now: datetime | None = None) -> datetime | None:
    """Parse a collector timestamp into a naive local datetime.

    A bare ``HH:MM:SS`` is placed on the date of ``now``, or on the day
    before when that would put it more than CLOCK_SKEW in the future.

    Returns:
        Parsed datetime, or None if no known layout matches.
    """
    text = timestamp.strip()
    for layout in _TIMESTAMP_FORMATS:
        try:
            return datetime.strptime(text, layout)
        except ValueError:
            continue
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        pass
    else:
        if parsed.tzinfo is not None:
            parsed = parsed.astimezone().replace(tzinfo=None)
        return parsed
    try:
        clock = datetime.strptime(text, "%H:%M:%S").time()
    except ValueError:
        return None
    base = now or datetime.now()
    moment = datetime.combine(base.date(), clock)
    if moment - base > CLOCK_SKEW:
        moment -= timedelta(days=1)
    return moment


def hour_key(timestamp: str, now: datetime | None = None) -> str:
    """Truncate a sample timestamp to its ``YYYY-MM-DD_HH`` hour key.

    Unparseable timestamps fall back to the current wall-clock hour.
    """
    moment = parse_timestamp(timestamp, now)
    if moment is None:
        moment = now or datetime.now()
    return moment.strftime(HOUR_KEY_FORMAT)


def hourly_log_name(key: str) -> str:
    """File name of the rotated log for an hour key."""
    return f"threadcount_{key}.log"


def output_dir_name(instance: str) -> str:
    """Directory holding the rotated logs of one instance."""
    return f"threadcount-logs-{instance}"


def metrics_file_name(instance: str) -> str:
    """Raw CSV file written by the metrics collector."""
    return f"dotnet-runtime-metrics-{instance}.csv"


def artifact_name(instance: str, moment: datetime | None = None) -> str:
    """Dump file name, ``dump_<instance>_<YYYYmmdd_HHMMSS>.dmp``."""
    stamp = (moment or datetime.now()).strftime(ARTIFACT_TIME_FORMAT)
    return f"dump_{instance}_{stamp}.dmp"
