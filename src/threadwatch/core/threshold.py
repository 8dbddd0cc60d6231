"""Threshold evaluation for counter samples."""

DEFAULT_THRESHOLD = 100


def evaluate(value: float, threshold: int = DEFAULT_THRESHOLD) -> bool:
    """Return True when ``value`` meets or exceeds ``threshold``."""
    return value >= threshold
