"""threadwatch: thread pool watchdog that takes one memory dump on breach."""

from threadwatch.adapters.rotation import HourlyLogRotator
from threadwatch.adapters.size_guard import SizeGuard
from threadwatch.config import MonitorConfig, SessionPaths
from threadwatch.core.models import DumpOutcome, MonitorTarget, Sample
from threadwatch.core.parsing import parse_line
from threadwatch.core.threshold import evaluate
from threadwatch.runtime.dump import DumpCoordinator, DumpState
from threadwatch.runtime.monitor import ThreadCountMonitor

__all__ = [
    "DumpCoordinator",
    "DumpOutcome",
    "DumpState",
    "HourlyLogRotator",
    "MonitorConfig",
    "MonitorTarget",
    "Sample",
    "SessionPaths",
    "SizeGuard",
    "ThreadCountMonitor",
    "evaluate",
    "parse_line",
]
