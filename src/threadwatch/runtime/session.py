"""Session bootstrap and cleanup.

A session resolves the target process, starts the metrics collector, waits
for its output file and then runs the monitor until stopped. Startup
failures raise StartupError subclasses, everything after that is kept alive
by the monitor itself.
"""

import asyncio
import contextlib
import logging
from dataclasses import dataclass

from threadwatch.adapters.rotation import HourlyLogRotator
from threadwatch.adapters.size_guard import SizeGuard
from threadwatch.adapters.stream import wait_for_file
from threadwatch.config import (
    INSTANCE_ENV_VAR,
    UPLOAD_URL_ENV_VAR,
    MonitorConfig,
    SessionPaths,
)
from threadwatch.core.errors import (
    CollectorStartError,
    MissingEnvironmentError,
    TargetProcessNotFoundError,
)
from threadwatch.core.models import MonitorTarget
from threadwatch.core.ports import (
    DiagnosticCapturePort,
    MetricsCollectorPort,
    ProcessInspectorPort,
    UploaderPort,
)
from threadwatch.runtime.dump import DumpCoordinator
from threadwatch.runtime.monitor import ThreadCountMonitor

logger = logging.getLogger(__name__)

MONITOR_PROCESS_PATTERN = "threadwatch"


@dataclass
class Collaborators:
    """External tools a session drives."""

    inspector: ProcessInspectorPort
    collector: MetricsCollectorPort
    capturer: DiagnosticCapturePort
    uploader: UploaderPort


def resolve_target(inspector: ProcessInspectorPort) -> MonitorTarget:
    """Find the runtime process and read its instance name and upload URL.

    Raises:
        TargetProcessNotFoundError: No runtime process is running.
        MissingEnvironmentError: The process has no instance name.
    """
    pid = inspector.discover_target_process()
    if pid is None:
        raise TargetProcessNotFoundError()
    environ = inspector.read_environment(pid)
    instance = environ.get(INSTANCE_ENV_VAR)
    if not instance:
        raise MissingEnvironmentError(INSTANCE_ENV_VAR)
    upload_url = environ.get(UPLOAD_URL_ENV_VAR) or None
    if upload_url is None:
        logger.warning("%s is not set, dumps will not be uploaded", UPLOAD_URL_ENV_VAR)
    return MonitorTarget(pid=pid, instance=instance, upload_url=upload_url)


def build_monitor(
    config: MonitorConfig,
    target: MonitorTarget,
    paths: SessionPaths,
    collaborators: Collaborators,
) -> ThreadCountMonitor:
    """Wire rotator, size guard and coordinator into a monitor."""
    rotator = HourlyLogRotator(paths.output_dir)
    coordinator = DumpCoordinator(
        target=target,
        lock_path=paths.lock_file,
        dump_dir=paths.dump_dir,
        capturer=collaborators.capturer,
        uploader=collaborators.uploader,
    )
    guard = SizeGuard(
        paths.metrics_file,
        max_bytes=config.max_metrics_bytes,
        interval=config.size_check_interval,
    )
    return ThreadCountMonitor(
        metrics_path=paths.metrics_file,
        rotator=rotator,
        coordinator=coordinator,
        threshold=config.threshold,
        size_guard=guard,
        marker=config.marker,
        poll_interval=config.poll_interval,
    )


async def run_session(
    config: MonitorConfig,
    collaborators: Collaborators,
    stop: asyncio.Event | None = None,
) -> ThreadCountMonitor:
    """Run a full monitoring session until ``stop`` is set.

    The collector process is terminated when the session ends. A capture
    still running at that point is not awaited. Setting ``stop`` while the
    metrics file is still awaited ends the session without monitoring.

    Raises:
        StartupError: The target cannot be resolved, or the collector cannot
            be started or exits before writing its output file.
    """
    target = resolve_target(collaborators.inspector)
    paths = SessionPaths.for_instance(config, target.instance)
    paths.output_dir.mkdir(parents=True, exist_ok=True)
    logger.info(
        "Monitoring pid %d (%s) with threshold %d",
        target.pid,
        target.instance,
        config.threshold,
    )

    collector = await collaborators.collector.start(
        target.pid, config.counters, paths.metrics_file
    )
    monitor = build_monitor(config, target, paths, collaborators)
    try:
        found = await wait_for_file(
            paths.metrics_file,
            config.file_wait_interval,
            stop,
            give_up=lambda: collector.returncode is not None,
        )
        if found:
            await monitor.run(stop)
        elif collector.returncode is not None:
            raise CollectorStartError(
                f"metrics collector exited with status {collector.returncode} "
                f"before writing {paths.metrics_file.name}"
            )
        else:
            logger.info("Stopped while waiting for %s", paths.metrics_file.name)
    finally:
        if collector.returncode is None:
            with contextlib.suppress(ProcessLookupError):
                collector.terminate()
    return monitor


def run_cleanup(inspector: ProcessInspectorPort, config: MonitorConfig) -> list[int]:
    """Terminate collector processes and other threadwatch instances.

    Returns:
        Pids that were signalled.
    """
    logger.info("Shutting down dotnet-counters collect process...")
    signalled = inspector.terminate_matching(str(config.counters_tool))
    logger.info("Shutting down %s processes...", MONITOR_PROCESS_PATTERN)
    signalled += inspector.terminate_matching(MONITOR_PROCESS_PATTERN)
    logger.info("Completed")
    return signalled
