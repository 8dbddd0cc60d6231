"""BDD step definitions for the thread count watchdog features."""

import asyncio
from dataclasses import dataclass, field
from pathlib import Path

import pytest
from pytest_bdd import given, parsers, then, when

from tests.helpers import FakeCapture, FakeUploader, csv_line, wait_until
from threadwatch.adapters.rotation import HourlyLogRotator
from threadwatch.core.models import MonitorTarget
from threadwatch.core.naming import hour_key, hourly_log_name
from threadwatch.core.parsing import parse_line
from threadwatch.runtime.dump import DumpCoordinator
from threadwatch.runtime.monitor import ThreadCountMonitor

UPLOAD_URL = "https://diag.blob.core.windows.net/dumps?sig=abc"


@dataclass
class WatchdogScenarioContext:
    """Shared state between steps in a watchdog scenario."""

    work_dir: Path
    instance: str = "web01"
    threshold: int = 100
    capture: FakeCapture = field(default_factory=FakeCapture)
    uploader: FakeUploader = field(default_factory=FakeUploader)
    monitor: ThreadCountMonitor | None = None

    @property
    def log_dir(self) -> Path:
        return self.work_dir / f"threadcount-logs-{self.instance}"

    @property
    def lock_file(self) -> Path:
        return self.work_dir / "dump_taken.lock"

    def log_lines(self, timestamp: str) -> list[str]:
        path = self.log_dir / hourly_log_name(hour_key(timestamp))
        return path.read_text().splitlines()


@pytest.fixture
def ctx(tmp_path: Path) -> WatchdogScenarioContext:
    """Fresh scenario context for each test."""
    return WatchdogScenarioContext(work_dir=tmp_path)


async def _run_pipeline(ctx: WatchdogScenarioContext, lines: list[str]) -> None:
    metrics_file = ctx.work_dir / f"dotnet-runtime-metrics-{ctx.instance}.csv"
    metrics_file.write_text("")
    coordinator = DumpCoordinator(
        target=MonitorTarget(pid=4242, instance=ctx.instance, upload_url=UPLOAD_URL),
        lock_path=ctx.lock_file,
        dump_dir=ctx.work_dir,
        capturer=ctx.capture,
        uploader=ctx.uploader,
    )
    ctx.monitor = ThreadCountMonitor(
        metrics_path=metrics_file,
        rotator=HourlyLogRotator(ctx.log_dir),
        coordinator=coordinator,
        threshold=ctx.threshold,
        poll_interval=0.01,
    )
    stop = asyncio.Event()
    runner = asyncio.create_task(ctx.monitor.run(stop))
    with open(metrics_file, "a") as handle:
        handle.writelines(lines)
    expected = sum(1 for line in lines if parse_line(line) is not None)
    await wait_until(lambda: ctx.monitor.samples_seen >= expected)
    await coordinator.wait_idle()
    stop.set()
    await asyncio.wait_for(runner, timeout=5)


# === Given ===
@given(parsers.parse('a monitored process "{instance}" with threshold {threshold:d}'))
def step_monitored_process(ctx: WatchdogScenarioContext, instance: str, threshold: int) -> None:
    ctx.instance = instance
    ctx.threshold = threshold


@given("the capture tool fails")
def step_capture_fails(ctx: WatchdogScenarioContext) -> None:
    ctx.capture = FakeCapture(fail=True)


# === When ===
@when("the collector writes samples:")
def step_write_samples(ctx: WatchdogScenarioContext, datatable: list[list[str]]) -> None:
    lines = [csv_line(row[0].strip(), row[1].strip()) for row in datatable[1:]]
    asyncio.run(_run_pipeline(ctx, lines))


@when("the collector writes raw lines:")
def step_write_raw_lines(ctx: WatchdogScenarioContext, datatable: list[list[str]]) -> None:
    lines = [row[0].strip() + "\n" for row in datatable[1:]]
    asyncio.run(_run_pipeline(ctx, lines))


# === Then ===
@then(parsers.re(r"exactly (?P<count>\d+) captures? (is|are) taken"))
def step_capture_count(ctx: WatchdogScenarioContext, count: str) -> None:
    assert len(ctx.capture.calls) == int(count)


@then(parsers.parse('the dump lock names instance "{instance}"'))
def step_lock_names_instance(ctx: WatchdogScenarioContext, instance: str) -> None:
    assert ctx.lock_file.read_text().strip() == f"Memory dump is collected by {instance}"


@then("no dump lock exists")
def step_no_lock(ctx: WatchdogScenarioContext) -> None:
    assert not ctx.lock_file.exists()


@then("the dump is uploaded")
def step_dump_uploaded(ctx: WatchdogScenarioContext) -> None:
    assert len(ctx.uploader.calls) == 1
    artifact, destination = ctx.uploader.calls[0]
    assert artifact.name.startswith(f"dump_{ctx.instance}_")
    assert destination == UPLOAD_URL


@then("nothing is uploaded")
def step_nothing_uploaded(ctx: WatchdogScenarioContext) -> None:
    assert ctx.uploader.calls == []


@then(parsers.parse("{count:d} hourly logs exist"))
def step_hourly_log_count(ctx: WatchdogScenarioContext, count: int) -> None:
    assert len(list(ctx.log_dir.glob("threadcount_*.log"))) == count


@then(parsers.parse('the hourly log for "{timestamp}" has sample values "{values}"'))
def step_log_sample_values(ctx: WatchdogScenarioContext, timestamp: str, values: str) -> None:
    marker = ": Thread Pool Thread Count: "
    found = [
        line.rsplit(marker, 1)[1] for line in ctx.log_lines(timestamp) if marker in line
    ]
    assert found == [v.strip() for v in values.split(",")]


@then(parsers.parse("status lines follow the sample with value {value:d}"))
def step_status_after_sample(ctx: WatchdogScenarioContext, value: int) -> None:
    lines = ctx.log_lines("10:00:01")
    index = next(
        i for i, line in enumerate(lines) if line.endswith(f"Thread Pool Thread Count: {value}")
    )
    assert "exceed the threshold" in lines[index + 1]
    assert lines[index + 2].endswith("Acquiring lock...")
    assert any("has been collected" in line for line in lines[index + 1 :])
    assert any("has been uploaded" in line for line in lines[index + 1 :])


@then(parsers.parse('the hourly log for "{timestamp}" mentions "{text}"'))
def step_log_mentions(ctx: WatchdogScenarioContext, timestamp: str, text: str) -> None:
    assert any(text in line for line in ctx.log_lines(timestamp))
