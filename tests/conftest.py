"""Shared test fixtures for all test modules."""

from pathlib import Path

import pytest

from tests.helpers import FakeCapture, FakeInspector, FakeUploader
from threadwatch.core.models import MonitorTarget

UPLOAD_URL = "https://diag.blob.core.windows.net/dumps?sv=2022-11-02&sig=abc"


@pytest.fixture
def target() -> MonitorTarget:
    """A monitored process with an instance name and upload URL."""
    return MonitorTarget(pid=4242, instance="web01", upload_url=UPLOAD_URL)


@pytest.fixture
def capture() -> FakeCapture:
    return FakeCapture()


@pytest.fixture
def uploader() -> FakeUploader:
    return FakeUploader()


@pytest.fixture
def inspector() -> FakeInspector:
    """Inspector reporting a .NET process with the usual App Service variables."""
    return FakeInspector(
        environ={
            "COMPUTERNAME": "web01",
            "DIAGNOSTICS_AZUREBLOBCONTAINERSASURL": UPLOAD_URL,
        }
    )


@pytest.fixture
def metrics_file(tmp_path: Path) -> Path:
    """An empty metrics file, as just created by the collector."""
    path = tmp_path / "dotnet-runtime-metrics-web01.csv"
    path.write_text("Timestamp,Provider,Counter Name,Counter Type,Mean/Increment\n")
    return path
