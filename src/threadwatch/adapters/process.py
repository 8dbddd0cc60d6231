"""psutil-backed process discovery, environment reading and termination."""

import logging
import os
import signal
from collections.abc import Mapping

import psutil

logger = logging.getLogger(__name__)


class PsutilProcessInspector:
    """Implementation of ProcessInspectorPort on top of psutil.

    Args:
        host_executable: Path of the runtime host the target runs under
            (e.g., /usr/share/dotnet/dotnet).
    """

    def __init__(self, host_executable: str = "/usr/share/dotnet/dotnet") -> None:
        self.host_executable = host_executable

    def _matches_host(self, info: dict) -> bool:
        exe = info.get("exe") or ""
        cmdline = info.get("cmdline") or []
        return exe == self.host_executable or (
            bool(cmdline) and cmdline[0] == self.host_executable
        )

    def discover_target_process(self) -> int | None:
        """Return the pid of the first process running the host executable."""
        for proc in psutil.process_iter(["pid", "exe", "cmdline"]):
            try:
                if self._matches_host(proc.info):
                    return proc.info["pid"]
            except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess):
                continue
        return None

    def read_environment(self, pid: int) -> Mapping[str, str]:
        """Return the environment of ``pid``, empty if it cannot be read."""
        try:
            return psutil.Process(pid).environ()
        except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess) as exc:
            logger.warning("Cannot read environment of pid %d: %s", pid, exc)
            return {}

    def terminate_matching(self, pattern: str) -> list[int]:
        """SIGTERM every other process whose command line contains ``pattern``."""
        own_pid = os.getpid()
        signalled: list[int] = []
        for proc in psutil.process_iter(["pid", "cmdline"]):
            try:
                if proc.info["pid"] == own_pid:
                    continue
                cmdline = " ".join(proc.info.get("cmdline") or [])
                if pattern not in cmdline:
                    continue
                proc.send_signal(signal.SIGTERM)
                signalled.append(proc.info["pid"])
            except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess):
                continue
        return signalled
