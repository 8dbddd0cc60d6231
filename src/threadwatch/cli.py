"""Command line entry point."""

import asyncio
import logging
import signal
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.markup import escape

from threadwatch.adapters.dotnet import DotnetCountersCollector, DotnetDumpCapture
from threadwatch.adapters.process import PsutilProcessInspector
from threadwatch.adapters.upload import AzCopyUploader, BlobHttpUploader
from threadwatch.config import MonitorConfig
from threadwatch.core.errors import StartupError
from threadwatch.core.threshold import DEFAULT_THRESHOLD
from threadwatch.runtime.session import Collaborators, run_cleanup, run_session

app = typer.Typer(
    add_completion=False,
    context_settings={"help_option_names": ["-h", "--help"]},
    help=(
        "Watch the thread pool size of a .NET process and take one memory "
        "dump when it meets the threshold."
    ),
)
err_console = Console(stderr=True)


def build_collaborators(config: MonitorConfig) -> Collaborators:
    """Concrete tool adapters for a configuration."""
    if config.upload_method == "http":
        uploader = BlobHttpUploader()
    else:
        uploader = AzCopyUploader(config.azcopy_tool)
    return Collaborators(
        inspector=PsutilProcessInspector(config.dotnet_host),
        collector=DotnetCountersCollector(config.counters_tool),
        capturer=DotnetDumpCapture(config.dump_tool),
        uploader=uploader,
    )


async def _serve(config: MonitorConfig, collaborators: Collaborators) -> None:
    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for signum in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(signum, stop.set)
    await run_session(config, collaborators, stop)


@app.command()
def main(
    threshold: Annotated[
        int | None,
        typer.Option(
            "--threshold",
            "-t",
            min=0,
            envvar="THREADWATCH_THRESHOLD",
            help=f"Thread count that triggers a dump (default {DEFAULT_THRESHOLD}).",
        ),
    ] = None,
    cleanup: Annotated[
        bool,
        typer.Option(
            "--cleanup",
            "-c",
            help="Terminate collector and monitor processes, then exit.",
        ),
    ] = False,
    work_dir: Annotated[
        Path,
        typer.Option(envvar="THREADWATCH_WORK_DIR", help="Directory for logs and dumps."),
    ] = Path("."),
    tools_dir: Annotated[
        Path,
        typer.Option(envvar="THREADWATCH_TOOLS_DIR", help="Diagnostic tools location."),
    ] = Path("/tools"),
    dotnet_host: Annotated[
        str,
        typer.Option(envvar="THREADWATCH_DOTNET_HOST", help="Runtime host executable."),
    ] = "/usr/share/dotnet/dotnet",
    upload_method: Annotated[
        str,
        typer.Option(
            envvar="THREADWATCH_UPLOAD_METHOD", help="Upload with 'azcopy' or 'http'."
        ),
    ] = "azcopy",
    verbose: Annotated[
        bool, typer.Option("--verbose", "-v", help="Log debug output.")
    ] = False,
) -> None:
    """Monitor thread pool size and collect a memory dump on breach."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if threshold is None:
        err_console.print(
            "[yellow]###Info:[/yellow] no threshold given, "
            f"using the default of {DEFAULT_THRESHOLD} threads"
        )
        threshold = DEFAULT_THRESHOLD
    try:
        config = MonitorConfig(
            threshold=threshold,
            work_dir=work_dir.resolve(),
            tools_dir=tools_dir,
            dotnet_host=dotnet_host,
            upload_method=upload_method,
        )
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc
    collaborators = build_collaborators(config)

    if cleanup:
        run_cleanup(collaborators.inspector, config)
        raise typer.Exit(code=0)

    try:
        asyncio.run(_serve(config, collaborators))
    except StartupError as exc:
        err_console.print(f"[red]{escape(str(exc))}[/red]")
        raise typer.Exit(code=1) from exc
    except KeyboardInterrupt:
        err_console.print("Monitor stopped")
