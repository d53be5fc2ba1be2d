"""Shared plumbing for the run commands: settings, orchestrator, reporting."""

from __future__ import annotations

import asyncio
from collections.abc import Coroutine
from pathlib import Path
from typing import Any

import typer
from rich.console import Console

from releasecast.config import ReleasecastSettings, configure_logging
from releasecast.core.errors import ReleasecastError
from releasecast.core.orchestrator import Orchestrator
from releasecast.models.runs import RunReport
from releasecast.progress import ConsoleProgressSink, LoggingProgressSink, ProgressDispatcher

console = Console(stderr=True)


def build_orchestrator(
    parallel: int | None,
    artifact_dir: Path | None,
    verbose: bool,
) -> Orchestrator:
    """Build an orchestrator from settings overridden by CLI flags."""
    settings = ReleasecastSettings()
    overrides: dict[str, Any] = {}
    if artifact_dir is not None:
        overrides["artifact_dir"] = artifact_dir
    if verbose:
        overrides["log_level"] = "DEBUG"
    if overrides:
        settings = settings.model_copy(update=overrides)

    configure_logging(settings.log_level, console=console)
    sink = ProgressDispatcher(
        [ConsoleProgressSink(console=console, verbose=verbose), LoggingProgressSink()]
    )
    try:
        return Orchestrator(settings, parallel=parallel, sink=sink)
    except ValueError as exc:
        console.print(f"[bold red]Invalid configuration:[/bold red] {exc}")
        raise typer.Exit(code=2)


def require(value: str | None, flag: str) -> str:
    """Exit with a usage error when a required setting is empty."""
    if not value:
        console.print(f"[bold red]{flag}=<string> is required[/bold red]")
        raise typer.Exit(code=2)
    return value


def execute(run: Coroutine[Any, Any, RunReport]) -> RunReport:
    """Run one orchestrator flow, print outputs to stdout, map errors to exit 1."""
    try:
        report = asyncio.run(run)
    except ReleasecastError as exc:
        console.print(f"[bold red]Run failed:[/bold red] {exc}")
        raise typer.Exit(code=1)

    for output in report.outputs.values():
        if output:
            typer.echo(output)
    console.print(
        f"[bold green]Run {report.run_id} {report.state.value}[/bold green] "
        f"({len(report.published)} task(s))"
    )
    return report
