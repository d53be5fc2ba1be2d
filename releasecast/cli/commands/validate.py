"""``releasecast validate NAME...``: run a validation workload per package."""

from __future__ import annotations

from pathlib import Path

import typer

from releasecast.actions.command import CommandValidateAction
from releasecast.cli.commands._common import build_orchestrator, execute, require


def validate_cmd(
    names: list[str] = typer.Argument(..., help="Packages to validate."),
    command: str = typer.Option(
        None, "--command", help="Template run per package, e.g. './e2e.sh {artifact}'."
    ),
    parallel: int = typer.Option(None, "--parallel", "-p", min=1, help="Concurrency budget."),
    artifact_dir: Path = typer.Option(
        None, "--artifact-dir", "-a", help="Directory holding artifacts."
    ),
    timeout: float = typer.Option(None, "--timeout", help="Deadline for the whole run, in seconds."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show every task event."),
) -> None:
    """Validate every package; the first failure cancels the rest."""
    orchestrator = build_orchestrator(parallel, artifact_dir, verbose)
    action = CommandValidateAction(
        require(command or orchestrator.settings.validate_command, "--command")
    )
    execute(orchestrator.validate_packages(names, action, timeout=timeout))
