"""Publication commands: ``docker-publish``, ``publish-files``, ``publish-single``."""

from __future__ import annotations

from pathlib import Path

import typer

from releasecast.actions.command import (
    CommandFilePublishAction,
    CommandManifestAction,
    CommandPublishAction,
    CommandValidateAction,
)
from releasecast.cli.commands._common import build_orchestrator, execute, require
from releasecast.models.artifacts import ImagePublishOptions

_PARALLEL = typer.Option(None, "--parallel", "-p", min=1, help="Concurrency budget.")
_ARTIFACT_DIR = typer.Option(None, "--artifact-dir", "-a", help="Directory holding artifacts.")
_TIMEOUT = typer.Option(None, "--timeout", help="Deadline for the whole run, in seconds.")
_VERBOSE = typer.Option(False, "--verbose", "-v", help="Show every task event.")


def docker_publish_cmd(
    names: list[str] = typer.Argument(..., help="Docker image tarballs to publish."),
    registry: str = typer.Option(None, "--registry", "-r", help="Registry prefix for every tag."),
    edition: str = typer.Option(None, "--edition", "-e", help="Override the parsed edition."),
    publish_command: str = typer.Option(
        None, "--publish-command", help="Template run per tag, e.g. 'crane push {artifact} {tag}'."
    ),
    manifest_command: str = typer.Option(
        None, "--manifest-command", help="Template run per manifest, e.g. '... {manifest} {tags}'."
    ),
    parallel: int = _PARALLEL,
    artifact_dir: Path = _ARTIFACT_DIR,
    timeout: float = _TIMEOUT,
    verbose: bool = _VERBOSE,
) -> None:
    """Publish every image tag, then combine them into multi-arch manifests.

    Nothing is rolled back on failure: tags published before the first
    error stay live.
    """
    orchestrator = build_orchestrator(parallel, artifact_dir, verbose)
    settings = orchestrator.settings
    options = ImagePublishOptions(
        registry=require(registry or settings.registry, "--registry"),
        edition=edition or settings.edition,
    )
    publish = CommandPublishAction(
        require(publish_command or settings.publish_command, "--publish-command")
    )
    aggregate = CommandManifestAction(
        require(manifest_command or settings.manifest_command, "--manifest-command")
    )
    execute(
        orchestrator.publish_images(names, options, publish, aggregate, timeout=timeout)
    )


def publish_files_cmd(
    names: list[str] = typer.Argument(..., help="Packages to publish."),
    destination: str = typer.Option(
        None, "--destination", "-d", help="Destination prefix; file names are appended."
    ),
    command: str = typer.Option(
        None, "--command", help="Template run per file, e.g. 'gsutil cp {artifact} {destination}'."
    ),
    parallel: int = _PARALLEL,
    artifact_dir: Path = _ARTIFACT_DIR,
    timeout: float = _TIMEOUT,
    verbose: bool = _VERBOSE,
) -> None:
    """Copy every package to the destination."""
    orchestrator = build_orchestrator(parallel, artifact_dir, verbose)
    settings = orchestrator.settings
    action = CommandFilePublishAction(
        require(command or settings.file_publish_command, "--command")
    )
    execute(
        orchestrator.publish_files(
            names,
            require(destination or settings.destination, "--destination"),
            action,
            timeout=timeout,
        )
    )


def publish_single_cmd(
    name: str = typer.Argument(..., help="The single package the publication consumes."),
    command: str = typer.Option(..., "--command", help="Template run once, e.g. 'npm publish {artifact}'."),
    artifact_dir: Path = _ARTIFACT_DIR,
    timeout: float = _TIMEOUT,
    verbose: bool = _VERBOSE,
) -> None:
    """Run a publication that consumes exactly one package."""
    orchestrator = build_orchestrator(None, artifact_dir, verbose)
    execute(
        orchestrator.publish_single([name], CommandValidateAction(command), timeout=timeout)
    )
