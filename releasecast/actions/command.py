"""Command-template actions backed by ``subprocess``.

Each action formats a command template with shell-quoted values, splits
it into argv with :mod:`shlex` and runs it without a shell.  Placeholders:

- ``{artifact}``: path of the artifact
- ``{name}``: file name of the artifact
- ``{tag}``: per-variant image tag
- ``{manifest}``: manifest key
- ``{tags}``: every tag of a manifest, as separate words
- ``{destination}``: file destination

Example::

    CommandPublishAction("crane push {artifact} {tag}")
    CommandManifestAction("docker manifest create {manifest} {tags}")
"""

from __future__ import annotations

import logging
import shlex
import subprocess
from collections.abc import Sequence

from releasecast.core.errors import CommandFailedError
from releasecast.models.artifacts import Artifact

logger = logging.getLogger(__name__)


class CommandAction:
    """Base class: format, split, and run one command per call.

    Parameters
    ----------
    template:
        Command line with ``{placeholder}`` fields.
    timeout:
        Optional per-command timeout in seconds.
    """

    def __init__(self, template: str, *, timeout: float | None = None) -> None:
        if not template.strip():
            raise ValueError("Command template must not be empty")
        self.template = template
        self.timeout = timeout

    def argv(self, **fields: str | Sequence[str]) -> list[str]:
        """Return the argv for *fields*, each value quoted before splitting."""
        quoted = {
            key: (
                shlex.quote(value)
                if isinstance(value, str)
                else " ".join(shlex.quote(v) for v in value)
            )
            for key, value in fields.items()
        }
        try:
            return shlex.split(self.template.format(**quoted))
        except KeyError as exc:
            raise ValueError(
                f"Unknown placeholder {exc} in command template {self.template!r}"
            ) from exc

    def run(self, **fields: str | Sequence[str]) -> str:
        """Run the command and return its stripped stdout.

        Raises
        ------
        CommandFailedError
            If the command exits non-zero.
        """
        argv = self.argv(**fields)
        logger.debug("Running %s", shlex.join(argv))
        completed = subprocess.run(
            argv,
            capture_output=True,
            text=True,
            check=False,
            timeout=self.timeout,
        )
        if completed.returncode != 0:
            raise CommandFailedError(argv, completed.returncode, completed.stderr)
        return completed.stdout.strip()


class CommandPublishAction(CommandAction):
    """Publish an artifact under a tag."""

    def __call__(self, artifact: Artifact, tag: str) -> str:
        return self.run(artifact=str(artifact.path), name=artifact.name, tag=tag)


class CommandManifestAction(CommandAction):
    """Combine tags into one manifest reference."""

    def __call__(self, manifest: str, tags: Sequence[str]) -> str:
        return self.run(manifest=manifest, tags=list(tags))


class CommandFilePublishAction(CommandAction):
    """Copy an artifact to a destination."""

    def __call__(self, artifact: Artifact, destination: str) -> str:
        return self.run(
            artifact=str(artifact.path),
            name=artifact.name,
            destination=destination,
        )


class CommandValidateAction(CommandAction):
    """Run a validation command against an artifact."""

    def __call__(self, artifact: Artifact) -> str:
        return self.run(artifact=str(artifact.path), name=artifact.name)
