"""Main Typer application: imports and registers all CLI commands.

Entry point: ``releasecast`` (configured via pyproject.toml scripts).
"""

from __future__ import annotations

import typer

from releasecast.cli.commands.publish import (
    docker_publish_cmd,
    publish_files_cmd,
    publish_single_cmd,
)
from releasecast.cli.commands.tags import tags_cmd
from releasecast.cli.commands.validate import validate_cmd

app = typer.Typer(
    name="releasecast",
    help="Releasecast: bounded-concurrency publication and validation of release artifacts.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)

# Register subcommands
app.command(name="tags", help="Show derived image tags and manifests.")(tags_cmd)
app.command(name="docker-publish", help="Publish images and multi-arch manifests.")(docker_publish_cmd)
app.command(name="publish-files", help="Copy packages to a destination.")(publish_files_cmd)
app.command(name="publish-single", help="Run a single-package publication.")(publish_single_cmd)
app.command(name="validate", help="Validate packages concurrently.")(validate_cmd)


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
