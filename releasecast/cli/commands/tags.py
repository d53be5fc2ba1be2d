"""``releasecast tags NAME...``: show the tags and manifests artifacts derive."""

from __future__ import annotations

import typer
from rich.console import Console
from rich.table import Table

from releasecast.config import ReleasecastSettings
from releasecast.core.errors import InputError
from releasecast.core.tag_deriver import derive_image_tags
from releasecast.models.artifacts import ImagePublishOptions

console = Console()


def tags_cmd(
    names: list[str] = typer.Argument(..., help="Artifact file names."),
    registry: str = typer.Option(
        None, "--registry", "-r", help="Registry prefix for every tag."
    ),
    edition: str = typer.Option(
        None, "--edition", "-e", help="Override the edition parsed from names."
    ),
) -> None:
    """Derive image tags and manifest keys without publishing anything."""
    settings = ReleasecastSettings()
    registry = registry or settings.registry
    if not registry:
        console.print("[bold red]--registry=<string> is required[/bold red]")
        raise typer.Exit(code=2)
    options = ImagePublishOptions(registry=registry, edition=edition or settings.edition)

    table = Table(title="Derived Image Tags")
    table.add_column("Artifact", style="cyan")
    table.add_column("Base")
    table.add_column("Tag", style="green")
    table.add_column("Manifest", style="magenta")

    try:
        for name in names:
            for derived in derive_image_tags(name, options):
                table.add_row(name, derived.base.value, derived.tag, derived.manifest)
    except InputError as exc:
        console.print(f"[bold red]Invalid input:[/bold red] {exc}")
        raise typer.Exit(code=1)

    console.print(table)
