"""Runtime configuration: env-driven via pydantic-settings.

Reads from a ``.env`` file and ``RELEASECAST_*`` environment variables.
CLI flags override these values per invocation.
"""

from __future__ import annotations

import logging
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from rich.console import Console
from rich.logging import RichHandler


class ReleasecastSettings(BaseSettings):
    """Release tooling configuration with environment variable overrides.

    Examples
    --------
    Override via environment::

        export RELEASECAST_PARALLEL=4
        export RELEASECAST_REGISTRY=docker.io/grafana
        export RELEASECAST_PUBLISH_COMMAND="crane push {artifact} {tag}"

    Or via .env file::

        RELEASECAST_LOG_LEVEL=DEBUG
        RELEASECAST_ARTIFACT_DIR=dist
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="RELEASECAST_",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Runtime environment
    environment: str = "development"
    log_level: str = "INFO"

    # Concurrency budget shared by every task of a run
    parallel: int = Field(default=2, ge=1)
    timeout_seconds: float | None = Field(default=None, gt=0)

    # Inputs and destinations
    artifact_dir: Path = Path(".")
    registry: str = ""
    edition: str | None = None
    destination: str = ""

    # Command templates for the shipped subprocess actions
    publish_command: str = ""
    manifest_command: str = "docker manifest create {manifest} {tags}"
    file_publish_command: str = "cp {artifact} {destination}"
    validate_command: str = ""


def configure_logging(level: str = "INFO", console: Console | None = None) -> None:
    """Route the ``releasecast`` logger hierarchy through a Rich handler."""
    handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        rich_tracebacks=True,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))

    root = logging.getLogger("releasecast")
    root.handlers[:] = [handler]
    root.setLevel(level.upper())

