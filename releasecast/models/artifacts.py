"""Artifact identity models: produced build outputs are read-only inputs."""

from __future__ import annotations

from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field


class BaseImage(str, Enum):
    """Base image family a container artifact was built on."""

    ALPINE = "alpine"
    UBUNTU = "ubuntu"


class Artifact(BaseModel):
    """An opaque handle to a produced file or directory.

    The orchestrator never reads or writes ``path``; it is handed through
    to the publish, aggregate, and validate actions untouched.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    path: Path
    size_bytes: int = 0


class ArtifactIdentity(BaseModel):
    """Semantic identity parsed from an artifact's file name."""

    model_config = ConfigDict(frozen=True)

    product: str
    edition: str = ""  # "" is the default (open source) edition
    version: str
    build_id: str = ""
    os: str = ""
    arch: str
    extension: str


class ImagePublishOptions(BaseModel):
    """Per-run options for container image publication.

    Parameters
    ----------
    registry:
        Registry (and optional organisation path) prefixed to every tag,
        e.g. ``"docker.io/grafana"``.
    edition:
        Overrides the edition parsed from each artifact name when set.
    """

    model_config = ConfigDict(frozen=True)

    registry: str = Field(min_length=1)
    edition: str | None = None


class DerivedTag(BaseModel):
    """One output tag for one artifact and the manifest it rolls up into."""

    model_config = ConfigDict(frozen=True)

    artifact_name: str
    tag: str
    manifest: str
    base: BaseImage
