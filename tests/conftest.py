"""Shared test fixtures for releasecast."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest

from releasecast.config import ReleasecastSettings
from releasecast.core.artifact_source import LocalArtifactSource
from releasecast.models.artifacts import Artifact, ImagePublishOptions
from releasecast.progress import RecordingProgressSink

REGISTRY = "example/repo"


@pytest.fixture
def artifact_dir(tmp_path: Path) -> Path:
    """Provide a directory that artifacts are written into."""
    path = tmp_path / "dist"
    path.mkdir()
    return path


@pytest.fixture
def make_artifact(artifact_dir: Path) -> Callable[[str], Artifact]:
    """Factory fixture: write a small file and return its Artifact handle."""

    def _factory(name: str, content: bytes = b"artifact") -> Artifact:
        path = artifact_dir / name
        path.write_bytes(content)
        return Artifact(name=name, path=path, size_bytes=len(content))

    return _factory


@pytest.fixture
def source(artifact_dir: Path) -> LocalArtifactSource:
    """Provide a LocalArtifactSource rooted at the artifact directory."""
    return LocalArtifactSource(artifact_dir)


@pytest.fixture
def options() -> ImagePublishOptions:
    """Provide image publication options for the test registry."""
    return ImagePublishOptions(registry=REGISTRY)


@pytest.fixture
def recorder() -> RecordingProgressSink:
    """Provide an in-memory progress sink."""
    return RecordingProgressSink()


@pytest.fixture
def settings(artifact_dir: Path) -> ReleasecastSettings:
    """Provide settings isolated from the environment and any .env file."""
    return ReleasecastSettings(_env_file=None, artifact_dir=artifact_dir, parallel=2)
