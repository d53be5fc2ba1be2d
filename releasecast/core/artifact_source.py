"""Artifact sources: resolve artifact identities to read-only handles.

Every artifact of a run is fetched before any task is scheduled; one
retrieval failure aborts the run.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from pathlib import Path
from typing import Protocol, runtime_checkable

from releasecast.core.errors import ArtifactRetrievalError
from releasecast.models.artifacts import Artifact

logger = logging.getLogger(__name__)


@runtime_checkable
class ArtifactSource(Protocol):
    """Protocol for artifact retrieval backends.

    Any object with a ``fetch(name) -> Artifact`` method satisfies this
    protocol.  Implementations raise :class:`ArtifactRetrievalError` when
    the artifact is unavailable.
    """

    def fetch(self, name: str) -> Artifact:
        ...


class LocalArtifactSource:
    """Resolves artifact names to files on the local filesystem.

    Relative names are resolved against ``base_dir``; absolute paths and
    ``file://`` URLs are used as given.

    Parameters
    ----------
    base_dir:
        Directory holding produced artifacts.  Defaults to the working
        directory.
    """

    def __init__(self, base_dir: Path | str | None = None) -> None:
        self._base = Path(base_dir) if base_dir else Path(".")

    def fetch(self, name: str) -> Artifact:
        raw = name.removeprefix("file://")
        path = Path(raw)
        if not path.is_absolute():
            path = self._base / path
        if not path.exists():
            raise ArtifactRetrievalError(f"Artifact {name!r} not found at {path}")

        size = path.stat().st_size if path.is_file() else 0
        logger.debug("Fetched artifact %s (%d bytes) from %s", path.name, size, path)
        return Artifact(name=path.name, path=path, size_bytes=size)


def fetch_all(source: ArtifactSource, names: Sequence[str]) -> list[Artifact]:
    """Fetch every artifact in order, wrapping unexpected errors.

    Raises
    ------
    ArtifactRetrievalError
        On the first artifact that cannot be fetched.
    """
    artifacts = []
    for name in names:
        try:
            artifacts.append(source.fetch(name))
        except ArtifactRetrievalError:
            raise
        except Exception as exc:
            raise ArtifactRetrievalError(f"Failed to fetch artifact {name!r}: {exc}") from exc
    return artifacts
