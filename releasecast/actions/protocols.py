"""Action protocols: the producer/consumer callables a run invokes.

Actions may be plain functions or coroutine functions.  They return the
output string of the operation and raise on failure; the orchestrator
passes errors through unchanged, wrapped with the task identifier.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol, runtime_checkable

from releasecast.models.artifacts import Artifact
from releasecast.models.tasks import ActionResult as ActionOutput


@runtime_checkable
class PublishAction(Protocol):
    """Phase 1: publish *artifact* under *tag*."""

    def __call__(self, artifact: Artifact, tag: str) -> ActionOutput:
        ...


@runtime_checkable
class AggregateAction(Protocol):
    """Phase 2: combine *tags* into the single reference *manifest*."""

    def __call__(self, manifest: str, tags: Sequence[str]) -> ActionOutput:
        ...


@runtime_checkable
class FilePublishAction(Protocol):
    """Copy *artifact* to *destination*."""

    def __call__(self, artifact: Artifact, destination: str) -> ActionOutput:
        ...


@runtime_checkable
class ValidateAction(Protocol):
    """Run a validation workload against *artifact*."""

    def __call__(self, artifact: Artifact) -> ActionOutput:
        ...
