"""Task value objects and progress events.

Every task is an immutable snapshot of its inputs, built before any
scheduling happens.  The scheduler only sees ``task_id`` and ``invoke()``.
"""

from __future__ import annotations

import uuid
from collections.abc import Awaitable, Callable, Sequence
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Union

from pydantic import BaseModel, ConfigDict, Field

from releasecast.models.artifacts import Artifact

ActionResult = Union[str, Awaitable[str]]


class TaskEventType(str, Enum):
    """Observable lifecycle points of a single task."""

    ATTEMPTING = "attempting"
    ACQUIRING = "acquiring"
    ACQUIRED = "acquired"
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"


class TaskEvent(BaseModel):
    """A one-way progress notification tagged with the task identifier."""

    model_config = ConfigDict(frozen=True)

    event_id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    run_id: str = ""
    task_id: str
    kind: str = "task"
    event_type: TaskEventType
    message: str = ""
    details: dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )


class TaskBase(BaseModel):
    """Common shape of every schedulable unit of work.

    Subclasses bind the collaborator callable and the inputs it needs
    and implement :meth:`invoke`, which may return the output string
    directly or an awaitable resolving to it.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    kind: str = "task"
    verb: str = "run"

    @property
    def task_id(self) -> str:
        raise NotImplementedError

    def invoke(self) -> ActionResult:
        raise NotImplementedError


class PublishImageTask(TaskBase):
    """Phase 1: publish one artifact under one tag."""

    kind: str = "image"
    verb: str = "publish image"
    artifact: Artifact
    tag: str
    action: Callable[[Artifact, str], ActionResult]

    @property
    def task_id(self) -> str:
        return self.tag

    def invoke(self) -> ActionResult:
        return self.action(self.artifact, self.tag)


class PublishManifestTask(TaskBase):
    """Phase 2: combine every tag sharing a manifest key into one reference."""

    kind: str = "manifest"
    verb: str = "publish manifest"
    manifest: str
    tags: tuple[str, ...]
    action: Callable[[str, Sequence[str]], ActionResult]

    @property
    def task_id(self) -> str:
        return self.manifest

    def invoke(self) -> ActionResult:
        return self.action(self.manifest, list(self.tags))


class PublishFileTask(TaskBase):
    """Copy one artifact to one destination path or URL."""

    kind: str = "file"
    verb: str = "publish file"
    artifact: Artifact
    destination: str
    action: Callable[[Artifact, str], ActionResult]

    @property
    def task_id(self) -> str:
        return self.destination

    def invoke(self) -> ActionResult:
        return self.action(self.artifact, self.destination)


class ValidateTask(TaskBase):
    """Run a validation workload against one artifact."""

    kind: str = "validate"
    verb: str = "validate package"
    artifact: Artifact
    action: Callable[[Artifact], ActionResult]

    @property
    def task_id(self) -> str:
        return self.artifact.name

    def invoke(self) -> ActionResult:
        return self.action(self.artifact)


class SingleArtifactTask(ValidateTask):
    """Run a publication that consumes exactly one artifact (e.g. npm, pro image)."""

    kind: str = "single"
    verb: str = "publish artifact"


class TaskResult(BaseModel):
    """Output of one successfully completed task."""

    model_config = ConfigDict(frozen=True)

    task_id: str
    kind: str
    output: str = ""
    duration_ms: int = 0
