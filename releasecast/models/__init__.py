"""Releasecast data models: all Pydantic v2, all frozen (immutable)."""

from releasecast.models.artifacts import (
    Artifact,
    ArtifactIdentity,
    BaseImage,
    DerivedTag,
    ImagePublishOptions,
)
from releasecast.models.runs import (
    TERMINAL_STATES,
    VALID_TRANSITIONS,
    RunReport,
    RunState,
    RunTransition,
)
from releasecast.models.tasks import (
    PublishFileTask,
    PublishImageTask,
    PublishManifestTask,
    SingleArtifactTask,
    TaskBase,
    TaskEvent,
    TaskEventType,
    TaskResult,
    ValidateTask,
)

__all__ = [
    # artifacts
    "Artifact",
    "ArtifactIdentity",
    "BaseImage",
    "DerivedTag",
    "ImagePublishOptions",
    # runs
    "RunState",
    "RunTransition",
    "RunReport",
    "VALID_TRANSITIONS",
    "TERMINAL_STATES",
    # tasks
    "TaskBase",
    "PublishImageTask",
    "PublishManifestTask",
    "PublishFileTask",
    "ValidateTask",
    "SingleArtifactTask",
    "TaskEvent",
    "TaskEventType",
    "TaskResult",
]
