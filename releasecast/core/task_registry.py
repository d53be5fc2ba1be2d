"""Task graph construction for publication and validation runs.

Phase 1 holds one task per (artifact, tag) pair.  Phase 2 holds one task
per manifest key and is only handed out through :meth:`PublishPlan.manifest_tasks`
once the :class:`PhaseBarrier` has seen every phase-1 task complete.
"""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Callable, Iterable, Sequence

from releasecast.core.errors import BarrierNotReachedError
from releasecast.core.tag_deriver import derive_image_tags
from releasecast.models.artifacts import Artifact, ImagePublishOptions
from releasecast.models.tasks import (
    ActionResult,
    PublishFileTask,
    PublishImageTask,
    PublishManifestTask,
    ValidateTask,
)

logger = logging.getLogger(__name__)


class PhaseBarrier:
    """Completion signal for one full batch of tasks.

    Built from the ids of every task in the batch (repeats allowed).
    The barrier is reached only when each of them has been marked
    completed and none has been marked failed.
    """

    def __init__(self, task_ids: Iterable[str]) -> None:
        self._pending: Counter[str] = Counter(task_ids)
        self._expected = sum(self._pending.values())
        self._failed: list[str] = []

    def mark_completed(self, task_id: str) -> None:
        if self._pending[task_id] <= 0:
            raise BarrierNotReachedError(
                f"Task {task_id!r} completed but is not pending on this barrier"
            )
        self._pending[task_id] -= 1

    def mark_failed(self, task_id: str) -> None:
        self._failed.append(task_id)

    @property
    def remaining(self) -> int:
        return sum(self._pending.values())

    @property
    def expected(self) -> int:
        return self._expected

    @property
    def reached(self) -> bool:
        return not self._failed and self.remaining == 0


class PublishPlan:
    """The two-phase task graph for one image publication run.

    Parameters
    ----------
    image_tasks:
        Phase-1 tasks in derivation order.
    manifests:
        Manifest key -> tags, in the order the tags were derived.
        Not deduplicated: two artifacts deriving the same tag list it twice.
    """

    def __init__(
        self,
        image_tasks: list[PublishImageTask],
        manifests: dict[str, list[str]],
    ) -> None:
        self.image_tasks = image_tasks
        self.manifests = manifests

    def barrier(self) -> PhaseBarrier:
        """Return a fresh barrier expecting every phase-1 task."""
        return PhaseBarrier(task.task_id for task in self.image_tasks)

    def manifest_tasks(
        self,
        barrier: PhaseBarrier,
        action: Callable[[str, Sequence[str]], ActionResult],
    ) -> list[PublishManifestTask]:
        """Build phase-2 tasks, one per manifest key.

        Raises
        ------
        BarrierNotReachedError
            If any phase-1 task is still outstanding or has failed.
        """
        if barrier.expected != len(self.image_tasks):
            raise BarrierNotReachedError("Barrier does not belong to this plan")
        if not barrier.reached:
            raise BarrierNotReachedError(
                f"Phase 1 incomplete: {barrier.remaining} of {barrier.expected} "
                f"task(s) outstanding"
            )
        return [
            PublishManifestTask(manifest=manifest, tags=tuple(tags), action=action)
            for manifest, tags in self.manifests.items()
        ]


def build_publish_plan(
    artifacts: Sequence[Artifact],
    options: ImagePublishOptions,
    action: Callable[[Artifact, str], ActionResult],
) -> PublishPlan:
    """Expand artifacts into phase-1 image tasks and the manifest mapping."""
    image_tasks: list[PublishImageTask] = []
    manifests: dict[str, list[str]] = {}
    seen: set[str] = set()

    for artifact in artifacts:
        for derived in derive_image_tags(artifact.name, options):
            if derived.tag in seen:
                logger.warning(
                    "[%s] Tag derived more than once; only the last output is reported",
                    derived.tag,
                )
            seen.add(derived.tag)
            manifests.setdefault(derived.manifest, []).append(derived.tag)
            image_tasks.append(
                PublishImageTask(artifact=artifact, tag=derived.tag, action=action)
            )

    logger.info(
        "Planned %d image task(s) across %d manifest(s) for %d artifact(s)",
        len(image_tasks),
        len(manifests),
        len(artifacts),
    )
    return PublishPlan(image_tasks, manifests)


def file_destination(destination: str, artifact: Artifact) -> str:
    """Join a destination prefix and an artifact name with a single ``/``."""
    return "/".join([destination.rstrip("/"), artifact.name])


def build_file_tasks(
    artifacts: Sequence[Artifact],
    destination: str,
    action: Callable[[Artifact, str], ActionResult],
) -> list[PublishFileTask]:
    """One task per artifact, copying it under *destination*."""
    tasks = []
    for artifact in artifacts:
        dst = file_destination(destination, artifact)
        logger.info("Writing package %s to %s", artifact.name, dst)
        tasks.append(PublishFileTask(artifact=artifact, destination=dst, action=action))
    return tasks


def build_validate_tasks(
    artifacts: Sequence[Artifact],
    action: Callable[[Artifact], ActionResult],
) -> list[ValidateTask]:
    """One validation task per artifact."""
    return [ValidateTask(artifact=artifact, action=action) for artifact in artifacts]
