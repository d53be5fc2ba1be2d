"""Run orchestrator: the central coordinator for publication and validation.

The Orchestrator wires together the artifact source, TaskRegistry,
BoundedScheduler, FailureAggregator and RunStateMachine into a single
run engine:

    derive tags -> phase-1 tasks -> scheduler -> barrier
                -> phase-2 tasks -> scheduler -> report

Every run gets its own ConcurrencyBudget, shared by both phases.  The
first failure of a batch ends the run; nothing already published is
rolled back, so tags from a failed run may remain live.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import Callable, Sequence
from datetime import datetime, timezone
from typing import TypeVar

from releasecast.actions.protocols import (
    AggregateAction,
    FilePublishAction,
    PublishAction,
    ValidateAction,
)
from releasecast.config import ReleasecastSettings
from releasecast.core.aggregator import FailureAggregator
from releasecast.core.artifact_source import ArtifactSource, LocalArtifactSource, fetch_all
from releasecast.core.errors import InputError
from releasecast.core.run_machine import RunStateMachine
from releasecast.core.scheduler import BatchOutcome, BoundedScheduler, ConcurrencyBudget
from releasecast.core.task_registry import (
    PublishPlan,
    build_file_tasks,
    build_publish_plan,
    build_validate_tasks,
)
from releasecast.models.artifacts import ImagePublishOptions
from releasecast.models.runs import RunReport, RunState
from releasecast.models.tasks import SingleArtifactTask, TaskBase
from releasecast.progress import LoggingProgressSink, ProgressSink

logger = logging.getLogger(__name__)

T = TypeVar("T")


class _RunContext:
    """Per-run state: id, state machine, budget, scheduler and deadline."""

    def __init__(
        self,
        run_id: str,
        parallel: int,
        sink: ProgressSink | None,
        deadline: float | None,
    ) -> None:
        self.run_id = run_id
        self.machine = RunStateMachine(run_id)
        self.budget = ConcurrencyBudget(parallel)
        self.scheduler = BoundedScheduler(self.budget, sink, run_id=run_id)
        self.deadline = deadline
        self.outputs: dict[str, str] = {}
        self.published: list[str] = []


class Orchestrator:
    """Bounded-concurrency publication and validation orchestrator.

    Parameters
    ----------
    settings:
        Runtime settings.  Uses env-driven defaults if not provided.
    parallel:
        Concurrency budget for every run.  Overrides ``settings.parallel``.
    source:
        Artifact source.  Defaults to a :class:`LocalArtifactSource`
        rooted at ``settings.artifact_dir``.
    sink:
        Progress sink for task events.  Defaults to logging.
    """

    def __init__(
        self,
        settings: ReleasecastSettings | None = None,
        *,
        parallel: int | None = None,
        source: ArtifactSource | None = None,
        sink: ProgressSink | None = None,
    ) -> None:
        self.settings = settings or ReleasecastSettings()
        self.parallel = parallel if parallel is not None else self.settings.parallel
        if self.parallel < 1:
            raise ValueError(f"parallel must be >= 1, got {self.parallel}")
        self.source = source or LocalArtifactSource(self.settings.artifact_dir)
        self.sink = sink or LoggingProgressSink()
        self.last_report: RunReport | None = None

    # ------------------------------------------------------------------
    # Run flows
    # ------------------------------------------------------------------

    async def publish_images(
        self,
        names: Sequence[str],
        options: ImagePublishOptions,
        publish: PublishAction,
        aggregate: AggregateAction,
        *,
        timeout: float | None = None,
    ) -> RunReport:
        """Publish every image tag, then every multi-arch manifest.

        Phase 2 starts only after every phase-1 task succeeded, and
        runs under the same concurrency budget.

        Raises
        ------
        InputError
            On malformed artifact names or unavailable artifacts.
        TaskError, AcquisitionError
            The first failure of either phase.
        """
        run = self._begin(timeout)

        def _plan() -> PublishPlan:
            artifacts = fetch_all(self.source, names)
            return build_publish_plan(artifacts, options, publish)

        plan = await self._derive(run, _plan)

        outcome = await self._run_batch(
            run, plan.image_tasks, RunState.RUNNING_PHASE1, RunState.PHASE1_FAILED
        )

        run.machine.transition(RunState.AGGREGATING_KEYS)
        barrier = plan.barrier()
        for result in outcome.results:
            barrier.mark_completed(result.task_id)
        manifest_tasks = plan.manifest_tasks(barrier, aggregate)
        logger.info(
            "Run %s: %d image(s) published, %d manifest(s) to publish",
            run.run_id,
            len(outcome.results),
            len(manifest_tasks),
        )

        await self._run_batch(
            run, manifest_tasks, RunState.RUNNING_PHASE2, RunState.PHASE2_FAILED
        )
        return self._finish(run)

    async def fan_out(
        self,
        tasks: Sequence[TaskBase],
        *,
        timeout: float | None = None,
    ) -> RunReport:
        """Run one batch of prebuilt tasks; success is terminal."""
        run = self._begin(timeout)
        batch = await self._derive(run, lambda: list(tasks))
        await self._run_batch(run, batch, RunState.RUNNING_PHASE1, RunState.PHASE1_FAILED)
        return self._finish(run)

    async def publish_files(
        self,
        names: Sequence[str],
        destination: str,
        action: FilePublishAction,
        *,
        timeout: float | None = None,
    ) -> RunReport:
        """Copy every artifact to ``{destination}/{artifact name}``."""
        run = self._begin(timeout)

        def _files() -> list[TaskBase]:
            if not destination:
                raise InputError("A destination is required to publish files")
            return build_file_tasks(fetch_all(self.source, names), destination, action)

        tasks = await self._derive(run, _files)
        await self._run_batch(run, tasks, RunState.RUNNING_PHASE1, RunState.PHASE1_FAILED)
        return self._finish(run)

    async def validate_packages(
        self,
        names: Sequence[str],
        action: ValidateAction,
        *,
        timeout: float | None = None,
    ) -> RunReport:
        """Run the validation workload against every artifact."""
        run = self._begin(timeout)
        tasks = await self._derive(
            run, lambda: build_validate_tasks(fetch_all(self.source, names), action)
        )
        await self._run_batch(run, tasks, RunState.RUNNING_PHASE1, RunState.PHASE1_FAILED)
        return self._finish(run)

    async def publish_single(
        self,
        names: Sequence[str],
        action: ValidateAction,
        *,
        timeout: float | None = None,
    ) -> RunReport:
        """Run a publication that accepts exactly one artifact.

        Raises
        ------
        InputError
            If anything other than exactly one artifact is given.
        """
        run = self._begin(timeout)

        def _single() -> list[TaskBase]:
            if len(names) != 1:
                raise InputError(
                    f"Exactly one package is allowed: packages={list(names)}"
                )
            artifacts = fetch_all(self.source, names)
            return [SingleArtifactTask(artifact=artifacts[0], action=action)]

        tasks = await self._derive(run, _single)
        await self._run_batch(run, tasks, RunState.RUNNING_PHASE1, RunState.PHASE1_FAILED)
        return self._finish(run)

    # ------------------------------------------------------------------
    # Run lifecycle
    # ------------------------------------------------------------------

    def _begin(self, timeout: float | None) -> _RunContext:
        timeout = timeout if timeout is not None else self.settings.timeout_seconds
        deadline = None
        if timeout is not None:
            deadline = asyncio.get_running_loop().time() + timeout

        ts = datetime.now(timezone.utc).strftime("%Y%m%d-%H%M%S")
        run = _RunContext(
            run_id=f"rc-{ts}-{uuid.uuid4().hex[:6]}",
            parallel=self.parallel,
            sink=self.sink,
            deadline=deadline,
        )
        logger.info("Run %s started (parallel=%d)", run.run_id, self.parallel)
        run.machine.transition(RunState.DERIVING_TAGS)
        return run

    async def _derive(self, run: _RunContext, build: Callable[[], T]) -> T:
        # Fetching touches the filesystem; keep it off the event loop.
        try:
            return await asyncio.to_thread(build)
        except Exception as exc:
            run.machine.transition(RunState.INPUT_FAILED, reason=str(exc))
            self._fail(run, exc)
            raise

    async def _run_batch(
        self,
        run: _RunContext,
        tasks: Sequence[TaskBase],
        running: RunState,
        failed: RunState,
    ) -> BatchOutcome:
        run.machine.transition(running, reason=f"{len(tasks)} task(s)")
        outcome = await run.scheduler.run(
            tasks, FailureAggregator(), deadline=run.deadline
        )
        if outcome.error is not None:
            run.machine.transition(failed, reason=str(outcome.error))
            run.published.extend(outcome.completed)
            if run.published:
                logger.warning(
                    "Run %s failed after publishing %d item(s); they are not rolled "
                    "back: %s",
                    run.run_id,
                    len(run.published),
                    ", ".join(run.published),
                )
            self._fail(run, outcome.error)
            raise outcome.error

        run.published.extend(outcome.completed)
        run.outputs.update((r.task_id, r.output) for r in outcome.results)
        return outcome

    def _finish(self, run: _RunContext) -> RunReport:
        run.machine.transition(RunState.SUCCEEDED)
        report = RunReport(
            run_id=run.run_id,
            state=run.machine.state,
            outputs=run.outputs,
            published=run.published,
            history=run.machine.history,
        )
        self.last_report = report
        logger.info(
            "Run %s succeeded: %d task output(s)", run.run_id, len(report.outputs)
        )
        return report

    def _fail(self, run: _RunContext, error: Exception) -> None:
        self.last_report = RunReport(
            run_id=run.run_id,
            state=run.machine.state,
            published=run.published,
            history=run.machine.history,
            error=str(error),
            failed_task=getattr(error, "task_id", None),
        )
        logger.error("Run %s ended in %s: %s", run.run_id, run.machine.state.value, error)
