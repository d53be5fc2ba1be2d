"""Bounded-concurrency task execution.

A :class:`ConcurrencyBudget` is an owned resource scoped to one orchestrator
run and shared by every batch of that run.  :class:`BoundedScheduler` runs a
batch of tasks on the event loop; each task holds one budget unit for the
duration of its action and gives it back in a ``finally`` block.

Synchronous actions are moved to a worker thread only after their unit is
acquired, so waiting tasks never occupy a thread.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import time
from collections.abc import Sequence
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field

from releasecast.core.aggregator import FailureAggregator
from releasecast.core.errors import AcquisitionError, ReleasecastError
from releasecast.models.tasks import TaskBase, TaskEvent, TaskEventType, TaskResult

if TYPE_CHECKING:
    from releasecast.progress import ProgressSink

logger = logging.getLogger(__name__)


class ConcurrencyBudget:
    """Counting semaphore with paired, leak-checked acquire/release.

    Parameters
    ----------
    limit:
        Maximum number of simultaneously running tasks.  Must be >= 1.
    """

    def __init__(self, limit: int) -> None:
        if limit < 1:
            raise ValueError(f"Concurrency budget must be >= 1, got {limit}")
        self.limit = limit
        self._semaphore = asyncio.Semaphore(limit)
        self.acquired = 0
        self.released = 0
        self.peak = 0

    @property
    def in_flight(self) -> int:
        return self.acquired - self.released

    @property
    def available(self) -> int:
        return self.limit - self.in_flight

    async def acquire(
        self,
        cancelled: asyncio.Event | None = None,
        deadline: float | None = None,
    ) -> None:
        """Wait for one unit.

        Fails immediately when *cancelled* is already set or *deadline*
        (an event loop ``time()`` value) has passed, and while waiting as
        soon as either happens.

        Raises
        ------
        AcquisitionError
            If the unit could not be obtained.
        """
        loop = asyncio.get_running_loop()
        if cancelled is not None and cancelled.is_set():
            raise AcquisitionError("failed to acquire concurrency unit: run cancelled")
        if deadline is not None and loop.time() >= deadline:
            raise AcquisitionError("failed to acquire concurrency unit: deadline exceeded")

        waiters: set[asyncio.Future] = set()
        acquiring = asyncio.ensure_future(self._semaphore.acquire())
        waiters.add(acquiring)
        watching = None
        if cancelled is not None:
            watching = asyncio.ensure_future(cancelled.wait())
            waiters.add(watching)
        timeout = None if deadline is None else max(0.0, deadline - loop.time())

        try:
            await asyncio.wait(waiters, timeout=timeout, return_when=asyncio.FIRST_COMPLETED)
        except BaseException:
            if acquiring.done() and not acquiring.cancelled():
                self._semaphore.release()
            raise
        finally:
            if watching is not None:
                watching.cancel()
            if not acquiring.done():
                acquiring.cancel()

        if acquiring.done() and not acquiring.cancelled():
            if cancelled is not None and cancelled.is_set():
                # Lost the race against a failure: give the unit straight back.
                self._semaphore.release()
                raise AcquisitionError("failed to acquire concurrency unit: run cancelled")
            self.acquired += 1
            self.peak = max(self.peak, self.in_flight)
            return

        if cancelled is not None and cancelled.is_set():
            raise AcquisitionError("failed to acquire concurrency unit: run cancelled")
        raise AcquisitionError("failed to acquire concurrency unit: deadline exceeded")

    def release(self) -> None:
        """Return one unit.

        Raises
        ------
        RuntimeError
            If no unit is currently held.
        """
        if self.in_flight <= 0:
            raise RuntimeError("Concurrency budget released more often than acquired")
        self.released += 1
        self._semaphore.release()


class BatchOutcome(BaseModel):
    """Result of one scheduler batch.

    ``results`` is empty whenever ``error`` is set: outputs of tasks that
    finished after a sibling failed are discarded.  ``completed`` still
    lists every task whose action succeeded, so partial state stays visible.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    results: list[TaskResult] = Field(default_factory=list)
    completed: list[str] = Field(default_factory=list)
    skipped: list[str] = Field(default_factory=list)
    error: ReleasecastError | None = None

    @property
    def succeeded(self) -> bool:
        return self.error is None

    def raise_for_failure(self) -> None:
        if self.error is not None:
            raise self.error


class BoundedScheduler:
    """Runs batches of independent tasks under a shared budget.

    Parameters
    ----------
    budget:
        The run's concurrency budget, shared by every batch.
    sink:
        Optional progress sink receiving every task event.
    run_id:
        Stamped on every emitted event.
    """

    def __init__(
        self,
        budget: ConcurrencyBudget,
        sink: ProgressSink | None = None,
        run_id: str = "",
    ) -> None:
        self.budget = budget
        self._sink = sink
        self._run_id = run_id

    # ------------------------------------------------------------------
    # Batch execution
    # ------------------------------------------------------------------

    async def run(
        self,
        tasks: Sequence[TaskBase],
        aggregator: FailureAggregator | None = None,
        *,
        deadline: float | None = None,
    ) -> BatchOutcome:
        """Run every task and return once all have finished or been skipped.

        No ordering is guaranteed among tasks.  At most ``budget.limit``
        actions run at the same time.
        """
        aggregator = aggregator or FailureAggregator()
        results: dict[int, TaskResult] = {}
        completed: list[str] = []
        skipped: list[str] = []

        async def _execute(index: int, task: TaskBase) -> None:
            task_id = task.task_id
            self._emit(task, TaskEventType.ATTEMPTING, f"Attempting to {task.verb}")
            self._emit(task, TaskEventType.ACQUIRING, "Acquiring concurrency unit")
            try:
                await self.budget.acquire(aggregator.cancelled, deadline)
            except AcquisitionError as exc:
                if aggregator.record_failure(task_id, exc):
                    self._emit(task, TaskEventType.FAILED, str(exc))
                else:
                    skipped.append(task_id)
                    self._emit(task, TaskEventType.SKIPPED, "Skipped, batch cancelled")
                return

            try:
                self._emit(task, TaskEventType.ACQUIRED, "Acquired concurrency unit")
                started = time.monotonic()
                output = await self._invoke(task)
            except Exception as exc:
                aggregator.record_failure(task_id, exc)
                self._emit(task, TaskEventType.FAILED, f"error: {exc}")
            except BaseException as exc:
                # Aborted: stop the batch before the unit goes back.
                aggregator.cancel()
                self._emit(task, TaskEventType.FAILED, f"aborted: {exc!r}")
                raise
            else:
                duration_ms = int((time.monotonic() - started) * 1000)
                completed.append(task_id)
                discarded = aggregator.failed
                self._emit(
                    task,
                    TaskEventType.COMPLETED,
                    f"Done, {task.verb}",
                    duration_ms=duration_ms,
                    discarded=discarded,
                )
                if not discarded:
                    results[index] = TaskResult(
                        task_id=task_id,
                        kind=task.kind,
                        output=output,
                        duration_ms=duration_ms,
                    )
            finally:
                self.budget.release()

        runners = [
            asyncio.ensure_future(_execute(index, task))
            for index, task in enumerate(tasks)
        ]
        try:
            if runners:
                await asyncio.gather(*runners)
        finally:
            pending = [runner for runner in runners if not runner.done()]
            if pending:
                aggregator.cancel()
                for runner in pending:
                    runner.cancel()
                await asyncio.gather(*pending, return_exceptions=True)
                logger.warning(
                    "Batch aborted, cancelled %d unfinished task(s)", len(pending)
                )

        if aggregator.failed:
            return BatchOutcome(
                completed=completed, skipped=skipped, error=aggregator.error
            )
        return BatchOutcome(
            results=[results[i] for i in sorted(results)], completed=completed
        )

    @staticmethod
    async def _invoke(task: TaskBase) -> str:
        action = getattr(task, "action", None)
        if inspect.iscoroutinefunction(action):
            result = task.invoke()
        else:
            result = await asyncio.to_thread(task.invoke)
        if inspect.isawaitable(result):
            result = await result
        return "" if result is None else str(result)

    def _emit(
        self,
        task: TaskBase,
        event_type: TaskEventType,
        message: str,
        **details: object,
    ) -> None:
        if self._sink is None:
            return
        event = TaskEvent(
            run_id=self._run_id,
            task_id=task.task_id,
            kind=task.kind,
            event_type=event_type,
            message=message,
            details=dict(details),
        )
        try:
            self._sink.emit(event)
        except Exception:
            logger.exception(
                "[%s] Progress sink %s failed on %s event",
                event.task_id,
                getattr(self._sink, "sink_name", type(self._sink).__name__),
                event_type.value,
            )
