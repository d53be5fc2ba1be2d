"""First-error-wins failure aggregation with batch cancellation.

One :class:`FailureAggregator` wraps one batch.  The first task to fail
fills the error slot and sets the ``cancelled`` event; tasks still waiting
for a concurrency unit observe the event and never start.  Tasks already
running are left alone and their results discarded.
"""

from __future__ import annotations

import asyncio
import logging

from releasecast.core.errors import AcquisitionError, ReleasecastError, TaskError

logger = logging.getLogger(__name__)


class FailureAggregator:
    """Holds the single error slot and the cancellation signal of a batch."""

    def __init__(self) -> None:
        self._error: ReleasecastError | None = None
        self._cancelled = asyncio.Event()
        self._dropped = 0

    @property
    def cancelled(self) -> asyncio.Event:
        return self._cancelled

    @property
    def error(self) -> ReleasecastError | None:
        return self._error

    @property
    def failed(self) -> bool:
        return self._error is not None

    @property
    def dropped(self) -> int:
        """Number of failures that lost the race for the error slot."""
        return self._dropped

    def record_failure(self, task_id: str, exc: BaseException) -> bool:
        """Record a task failure; return ``True`` if it became the batch error.

        Acquisition errors keep their type and get the task id attached.
        Anything else is wrapped in :class:`TaskError`.
        """
        if isinstance(exc, AcquisitionError):
            if exc.task_id is None:
                exc.task_id = task_id
            error: ReleasecastError = exc
        elif isinstance(exc, TaskError):
            error = exc
        else:
            error = TaskError(task_id, exc)

        # No await between the check and the write: first writer wins.
        if self._error is not None:
            self._dropped += 1
            logger.debug("[%s] Failure dropped, batch already failed: %s", task_id, exc)
            return False

        self._error = error
        self._cancelled.set()
        logger.warning("[%s] Batch failed, cancelling pending tasks: %s", task_id, exc)
        return True

    def cancel(self) -> None:
        """Signal cancellation without recording an error."""
        self._cancelled.set()

    def raise_for_failure(self) -> None:
        """Raise the captured batch error, if any."""
        if self._error is not None:
            raise self._error
