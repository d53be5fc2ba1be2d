"""ProgressDispatcher: fans task events out to every registered sink.

A failure in one sink is logged and does not block the others, and never
reaches the task that emitted the event.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from releasecast.models.tasks import TaskEvent

if TYPE_CHECKING:
    from releasecast.progress import ProgressSink

logger = logging.getLogger(__name__)


class ProgressDispatcher:
    """Routes task events to ALL configured sinks.

    Usage
    -----
    >>> dispatcher = ProgressDispatcher()
    >>> dispatcher.register_sink(LoggingProgressSink())
    >>> dispatcher.emit(event)
    """

    def __init__(self, sinks: list[ProgressSink] | None = None) -> None:
        self._sinks: list[ProgressSink] = []
        for sink in sinks or []:
            self.register_sink(sink)

    @property
    def sink_name(self) -> str:
        return "dispatcher"

    def register_sink(self, sink: ProgressSink) -> None:
        """Register a sink.  Duplicate registration is ignored."""
        if sink not in self._sinks:
            self._sinks.append(sink)
            logger.debug("Registered progress sink: %s", sink.sink_name)

    @property
    def sink_names(self) -> list[str]:
        return [s.sink_name for s in self._sinks]

    def emit(self, event: TaskEvent) -> None:
        for sink in self._sinks:
            try:
                sink.emit(event)
            except Exception:
                logger.exception(
                    "Progress sink %s failed on %s event for %s",
                    sink.sink_name,
                    event.event_type.value,
                    event.task_id,
                )
