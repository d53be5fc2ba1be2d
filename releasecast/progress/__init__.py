"""Progress sink protocol for task lifecycle events.

All sinks implement the ``ProgressSink`` protocol: a ``sink_name``
property and an ``emit(event)`` method.  Progress is a one-way
notification channel; it never takes part in control flow.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from releasecast.models.tasks import TaskEvent


@runtime_checkable
class ProgressSink(Protocol):
    """Protocol that every progress sink must implement.

    Attributes
    ----------
    sink_name : str
        A unique human-readable identifier for this sink instance
        (e.g. ``"logging"``, ``"console"``).
    """

    @property
    def sink_name(self) -> str:
        """Return the unique name of this sink."""
        ...

    def emit(self, event: TaskEvent) -> None:
        """Accept one task event."""
        ...


from releasecast.progress.dispatcher import ProgressDispatcher  # noqa: E402
from releasecast.progress.sinks import (  # noqa: E402
    ConsoleProgressSink,
    LoggingProgressSink,
    RecordingProgressSink,
)

__all__ = [
    "ProgressSink",
    "ProgressDispatcher",
    "LoggingProgressSink",
    "RecordingProgressSink",
    "ConsoleProgressSink",
]
