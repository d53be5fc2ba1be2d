"""Built-in progress sinks."""

from __future__ import annotations

import logging

from rich.console import Console
from rich.markup import escape

from releasecast.models.tasks import TaskEvent, TaskEventType

logger = logging.getLogger(__name__)

_LEVELS: dict[TaskEventType, int] = {
    TaskEventType.ATTEMPTING: logging.INFO,
    TaskEventType.ACQUIRING: logging.DEBUG,
    TaskEventType.ACQUIRED: logging.DEBUG,
    TaskEventType.COMPLETED: logging.INFO,
    TaskEventType.FAILED: logging.ERROR,
    TaskEventType.SKIPPED: logging.WARNING,
}

_STYLES: dict[TaskEventType, str] = {
    TaskEventType.ATTEMPTING: "cyan",
    TaskEventType.ACQUIRING: "dim",
    TaskEventType.ACQUIRED: "dim",
    TaskEventType.COMPLETED: "green",
    TaskEventType.FAILED: "bold red",
    TaskEventType.SKIPPED: "yellow",
}


class LoggingProgressSink:
    """Writes every event to a stdlib logger as ``[task_id] message``."""

    def __init__(self, logger_name: str = "releasecast.progress") -> None:
        self._logger = logging.getLogger(logger_name)

    @property
    def sink_name(self) -> str:
        return "logging"

    def emit(self, event: TaskEvent) -> None:
        self._logger.log(
            _LEVELS.get(event.event_type, logging.INFO),
            "[%s] %s",
            event.task_id,
            event.message or event.event_type.value,
        )


class RecordingProgressSink:
    """Keeps every event in memory, in emission order."""

    def __init__(self) -> None:
        self.events: list[TaskEvent] = []

    @property
    def sink_name(self) -> str:
        return "recording"

    def emit(self, event: TaskEvent) -> None:
        self.events.append(event)

    def for_task(self, task_id: str) -> list[TaskEventType]:
        """Return the event types seen for one task, in order."""
        return [e.event_type for e in self.events if e.task_id == task_id]

    def task_ids(self, event_type: TaskEventType) -> list[str]:
        """Return the ids of tasks that emitted *event_type*, in order."""
        return [e.task_id for e in self.events if e.event_type == event_type]


class ConsoleProgressSink:
    """Prints task events to a Rich console.

    Parameters
    ----------
    console:
        Console to print to.  Defaults to stderr so that stdout only
        carries action outputs.
    verbose:
        Also print the acquiring/acquired events.
    """

    def __init__(self, console: Console | None = None, verbose: bool = False) -> None:
        self._console = console or Console(stderr=True)
        self._verbose = verbose

    @property
    def sink_name(self) -> str:
        return "console"

    def emit(self, event: TaskEvent) -> None:
        if not self._verbose and event.event_type in (
            TaskEventType.ACQUIRING,
            TaskEventType.ACQUIRED,
        ):
            return
        style = _STYLES.get(event.event_type, "")
        self._console.print(
            f"[{style}]{event.event_type.value:>10}[/{style}] "
            f"[bold]{escape('[' + event.task_id + ']')}[/bold] {escape(event.message)}",
            highlight=False,
        )
