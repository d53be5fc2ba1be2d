"""Unit tests for progress sinks and the dispatcher."""

from __future__ import annotations

import io
import logging

from rich.console import Console

from releasecast.models.tasks import TaskEvent, TaskEventType
from releasecast.progress import (
    ConsoleProgressSink,
    LoggingProgressSink,
    ProgressDispatcher,
    ProgressSink,
    RecordingProgressSink,
)


def _event(event_type: TaskEventType, task_id: str = "repo:1.0-amd64", message: str = "") -> TaskEvent:
    return TaskEvent(task_id=task_id, event_type=event_type, message=message)


class _ExplodingSink:
    @property
    def sink_name(self) -> str:
        return "exploding"

    def emit(self, event: TaskEvent) -> None:
        raise RuntimeError("sink down")


class TestProgressDispatcher:
    """The dispatcher fans out and isolates sink failures."""

    def test_fans_out_to_every_sink(self):
        first, second = RecordingProgressSink(), RecordingProgressSink()
        dispatcher = ProgressDispatcher([first, second])

        dispatcher.emit(_event(TaskEventType.ATTEMPTING))

        assert len(first.events) == 1
        assert len(second.events) == 1

    def test_duplicate_registration_ignored(self):
        sink = RecordingProgressSink()
        dispatcher = ProgressDispatcher([sink])
        dispatcher.register_sink(sink)
        assert dispatcher.sink_names == ["recording"]

    def test_failing_sink_does_not_block_others(self, caplog):
        recorder = RecordingProgressSink()
        dispatcher = ProgressDispatcher([_ExplodingSink(), recorder])

        with caplog.at_level(logging.ERROR, logger="releasecast.progress.dispatcher"):
            dispatcher.emit(_event(TaskEventType.FAILED))

        assert len(recorder.events) == 1
        assert "exploding" in caplog.text

    def test_sinks_satisfy_protocol(self):
        for sink in (
            ProgressDispatcher(),
            LoggingProgressSink(),
            RecordingProgressSink(),
            ConsoleProgressSink(console=Console(file=io.StringIO())),
        ):
            assert isinstance(sink, ProgressSink)


class TestSinks:
    def test_recording_queries(self):
        sink = RecordingProgressSink()
        sink.emit(_event(TaskEventType.ATTEMPTING, "a"))
        sink.emit(_event(TaskEventType.ATTEMPTING, "b"))
        sink.emit(_event(TaskEventType.COMPLETED, "a"))

        assert sink.for_task("a") == [TaskEventType.ATTEMPTING, TaskEventType.COMPLETED]
        assert sink.task_ids(TaskEventType.ATTEMPTING) == ["a", "b"]

    def test_logging_prefixes_task_id(self, caplog):
        with caplog.at_level(logging.INFO, logger="releasecast.progress"):
            LoggingProgressSink().emit(_event(TaskEventType.COMPLETED, message="pushed"))
        assert "[repo:1.0-amd64] pushed" in caplog.text

    def test_logging_levels_follow_event_type(self, caplog):
        with caplog.at_level(logging.DEBUG, logger="releasecast.progress"):
            sink = LoggingProgressSink()
            sink.emit(_event(TaskEventType.ACQUIRING))
            sink.emit(_event(TaskEventType.FAILED, message="boom"))
        assert [r.levelno for r in caplog.records] == [logging.DEBUG, logging.ERROR]

    def test_console_hides_budget_events_unless_verbose(self):
        buffer = io.StringIO()
        sink = ConsoleProgressSink(console=Console(file=buffer, width=200))

        sink.emit(_event(TaskEventType.ACQUIRING))
        sink.emit(_event(TaskEventType.COMPLETED, message="pushed [ok]"))

        output = buffer.getvalue()
        assert "acquiring" not in output
        assert "[repo:1.0-amd64]" in output
        assert "pushed [ok]" in output

    def test_console_verbose_shows_budget_events(self):
        buffer = io.StringIO()
        sink = ConsoleProgressSink(console=Console(file=buffer, width=200), verbose=True)
        sink.emit(_event(TaskEventType.ACQUIRED))
        assert "acquired" in buffer.getvalue()
