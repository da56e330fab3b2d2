"""
Tests for Watch Events and Log Throttling.

Requires Python 3.11+.
"""

from watchdog.events import (
    DirModifiedEvent,
    FileClosedEvent,
    FileCreatedEvent,
    FileDeletedEvent,
    FileModifiedEvent,
    FileMovedEvent,
)

from watcher.events import Op, QueueingEventHandler, RawEvent, translate_event
from watcher.throttle import EventLogThrottle


class TestTranslateEvent:
    """Test cases for translate_event."""

    def test_basic_operations(self):
        assert translate_event(FileCreatedEvent("/p/a.go")) == [RawEvent(Op.CREATE, "/p/a.go")]
        assert translate_event(FileModifiedEvent("/p/a.go")) == [RawEvent(Op.WRITE, "/p/a.go")]
        assert translate_event(FileDeletedEvent("/p/a.go")) == [RawEvent(Op.REMOVE, "/p/a.go")]

    def test_move_is_rename_plus_create(self):
        events = translate_event(FileMovedEvent("/p/a.go~", "/p/a.go"))

        assert events == [RawEvent(Op.RENAME, "/p/a.go~"), RawEvent(Op.CREATE, "/p/a.go")]

    def test_directory_modification_has_no_operation(self):
        assert translate_event(DirModifiedEvent("/p/pkg")) == [RawEvent(None, "/p/pkg")]

    def test_close_has_no_operation(self):
        assert translate_event(FileClosedEvent("/p/a.go")) == [RawEvent(None, "/p/a.go")]


class TestQueueingEventHandler:
    """Test cases for QueueingEventHandler."""

    def test_forwards_events(self):
        received: list[RawEvent] = []
        handler = QueueingEventHandler(received.append, lambda e: None)

        handler.dispatch(FileMovedEvent("/p/old.go", "/p/new.go"))

        assert [e.op for e in received] == [Op.RENAME, Op.CREATE]

    def test_reports_failures(self):
        errors: list[BaseException] = []

        def broken_submit(event: RawEvent) -> None:
            raise RuntimeError("queue closed")

        handler = QueueingEventHandler(broken_submit, errors.append)

        handler.dispatch(FileModifiedEvent("/p/a.go"))

        assert len(errors) == 1
        assert isinstance(errors[0], RuntimeError)


class TestEventLogThrottle:
    """Test cases for EventLogThrottle."""

    def test_counts(self):
        throttle = EventLogThrottle()

        for _ in range(5):
            throttle.log_event("write", "/p/a.go")
        throttle.log_ignore("filter", "/p/a.py")

        assert throttle.count("write:/p/a.go") == 5
        assert throttle.count("ignore:filter:/p/a.py") == 1

    def test_reset_only_clears_large_counters(self):
        throttle = EventLogThrottle()
        for _ in range(101):
            throttle.log_event("write", "/p/noisy.log")
        for _ in range(3):
            throttle.log_event("write", "/p/a.go")

        assert throttle.reset(100) == 1

        assert throttle.count("write:/p/noisy.log") == 0
        assert "write:/p/noisy.log" not in throttle._counts
        assert throttle.count("write:/p/a.go") == 3
