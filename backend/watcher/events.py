"""
Hotload Watch Events.

Raw notifications and the other items carried by a session's queue.
Requires Python 3.11+.
"""

import os
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from watchdog.events import (
    EVENT_TYPE_CREATED,
    EVENT_TYPE_DELETED,
    EVENT_TYPE_MODIFIED,
    EVENT_TYPE_MOVED,
    FileSystemEvent,
    FileSystemEventHandler,
)

from utils.logger import LoggerMixin


class Op(str, Enum):
    """Operations a raw notification can report."""

    CREATE = "create"
    WRITE = "write"
    REMOVE = "remove"
    RENAME = "rename"


class Verdict(str, Enum):
    """Outcome of classifying one raw notification."""

    IGNORED = "ignored"
    CHANGE = "change"
    NOOP = "noop"


@dataclass(frozen=True)
class RawEvent:
    """A raw notification: an operation (None if unknown) on an absolute path."""

    op: Op | None
    path: str


@dataclass(frozen=True)
class WatchFailure:
    """An error surfaced by the notification primitive."""

    error: BaseException


@dataclass(frozen=True)
class DebounceFired:
    """The debounce timer of the given generation expired."""

    generation: int


@dataclass(frozen=True)
class StopRequested:
    """Asks the consumer to finish."""


QueueItem = RawEvent | WatchFailure | DebounceFired | StopRequested


def translate_event(event: FileSystemEvent) -> list[RawEvent]:
    """
    Translate a watchdog event into raw notifications.

    A move is reported as a rename of the source plus a creation of the
    destination. Directory modifications and open/close events carry no
    operation and are no-ops for the classifier.

    Args:
        event: Event delivered by a watchdog observer

    Returns:
        Zero or more raw notifications in delivery order
    """
    src = os.fsdecode(event.src_path)

    if event.event_type == EVENT_TYPE_CREATED:
        return [RawEvent(Op.CREATE, src)]
    if event.event_type == EVENT_TYPE_MODIFIED:
        if event.is_directory:
            return [RawEvent(None, src)]
        return [RawEvent(Op.WRITE, src)]
    if event.event_type == EVENT_TYPE_DELETED:
        return [RawEvent(Op.REMOVE, src)]
    if event.event_type == EVENT_TYPE_MOVED:
        events = [RawEvent(Op.RENAME, src)]
        if event.dest_path:
            events.append(RawEvent(Op.CREATE, os.fsdecode(event.dest_path)))
        return events

    return [RawEvent(None, src)]


class QueueingEventHandler(FileSystemEventHandler, LoggerMixin):
    """
    Forwards watchdog events to a watch session.

    Runs on the observer thread and never touches session state: every
    event is translated and handed to submit, every failure to report_error.
    """

    def __init__(
        self,
        submit: Callable[[RawEvent], None],
        report_error: Callable[[BaseException], None],
    ) -> None:
        """
        Initialize the handler.

        Args:
            submit: Enqueues a raw notification for the consumer
            report_error: Enqueues an error for the consumer
        """
        super().__init__()
        self._submit = submit
        self._report_error = report_error

    def on_any_event(self, event: FileSystemEvent) -> None:
        """Translate and forward any event."""
        try:
            for raw in translate_event(event):
                self._submit(raw)
        except Exception as e:
            self._report_error(e)
