"""Progress channel between the background worker and the foreground.

Events flow worker -> foreground through a bounded FIFO queue; cancellation
flows foreground -> worker through a CancelToken. Nothing else is shared
between the two threads.
"""

import queue
import threading

from tidydisk.events import ProgressEvent

DEFAULT_CAPACITY = 1024


class CancelToken:
    """Cooperative cancellation flag.

    The worker only looks at it between categories and between chunks, so
    a cancel request takes effect once the current unit of work finishes.
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


class ProgressChannel:
    """Bounded, ordered, single-producer/single-consumer event stream."""

    def __init__(self, capacity: int = DEFAULT_CAPACITY):
        self._queue: queue.Queue = queue.Queue(maxsize=capacity)

    def emit(self, event: ProgressEvent) -> None:
        """Send an event. Blocks the producer only while the channel is full."""
        self._queue.put(event)

    def drain(self, max_events: int | None = None) -> list[ProgressEvent]:
        """Return all pending events without blocking."""
        events = []
        while max_events is None or len(events) < max_events:
            try:
                events.append(self._queue.get_nowait())
            except queue.Empty:
                break
        return events

    def empty(self) -> bool:
        return self._queue.empty()


class EventLog:
    """Collects emitted events in a list. Used where no foreground is attached."""

    def __init__(self) -> None:
        self.events: list[ProgressEvent] = []

    def emit(self, event: ProgressEvent) -> None:
        self.events.append(event)

    def of_type(self, event_type: type) -> list:
        return [e for e in self.events if isinstance(e, event_type)]
