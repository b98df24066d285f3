"""Event queue — many producers, one consumer, strict FIFO delivery.

Producers block while the queue is full.  The end of the stream is marked
by enqueuing the ``CLOSED`` sentinel, so every event sent before ``close()``
is delivered before the consumer learns the stream ended.
"""

from __future__ import annotations

import logging
import queue
import threading
from typing import Final, Union

from tasktrail.models.events import TaskEvent

logger = logging.getLogger(__name__)


class StreamClosedError(RuntimeError):
    """Raised when sending to, or closing, an already closed event queue."""


class _Closed:
    def __repr__(self) -> str:
        return "CLOSED"


CLOSED: Final = _Closed()

QueueItem = Union[TaskEvent, _Closed]


class EventQueue:
    """Bounded FIFO of ``TaskEvent`` values with an explicit close.

    Parameters
    ----------
    maxsize:
        Number of pending events after which ``send`` blocks.  ``0`` means
        unbounded.
    """

    def __init__(self, maxsize: int = 1024) -> None:
        self._queue: queue.Queue[QueueItem] = queue.Queue(maxsize=maxsize)
        self._closed = False
        self._lock = threading.Lock()

    @property
    def closed(self) -> bool:
        return self._closed

    def send(self, event: TaskEvent) -> None:
        """Enqueue an event, blocking until the consumer makes room."""
        if self._closed:
            raise StreamClosedError(f"event stream closed, dropping event for task {event.id}")
        self._queue.put(event)

    def close(self) -> None:
        """Signal the end of the stream.  Must be called exactly once."""
        with self._lock:
            if self._closed:
                raise StreamClosedError("event stream already closed")
            self._closed = True
        logger.debug("Event stream closed")
        self._queue.put(CLOSED)

    def get(self, timeout: float | None = None) -> QueueItem:
        """Return the next event or ``CLOSED``.

        Raises ``queue.Empty`` when nothing arrives within ``timeout``.
        """
        if timeout is not None and timeout <= 0:
            return self._queue.get_nowait()
        return self._queue.get(timeout=timeout)

    def get_nowait(self) -> QueueItem:
        return self._queue.get_nowait()

    def qsize(self) -> int:
        return self._queue.qsize()
