"""Producer-side task handles.

A handle turns work into ``TaskEvent`` values on the event queue.  Handles
never read shared state, so any number of threads may use the same handle
(or sibling handles) concurrently without extra locking.

Usage
-----
>>> def fetch(task):
...     task.log.write(b"resolving\\n")
...     return task.reader("layer 1", blob, size, lambda rt: rt.read())
>>> root.execute("fetch image", fetch)

A body signals failure by raising.  The exception is recorded on the task
(so it is shown in red and dumped on the final render) and then re-raised
unchanged to the caller of ``execute``/``reader``/``writer``/``copier``.
"""

from __future__ import annotations

import itertools
import logging
import shutil
import threading
import time
from collections.abc import Callable
from typing import Any, BinaryIO, TypeVar

from tasktrail.core.event_queue import EventQueue
from tasktrail.models.events import TaskEvent, Toggle

logger = logging.getLogger(__name__)

T = TypeVar("T")

_COPY_CHUNK = 64 * 1024

_id_counter = itertools.count(1)
_id_lock = threading.Lock()


def next_task_id() -> int:
    """Return a process-wide unique task id, always greater than zero."""
    with _id_lock:
        return next(_id_counter)


class TaskLogger:
    """Writable that forwards every write verbatim as a log event.

    Accepts ``bytes`` or ``str`` (encoded as UTF-8), so it works both as a
    binary sink and as ``print(..., file=task.log)``.  Writes to the root
    handle's log are dropped, like every other root update.
    """

    def __init__(self, task: Task) -> None:
        self._task = task

    def write(self, data: bytes | str) -> int:
        payload = data.encode("utf-8") if isinstance(data, str) else bytes(data)
        if payload:
            self._task._update(logs=payload)
        return len(data)

    def writable(self) -> bool:
        return True

    def flush(self) -> None:
        pass


class Task:
    """Handle for one running task.

    Parameters
    ----------
    task_id:
        Id of the task this handle reports on.  ``0`` is the implicit root,
        which has no row of its own.
    events:
        Queue the handle sends its events to.
    clock:
        Source of the time readings carried by events.
    """

    def __init__(
        self,
        task_id: int,
        events: EventQueue,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._id = task_id
        self._events = events
        self._clock = clock
        self._logger: TaskLogger | None = None

    @property
    def id(self) -> int:
        return self._id

    @property
    def transferred(self) -> int:
        """Bytes moved by this task; always 0 for plain tasks."""
        return 0

    # ------------------------------------------------------------------
    # Updates about this task
    # ------------------------------------------------------------------

    def _update(self, **fields: Any) -> None:
        if self._id == 0:
            logger.debug("Ignoring update for the root handle: %s", sorted(fields))
            return
        self._events.send(TaskEvent(id=self._id, **fields))

    @property
    def log(self) -> TaskLogger:
        """Writable log sink for this task."""
        if self._logger is None:
            self._logger = TaskLogger(self)
        return self._logger

    def rename(self, name: str) -> None:
        """Change the displayed name; takes effect on the next render."""
        if name:
            self._update(name=name)

    def cached(self) -> None:
        """Mark the task as satisfied from cache."""
        self._update(cached=True)

    def display_rate(self, enabled: bool) -> None:
        self._update(display_rate=Toggle.from_bool(enabled))

    def display_eta(self, enabled: bool) -> None:
        self._update(display_eta=Toggle.from_bool(enabled))

    def display_bar(self, enabled: bool) -> None:
        self._update(display_bar=Toggle.from_bool(enabled))

    # ------------------------------------------------------------------
    # Launching subtasks
    # ------------------------------------------------------------------

    def execute(self, name: str, body: Callable[[Task], T]) -> T:
        """Run ``body`` as a new subtask and wait for it to complete."""
        return self._launch(name, 0, lambda task_id: Task(task_id, self._events, clock=self._clock), body)

    def reader(
        self,
        name: str,
        stream: BinaryIO,
        total: int,
        body: Callable[[ReaderTask], T],
    ) -> T:
        """Run ``body`` with a subtask that counts bytes read from ``stream``.

        ``total=0`` means the size is unknown; no bar or ETA is shown.
        """
        return self._launch(
            name,
            total,
            lambda task_id: ReaderTask(task_id, self._events, stream, clock=self._clock),
            body,
        )

    def writer(
        self,
        name: str,
        stream: BinaryIO,
        total: int,
        body: Callable[[WriterTask], T],
    ) -> T:
        """Run ``body`` with a subtask that counts bytes written to ``stream``."""
        return self._launch(
            name,
            total,
            lambda task_id: WriterTask(task_id, self._events, stream, clock=self._clock),
            body,
        )

    def copier(self, name: str, total: int, body: Callable[[CopyTask], T]) -> T:
        """Run ``body`` with a subtask that counts bytes moved by ``copy``."""
        return self._launch(
            name,
            total,
            lambda task_id: CopyTask(task_id, self._events, clock=self._clock),
            body,
        )

    def _launch(
        self,
        name: str,
        total: int,
        make_child: Callable[[int], Any],
        body: Callable[[Any], T],
    ) -> T:
        task_id = next_task_id()
        now = self._clock()
        self._events.send(
            TaskEvent(
                id=task_id,
                parent_id=self._id,
                name=name,
                total=total,
                start_time=now,
                io_start_time=now,
            )
        )

        child = make_child(task_id)
        try:
            result = body(child)
        except BaseException as exc:
            # Interrupts still close the row before unwinding
            self._finish(child, exc)
            raise
        self._finish(child, None)
        return result

    def _finish(self, child: Task, err: BaseException | None) -> None:
        self._events.send(
            TaskEvent(
                id=child.id,
                end_time=self._clock(),
                current=child.transferred,
                is_done=True,
                has_error=err is not None,
                err=err,
            )
        )


class IOTask(Task):
    """Task that tracks a cumulative byte count."""

    def __init__(
        self,
        task_id: int,
        events: EventQueue,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        super().__init__(task_id, events, clock=clock)
        self._transferred = 0

    @property
    def transferred(self) -> int:
        return self._transferred

    def _advance(self, n: int) -> None:
        self._transferred += n
        self._update(current=self._transferred)


class ReaderTask(IOTask):
    """Readable wrapper that reports every read as progress."""

    def __init__(
        self,
        task_id: int,
        events: EventQueue,
        stream: BinaryIO,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        super().__init__(task_id, events, clock=clock)
        self._stream = stream

    def read(self, size: int = -1) -> bytes:
        data = b""
        try:
            data = self._stream.read(size)
            return data
        finally:
            self._advance(len(data or b""))

    def readinto(self, buffer: bytearray | memoryview) -> int:
        n = 0
        try:
            n = self._stream.readinto(buffer) or 0
            return n
        finally:
            self._advance(n)

    def readable(self) -> bool:
        return True


class WriterTask(IOTask):
    """Writable wrapper that reports every write as progress."""

    def __init__(
        self,
        task_id: int,
        events: EventQueue,
        stream: BinaryIO,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        super().__init__(task_id, events, clock=clock)
        self._stream = stream

    def write(self, data: bytes) -> int:
        n = 0
        try:
            written = self._stream.write(data)
            n = len(data) if written is None else written
            return n
        finally:
            self._advance(n)

    def writable(self) -> bool:
        return True

    def flush(self) -> None:
        self._stream.flush()


class _CountingReader:
    def __init__(self, src: BinaryIO, notify: Callable[[int], None]) -> None:
        self._src = src
        self._notify = notify
        self.count = 0

    def read(self, size: int = -1) -> bytes:
        data = self._src.read(size) or b""
        self.count += len(data)
        self._notify(self.count)
        return data


class CopyTask(IOTask):
    """Task that copies streams and can be re-based for a new phase.

    ``reset`` lets one row show several phases (e.g. download, then
    extract) with fresh progress and rate figures for each.
    """

    def copy(self, dest: BinaryIO, src: BinaryIO) -> int:
        """Copy ``src`` to ``dest`` and return the number of bytes copied."""
        counter = _CountingReader(src, self._copied)
        shutil.copyfileobj(counter, dest, _COPY_CHUNK)
        return counter.count

    def _copied(self, count: int) -> None:
        self._transferred = count
        self._update(current=count)

    def reset(self, total: int) -> None:
        """Start a new phase: progress back to 0 with a new total."""
        self._transferred = 0
        self._update(reset=True, total=total, io_start_time=self._clock())


class RootTask(Task):
    """The implicit root handle; closing it ends the event stream.

    Close it exactly once, after every task body has returned.
    """

    def __init__(
        self,
        events: EventQueue,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        super().__init__(0, events, clock=clock)

    def close(self) -> None:
        self._events.close()

    def __enter__(self) -> RootTask:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
