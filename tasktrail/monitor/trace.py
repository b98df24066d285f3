"""Plain trace renderer — append-only, timestamped lines.

Used when no interactive terminal is attached (CI logs, pipes, files).
Prior output is never rewritten.

Line formats
------------
::

    [  0.0] START "fetch image"
    [  0.4] fetch image: resolving layers
    [  1.2] DONE "fetch image" (20.0MiB / 20.0MiB) in 1.2s
    [  1.3] DONE "push image" in 0.1s with ERR connection reset
"""

from __future__ import annotations

import io
import json
import time
from collections.abc import Callable
from dataclasses import dataclass

from tasktrail.models.events import TaskEvent
from tasktrail.monitor.layout import format_bytes
from tasktrail.monitor.renderer import TextSink


@dataclass
class _KnownTask:
    started: float
    name: str
    current: int = 0
    total: int = 0
    done: bool = False


class TraceRenderer:
    """Writes one line per lifecycle change or log line.

    Lines accumulate in memory as events arrive and are flushed to the
    output on ``render``.
    """

    def __init__(
        self,
        name: str,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.name = name
        self._clock = clock
        self._start = clock()
        self._known: dict[int, _KnownTask] = {}
        self._buffer = io.StringIO()

    def update(self, event: TaskEvent) -> None:
        now = self._clock()
        header = f"[{now - self._start:5.1f}]"

        task = self._known.get(event.id)
        if task is None:
            task = _KnownTask(
                started=event.start_time if event.start_time is not None else now,
                name=event.name,
            )
            self._known[event.id] = task
            self._emit(f"{header} START {_quote(event.name)}")
        elif event.name:
            task.name = event.name

        if event.reset:
            task.current = 0
            task.total = event.total
        else:
            task.current = max(task.current, event.current)
            task.total = max(task.total, event.total)

        if event.logs:
            text = event.logs.decode("utf-8", errors="replace").removesuffix("\n")
            for line in text.split("\n"):
                self._emit(f"{header} {task.name}: {line}")

        if event.is_done and not task.done:
            task.done = True
            end = event.end_time if event.end_time is not None else now

            copied = ""
            if task.current:
                copied = format_bytes(task.current)
                if task.total:
                    copied = f"{copied} / {format_bytes(task.total)}"
                copied = f"({copied}) "

            err = f" with ERR {event.error_message}" if event.has_error else ""
            self._emit(
                f"{header} DONE {_quote(task.name)} {copied}in {end - task.started:.1f}s{err}"
            )

    def render(self, out: TextSink, width: int, show_error: bool) -> None:
        pending = self._buffer.getvalue()
        if pending:
            out.write(pending)
            self._buffer = io.StringIO()

    def _emit(self, line: str) -> None:
        self._buffer.write(line + "\n")


def _quote(name: str) -> str:
    return json.dumps(name, ensure_ascii=False)
