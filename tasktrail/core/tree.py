"""Task tree — folds the event stream into a forest of task nodes.

Only the consumer thread touches a ``TaskTree``; producers only ever send
events.  Nodes are never removed, so the final render can show the whole
run including completed and cached subtrees.

Fold rules
----------
- the first event for an id creates the node under its parent (or at the
  root level when ``parent_id`` is 0 or unknown)
- ``current``/``total`` never decrease; 0 means "no change"
- a ``reset`` event sets ``current`` to 0, takes the event's ``total`` and
  refreshes the rate/ETA anchor
- ``is_done`` takes effect once and counts towards exactly one parent (or
  the tree's root counter)
- ``cached`` and ``has_error`` latch
- display toggles: last non-UNSET value wins
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field

from tasktrail.models.events import TaskEvent, Toggle
from tasktrail.monitor.tail import TailBuffer
from tasktrail.monitor.terminal import LogWindow

logger = logging.getLogger(__name__)


@dataclass(eq=False)
class TaskNode:
    """Accumulated state of one task."""

    id: int
    parent_id: int
    depth: int
    name: str = ""

    start_time: float = 0.0
    end_time: float | None = None
    io_start_time: float | None = None

    current: int = 0
    total: int = 0

    display_rate: Toggle = Toggle.UNSET
    display_eta: Toggle = Toggle.UNSET
    display_bar: Toggle = Toggle.UNSET

    is_done: bool = False
    cached: bool = False
    has_error: bool = False
    err: BaseException | None = None

    # Log bytes not yet fed to the live log window
    pending_logs: bytearray = field(default_factory=bytearray)
    log_window: LogWindow = field(default_factory=LogWindow)
    tail: TailBuffer = field(default_factory=TailBuffer)

    parent: TaskNode | None = field(default=None, repr=False)
    subtasks: list[TaskNode] = field(default_factory=list, repr=False)
    subtasks_done: int = 0

    def elapsed(self, now: float) -> float:
        end = self.end_time if self.is_done and self.end_time is not None else now
        return end - self.start_time

    def _io_active(self, toggle: Toggle) -> bool:
        return (
            toggle is Toggle.ENABLED
            and self.total > 0
            and self.current > 0
            and not self.is_done
        )

    @property
    def shows_rate(self) -> bool:
        return self._io_active(self.display_rate)

    @property
    def shows_eta(self) -> bool:
        return self._io_active(self.display_eta)

    @property
    def shows_bar(self) -> bool:
        return self._io_active(self.display_bar)

    def rate(self, now: float) -> float | None:
        """Bytes per second since the I/O anchor, None when undefined."""
        if self.current <= 0 or self.io_start_time is None:
            return None
        seconds = now - self.io_start_time
        if seconds <= 0:
            return None
        return self.current / seconds

    def eta(self, now: float) -> float | None:
        """Seconds until ``total`` at the current rate."""
        rate = self.rate(now)
        if not rate or self.total <= 0:
            return None
        return max(self.total - self.current, 0) / rate

    def take_pending_logs(self) -> bytes:
        data = bytes(self.pending_logs)
        self.pending_logs.clear()
        return data


class TaskTree:
    """Single-owner id -> ``TaskNode`` mapping for one run.

    Parameters
    ----------
    name:
        Title of the run.
    clock:
        Monotonic time source; used for node creation times when an event
        does not carry one.
    log_window_lines:
        Height of each node's live log window.
    tail_lines:
        Capacity of each node's tail buffer.
    """

    def __init__(
        self,
        name: str = "",
        *,
        clock: Callable[[], float] = time.monotonic,
        log_window_lines: int = 6,
        tail_lines: int = 32,
    ) -> None:
        self.name = name
        self.clock = clock
        self.start_time = clock()
        self.log_window_lines = log_window_lines
        self.tail_lines = tail_lines

        self.tasks: list[TaskNode] = []
        self.tasks_done = 0
        self.has_error = False
        self._nodes: dict[int, TaskNode] = {}

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, task_id: object) -> bool:
        return task_id in self._nodes

    def get(self, task_id: int) -> TaskNode | None:
        return self._nodes.get(task_id)

    def walk(self) -> Iterator[TaskNode]:
        """All nodes, depth-first in first-seen order."""
        stack = list(reversed(self.tasks))
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.subtasks))

    # ------------------------------------------------------------------
    # Fold
    # ------------------------------------------------------------------

    def apply(self, event: TaskEvent) -> None:
        """Fold one event into the tree."""
        node = self._nodes.get(event.id)
        if node is None:
            node = self._create(event)
        self._merge(node, event)

    def _create(self, event: TaskEvent) -> TaskNode:
        parent = self._nodes.get(event.parent_id) if event.parent_id else None
        if event.parent_id and parent is None:
            logger.debug(
                "Task %d references unknown parent %d, placing it at the root level",
                event.id,
                event.parent_id,
            )

        node = TaskNode(
            id=event.id,
            parent_id=event.parent_id,
            depth=parent.depth + 1 if parent is not None else 1,
            name=event.name,
            start_time=event.start_time if event.start_time is not None else self.clock(),
            io_start_time=event.io_start_time,
            log_window=LogWindow(self.log_window_lines),
            tail=TailBuffer(self.tail_lines),
            parent=parent,
        )
        self._nodes[event.id] = node
        if parent is not None:
            parent.subtasks.append(node)
        else:
            self.tasks.append(node)
        return node

    def _merge(self, node: TaskNode, event: TaskEvent) -> None:
        if event.name:
            node.name = event.name
        if event.io_start_time is not None:
            node.io_start_time = event.io_start_time
        if event.end_time is not None:
            node.end_time = event.end_time

        if event.reset:
            node.current = 0
            node.total = event.total
            if event.io_start_time is None:
                node.io_start_time = self.clock()
        else:
            node.current = max(node.current, event.current)
            node.total = max(node.total, event.total)

        if event.display_rate is not Toggle.UNSET:
            node.display_rate = event.display_rate
        if event.display_eta is not Toggle.UNSET:
            node.display_eta = event.display_eta
        if event.display_bar is not Toggle.UNSET:
            node.display_bar = event.display_bar

        if event.is_done and not node.is_done:
            node.is_done = True
            if node.end_time is None:
                node.end_time = self.clock()
            if node.parent is not None:
                node.parent.subtasks_done += 1
            else:
                self.tasks_done += 1

        if event.cached:
            node.cached = True

        if event.has_error:
            node.has_error = True
            node.err = event.err
            self.has_error = True

        if event.logs:
            node.pending_logs.extend(event.logs)
            node.tail.write(event.logs)
