"""Interactive console renderer.

Paints the task tree in place: every render moves the cursor back over the
previous frame and overwrites it, so progress never scrolls the terminal.

Color scheme
------------
- blue       : run title, completed tasks
- bold blue  : completed from cache
- bold red   : failed tasks (and the title on the final render if any failed)
- dim        : live log lines and post-mortem log dumps
- red        : error text on the final render
"""

from __future__ import annotations

import time
from collections.abc import Callable
from typing import Protocol, runtime_checkable

from rich.cells import cell_len

from tasktrail.core.tree import TaskNode, TaskTree
from tasktrail.models.events import TaskEvent
from tasktrail.monitor.layout import (
    align,
    arrow,
    bar,
    format_bytes,
    format_duration,
    format_seconds,
    redraw,
    styled,
)
from tasktrail.monitor.terminal import LogWindow


class TextSink(Protocol):
    def write(self, text: str, /) -> object: ...


@runtime_checkable
class Renderer(Protocol):
    """Consumer of the event stream that can paint its current view."""

    def update(self, event: TaskEvent) -> None:
        """Fold one event into the renderer's view."""
        ...

    def render(self, out: TextSink, width: int, show_error: bool) -> None:
        """Paint the current view; ``show_error`` is set on the final render."""
        ...


# ---------------------------------------------------------------------------
# Styles
# ---------------------------------------------------------------------------

_TITLE_STYLE = "blue"
_DONE_STYLE = "blue"
_CACHED_STYLE = "bold blue"
_FAILED_STYLE = "bold red"
_LOG_STYLE = "dim"
_ERROR_TEXT_STYLE = "red"


class ConsoleRenderer:
    """Renders a ``TaskTree`` as an in-place redrawn block of lines.

    Parameters
    ----------
    name:
        Title shown on the first line.
    clock:
        Monotonic time source for elapsed/rate/ETA figures.
    log_window_lines:
        Live log rows shown under each running task.
    tail_lines:
        Log lines kept per task for the final dump of failed tasks.
    """

    def __init__(
        self,
        name: str,
        *,
        clock: Callable[[], float] = time.monotonic,
        log_window_lines: int = 6,
        tail_lines: int = 32,
    ) -> None:
        self.tree = TaskTree(
            name,
            clock=clock,
            log_window_lines=log_window_lines,
            tail_lines=tail_lines,
        )
        self._clock = clock
        self._log_window_lines = log_window_lines
        self._lines = 0

    @property
    def lines_painted(self) -> int:
        """Height of the block painted by the last render."""
        return self._lines

    def update(self, event: TaskEvent) -> None:
        self.tree.apply(event)

    def render(self, out: TextSink, width: int, show_error: bool) -> None:
        frame = self.frame(width, show_error)
        out.write(redraw(self._lines, frame))
        self._lines = len(frame)

        if show_error:
            dumps = self.log_dumps()
            if dumps:
                out.write("".join(f"{line}\n" for line in dumps))

    # ------------------------------------------------------------------
    # Frame building
    # ------------------------------------------------------------------

    def frame(self, width: int, show_error: bool) -> list[str]:
        """Lines of the redraw region for the current tree state."""
        now = self._clock()
        tree = self.tree

        right = f"({tree.tasks_done}/{len(tree.tasks)}) {format_seconds(now - tree.start_time)}"
        title = align(f"+ {tree.name}", right, width)
        title_style = _FAILED_STYLE if show_error and tree.has_error else _TITLE_STYLE

        lines = [styled(title, title_style)]
        for node in tree.tasks:
            self._paint_task(node, width, now, show_error, lines)
        return lines

    def _paint_task(
        self,
        node: TaskNode,
        width: int,
        now: float,
        show_error: bool,
        lines: list[str],
    ) -> None:
        lines.append(styled(self.task_row(node, width, now), _row_style(node)))

        if not node.is_done:
            window = node.log_window
            window.resize(self._log_window_lines, max(width, 1))
            window.feed(node.take_pending_logs())
            lines.extend(styled(row, _LOG_STYLE) for row in window.visible_lines())

        if show_error and node.has_error:
            window = LogWindow(self._log_window_lines, max(width, 1))
            window.feed(f"{node.err}\n".encode("utf-8", errors="replace"))
            lines.extend(styled(row, _ERROR_TEXT_STYLE) for row in window.visible_lines())

        for child in node.subtasks:
            self._paint_task(child, width, now, show_error, lines)

    def task_row(self, node: TaskNode, width: int, now: float) -> str:
        """Unstyled title line of one task."""
        left = arrow(node.depth)
        if node.cached:
            left += " CACHED"
        left += f" {node.name}"

        if node.current > 0:
            left += f" {format_bytes(node.current)}"
            if node.total > 0 and not node.is_done:
                left += f" / {format_bytes(node.total)}"

            rate = node.rate(now)
            if node.shows_rate and rate is not None:
                left += f" ({format_bytes(rate)}/s)"

            eta = node.eta(now)
            if node.shows_eta and eta is not None:
                left += f" ETA {format_duration(eta)}"

        right = format_seconds(node.elapsed(now))
        if node.subtasks:
            right = f"({node.subtasks_done}/{len(node.subtasks)}) {right}"

        if node.shows_bar:
            room = width - cell_len(left) - cell_len(right) - 2
            progress_bar = bar(room, node.current / node.total)
            if progress_bar:
                left += f" {progress_bar}"

        return align(left, right, width)

    def log_dumps(self) -> list[str]:
        """Bordered tail excerpts of every failed task with captured logs."""
        lines: list[str] = []
        for node in self.tree.walk():
            if not node.has_error or not len(node.tail):
                continue
            header = f"=== LOG DUMP {node.name} ==="
            lines.append(styled(header, _LOG_STYLE))
            lines.extend(
                styled(line.decode("utf-8", errors="replace"), _LOG_STYLE)
                for line in node.tail.lines()
            )
            lines.append(styled("=" * cell_len(header), _LOG_STYLE))
        return lines


def _row_style(node: TaskNode) -> str:
    if node.has_error:
        return _FAILED_STYLE
    if node.is_done:
        return _CACHED_STYLE if node.cached else _DONE_STYLE
    return ""
