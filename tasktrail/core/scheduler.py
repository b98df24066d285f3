"""Render loop — drains the event queue and paints at a bounded rate.

Events are folded into the renderer as soon as they arrive.  Painting is
decoupled from event arrival: a render happens only when a tick has fired
and at least ``min_render_gap`` has passed since the previous one, so a
burst of events costs one redraw, not thousands.

States
------
RUNNING     : waiting for events or the next tick
DRAINING    : stream closed; folding anything still queued
TERMINATED  : final render (with error detail) written, ``done`` set
"""

from __future__ import annotations

import logging
import queue
import threading
import time
from collections.abc import Callable
from enum import Enum

from tasktrail.core.event_queue import CLOSED, EventQueue
from tasktrail.monitor.renderer import Renderer
from tasktrail.monitor.terminal import TerminalLike

logger = logging.getLogger(__name__)

TICK_INTERVAL = 0.15
MIN_RENDER_GAP = 0.10
FALLBACK_WIDTH = 80


class LoopState(str, Enum):
    RUNNING = "running"
    DRAINING = "draining"
    TERMINATED = "terminated"


class Scheduler:
    """Single consumer of an ``EventQueue``.

    Parameters
    ----------
    renderer:
        Active renderer; receives every event and the render calls.
    terminal:
        Output terminal; queried for width before each render.
    events:
        The queue producers send to.
    tick_interval:
        Seconds between render opportunities.
    min_render_gap:
        Minimum seconds between two renders (the final one excepted).
    fallback_width:
        Width used when the terminal cannot report one.
    """

    def __init__(
        self,
        renderer: Renderer,
        terminal: TerminalLike,
        events: EventQueue,
        *,
        tick_interval: float = TICK_INTERVAL,
        min_render_gap: float = MIN_RENDER_GAP,
        fallback_width: int = FALLBACK_WIDTH,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.renderer = renderer
        self.terminal = terminal
        self.events = events
        self.tick_interval = tick_interval
        self.min_render_gap = min_render_gap
        self.fallback_width = fallback_width
        self._clock = clock

        self.state = LoopState.RUNNING
        self.done = threading.Event()
        self.render_count = 0
        self.events_applied = 0
        self._last_render: float | None = None

    # ------------------------------------------------------------------
    # Loop
    # ------------------------------------------------------------------

    def run(self) -> None:
        """Consume events until the stream closes, then render once more."""
        try:
            self._loop()
        except Exception:
            logger.exception("Render loop failed in state %s", self.state.value)
            raise
        finally:
            self.state = LoopState.TERMINATED
            self.done.set()
            logger.debug(
                "Render loop terminated after %d events and %d renders",
                self.events_applied,
                self.render_count,
            )

    def _loop(self) -> None:
        next_tick = self._clock() + self.tick_interval

        while self.state is LoopState.RUNNING:
            try:
                item = self.events.get(timeout=next_tick - self._clock())
            except queue.Empty:
                item = None

            if item is CLOSED:
                self.state = LoopState.DRAINING
                logger.debug("Event stream closed, draining")
            elif item is not None:
                self.renderer.update(item)
                self.events_applied += 1

            now = self._clock()
            if self.state is LoopState.RUNNING and now >= next_tick:
                if self._render_allowed(now):
                    self._render(show_error=False)
                next_tick = now + self.tick_interval

        self._drain()
        self._render(show_error=True)

    def _drain(self) -> None:
        while True:
            try:
                item = self.events.get_nowait()
            except queue.Empty:
                return
            if item is CLOSED:
                continue
            logger.debug("Applying event for task %d received after close", item.id)
            self.renderer.update(item)
            self.events_applied += 1

    def _render_allowed(self, now: float) -> bool:
        return self._last_render is None or now - self._last_render >= self.min_render_gap

    def _render(self, *, show_error: bool) -> None:
        self.renderer.render(self.terminal, self._width(), show_error)
        self._last_render = self._clock()
        self.render_count += 1

    def _width(self) -> int:
        try:
            width = self.terminal.width()
        except (OSError, ValueError) as exc:
            logger.debug("Terminal width unavailable: %s", exc)
            return self.fallback_width
        return width if width > 0 else self.fallback_width
