"""Shared test fixtures for Tasktrail."""

from __future__ import annotations

import queue
import re
from collections.abc import Callable
from typing import Any

import pytest

from tasktrail.core.event_queue import CLOSED, EventQueue
from tasktrail.models.events import TaskEvent

_ANSI = re.compile(r"\x1b\[[0-9;?]*[A-Za-z]")


class FakeClock:
    """Manually advanced stand-in for ``time.monotonic``."""

    def __init__(self, start: float = 100.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class CaptureTerminal:
    """Terminal capability that records everything written to it."""

    def __init__(self, width: int = 80, is_terminal: bool = True) -> None:
        self._width = width
        self._is_terminal = is_terminal
        self.writes: list[str] = []

    @property
    def is_terminal(self) -> bool:
        return self._is_terminal

    def width(self) -> int:
        return self._width

    def write(self, text: str) -> None:
        self.writes.append(text)

    def disable_echo(self) -> None:
        pass

    def reset(self) -> None:
        pass

    @property
    def output(self) -> str:
        return "".join(self.writes)


def strip_ansi(text: str) -> str:
    return _ANSI.sub("", text)


@pytest.fixture
def clock() -> FakeClock:
    """Provide a fake monotonic clock starting at t=100."""
    return FakeClock()


@pytest.fixture
def events() -> EventQueue:
    """Provide an unbounded event queue (producers never block)."""
    return EventQueue(maxsize=0)


@pytest.fixture
def drain() -> Callable[[EventQueue], list[TaskEvent]]:
    """Factory fixture: pop every queued event (stopping at CLOSED)."""

    def _drain(q: EventQueue) -> list[TaskEvent]:
        out: list[TaskEvent] = []
        while True:
            try:
                item = q.get_nowait()
            except queue.Empty:
                return out
            if item is CLOSED:
                return out
            out.append(item)

    return _drain


@pytest.fixture
def make_event() -> Callable[..., TaskEvent]:
    """Factory fixture: build a TaskEvent with sensible defaults."""

    def _factory(task_id: int = 1, **overrides: Any) -> TaskEvent:
        return TaskEvent(id=task_id, **overrides)

    return _factory


@pytest.fixture
def terminal() -> CaptureTerminal:
    """Provide an 80-column capturing terminal."""
    return CaptureTerminal()


@pytest.fixture
def make_terminal() -> Callable[..., CaptureTerminal]:
    """Factory fixture: capturing terminal of a given width."""
    return CaptureTerminal


@pytest.fixture
def plain() -> Callable[[str], str]:
    """Provide a function removing ANSI escape sequences from text."""
    return strip_ansi
