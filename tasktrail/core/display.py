"""Display setup — renderer selection and the consumer thread.

Configuration problems (unknown mode, ``tty`` without a terminal) are
raised synchronously, before anything is rendered.
"""

from __future__ import annotations

import logging
import threading
from enum import Enum
from typing import TextIO

from tasktrail.config import ProgressConfig, config as default_config
from tasktrail.core.event_queue import EventQueue
from tasktrail.core.scheduler import Scheduler
from tasktrail.core.tasks import RootTask
from tasktrail.monitor.renderer import ConsoleRenderer, Renderer
from tasktrail.monitor.terminal import NoopTerminal, Terminal, TerminalLike
from tasktrail.monitor.trace import TraceRenderer

logger = logging.getLogger(__name__)


class ProgressConfigError(ValueError):
    """Raised when the progress display cannot be set up as configured."""


class InvalidModeError(ProgressConfigError):
    """Raised for a display mode other than auto, tty or plain."""


class TerminalRequiredError(ProgressConfigError):
    """Raised in ``tty`` mode when the output is not a terminal."""


class DisplayMode(str, Enum):
    AUTO = "auto"
    TTY = "tty"
    PLAIN = "plain"


class RendererKind(str, Enum):
    CONSOLE = "console"
    TRACE = "trace"


def parse_mode(mode: str | DisplayMode) -> DisplayMode:
    """Return the ``DisplayMode`` for ``mode`` or raise ``InvalidModeError``."""
    try:
        return DisplayMode(mode)
    except ValueError as exc:
        allowed = ", ".join(m.value for m in DisplayMode)
        raise InvalidModeError(f"Unknown display mode {mode!r} (expected one of: {allowed})") from exc


def select_renderer_kind(mode: str | DisplayMode, is_terminal: bool) -> RendererKind:
    """Pick the renderer for a mode and the terminal probe result."""
    mode = parse_mode(mode)
    if mode is DisplayMode.PLAIN:
        return RendererKind.TRACE
    if mode is DisplayMode.TTY and not is_terminal:
        raise TerminalRequiredError("Display mode 'tty' requires the output to be a terminal")
    return RendererKind.CONSOLE if is_terminal else RendererKind.TRACE


def build_renderer(kind: RendererKind, name: str, settings: ProgressConfig) -> Renderer:
    if kind is RendererKind.CONSOLE:
        return ConsoleRenderer(
            name,
            log_window_lines=settings.log_window_lines,
            tail_lines=settings.tail_lines,
        )
    return TraceRenderer(name)


def process_events(
    file: TextIO,
    name: str,
    mode: str | DisplayMode,
    events: EventQueue,
    settings: ProgressConfig | None = None,
) -> threading.Event:
    """Start consuming ``events`` on a background thread.

    Returns an event that is set once the final render has been written,
    i.e. after ``events`` was closed and fully drained.
    """
    settings = settings or default_config
    terminal = Terminal(file)
    kind = select_renderer_kind(mode, terminal.is_terminal)
    logger.debug("Rendering %r with the %s renderer", name, kind.value)

    output: TerminalLike = terminal if kind is RendererKind.CONSOLE else NoopTerminal(file)
    scheduler = Scheduler(
        build_renderer(kind, name, settings),
        output,
        events,
        tick_interval=settings.tick_interval,
        min_render_gap=settings.min_render_gap,
        fallback_width=settings.fallback_width,
    )

    suppress_echo = kind is RendererKind.CONSOLE and settings.suppress_echo

    def _consume() -> None:
        if suppress_echo:
            output.disable_echo()
        try:
            scheduler.run()
        finally:
            if suppress_echo:
                output.reset()

    thread = threading.Thread(target=_consume, name=f"tasktrail-{name}", daemon=True)
    thread.start()
    return scheduler.done


class ProgressDisplay:
    """A running progress display: the root handle plus its completion marker.

    Usage
    -----
    >>> with display_progress(sys.stdout, "build image") as root:
    ...     root.execute("compile", compile_step)

    Leaving the block closes the root and waits for the final render.
    """

    def __init__(self, root: RootTask, done: threading.Event) -> None:
        self.root = root
        self.done = done

    def close(self) -> None:
        """End the event stream.  Call once, after all task bodies returned."""
        self.root.close()

    def wait(self, timeout: float | None = None) -> bool:
        """Block until the final render was written."""
        return self.done.wait(timeout)

    def __enter__(self) -> RootTask:
        return self.root

    def __exit__(self, *exc_info: object) -> None:
        self.close()
        self.wait()


def display_progress(
    file: TextIO,
    name: str,
    mode: str | DisplayMode = "auto",
    settings: ProgressConfig | None = None,
) -> ProgressDisplay:
    """Set up a progress display on ``file`` and return its root handle."""
    settings = settings or default_config
    events = EventQueue(maxsize=settings.queue_size)
    done = process_events(file, name, mode, events, settings)
    return ProgressDisplay(RootTask(events), done)
