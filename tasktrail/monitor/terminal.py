"""Terminal capabilities consumed by the renderers and the scheduler.

- ``Terminal``      : a real output stream; tty check on its descriptor, size via Rich
- ``NoopTerminal``  : stand-in used when no terminal is attached
- ``LogWindow``     : VT100 emulation (pyte) of a task's recent log output
"""

from __future__ import annotations

import io
import logging
import os
from typing import Any, Protocol, TextIO, runtime_checkable

import pyte
from rich.console import Console

logger = logging.getLogger(__name__)


@runtime_checkable
class TerminalLike(Protocol):
    """What the scheduler needs from an output terminal."""

    @property
    def is_terminal(self) -> bool: ...

    def width(self) -> int: ...

    def write(self, text: str) -> None: ...

    def disable_echo(self) -> None: ...

    def reset(self) -> None: ...


class Terminal:
    """Output stream plus terminal probing.

    Parameters
    ----------
    file:
        Text stream rendered frames are written to.
    console:
        Rich Console used for size queries.  One bound
        to ``file`` is created if not provided.
    """

    def __init__(self, file: TextIO, console: Console | None = None) -> None:
        self._file = file
        self._console = console or Console(file=file)
        self._saved_attrs: list[Any] | None = None

    @property
    def file(self) -> TextIO:
        return self._file

    @property
    def is_terminal(self) -> bool:
        """Whether ``file`` is attached to a tty.

        Checked on the file descriptor itself, so environment overrides such
        as ``FORCE_COLOR`` never turn a pipe into a redraw target.
        """
        try:
            return os.isatty(self._file.fileno())
        except (AttributeError, io.UnsupportedOperation, OSError, ValueError):
            return False

    def width(self) -> int:
        return self._console.size.width

    def write(self, text: str) -> None:
        if text:
            self._file.write(text)
            self._file.flush()

    def disable_echo(self) -> None:
        """Stop the tty from echoing keystrokes into the redraw region."""
        if not self.is_terminal or self._saved_attrs is not None:
            return
        try:
            import termios
        except ImportError:
            return
        try:
            fd = self._file.fileno()
            saved = termios.tcgetattr(fd)
            attrs = termios.tcgetattr(fd)
            attrs[3] &= ~termios.ECHO
            termios.tcsetattr(fd, termios.TCSADRAIN, attrs)
        except (termios.error, OSError, ValueError) as exc:
            logger.debug("Cannot disable terminal echo: %s", exc)
            return
        self._saved_attrs = saved

    def reset(self) -> None:
        """Restore the terminal attributes saved by ``disable_echo``."""
        if self._saved_attrs is None:
            return
        import termios

        try:
            termios.tcsetattr(self._file.fileno(), termios.TCSADRAIN, self._saved_attrs)
        except termios.error as exc:
            logger.warning("Cannot restore terminal attributes: %s", exc)
        finally:
            self._saved_attrs = None


class NoopTerminal:
    """Terminal stand-in: every operation succeeds and the size is zero.

    Writes still go to ``file`` when one is given so the plain trace output
    reaches its destination.
    """

    def __init__(self, file: TextIO | None = None) -> None:
        self._file = file

    @property
    def is_terminal(self) -> bool:
        return False

    def width(self) -> int:
        return 0

    def write(self, text: str) -> None:
        if self._file is not None and text:
            self._file.write(text)
            self._file.flush()

    def disable_echo(self) -> None:
        pass

    def reset(self) -> None:
        pass


class LogWindow:
    """Fixed-height emulated screen showing a task's latest log output.

    Control sequences in the log (colors, carriage returns used by
    progress bars, cursor movement) are interpreted, so only the visible
    result is shown.
    """

    def __init__(self, lines: int = 6, columns: int = 80) -> None:
        self._screen = pyte.Screen(columns, lines)
        # A bare line feed also returns the carriage
        self._screen.set_mode(pyte.modes.LNM)
        self._stream = pyte.ByteStream(self._screen)

    @property
    def lines(self) -> int:
        return self._screen.lines

    @property
    def columns(self) -> int:
        return self._screen.columns

    def feed(self, data: bytes) -> None:
        if data:
            self._stream.feed(data)

    def resize(self, lines: int, columns: int) -> None:
        if (lines, columns) != (self._screen.lines, self._screen.columns):
            self._screen.resize(lines=lines, columns=columns)

    def visible_lines(self) -> list[str]:
        """Rows up to the last one holding text, trailing blanks stripped."""
        rows = [row.rstrip() for row in self._screen.display]
        while rows and not rows[-1]:
            rows.pop()
        return rows
