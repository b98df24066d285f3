"""Pure text helpers for the console frame.

Nothing here touches the task tree: the redraw script is a function of the
previous frame height and the new frame, so it can be tested with
synthetic frames.
"""

from __future__ import annotations

from datetime import timedelta

from rich.cells import cell_len, set_cell_size
from rich.control import Control, ControlType
from rich.filesize import pick_unit_and_suffix
from rich.style import Style

_BINARY_SUFFIXES = ["B", "KiB", "MiB", "GiB", "TiB", "PiB", "EiB"]

ERASE_TO_EOL = str(Control((ControlType.ERASE_IN_LINE, 0)))
ERASE_LINE = str(Control((ControlType.ERASE_IN_LINE, 2)))


def cursor_up(lines: int) -> str:
    """Escape sequence moving the cursor up ``lines`` rows ("" for 0)."""
    if lines <= 0:
        return ""
    return str(Control.move(0, -lines))


def redraw(previous_lines: int, frame: list[str]) -> str:
    """Script that paints ``frame`` over the previous one in place.

    Moves up over the previously painted block, writes each new line and
    clears what is left of it, then blanks any rows the old frame had
    beyond the new one and returns the cursor to just below the new frame.
    """
    parts = [cursor_up(previous_lines)]
    parts.extend(f"{line}{ERASE_TO_EOL}\n" for line in frame)

    leftover = previous_lines - len(frame)
    if leftover > 0:
        parts.extend(f"{ERASE_LINE}\n" for _ in range(leftover))
        parts.append(cursor_up(leftover))
    return "".join(parts)


def styled(text: str, style: str) -> str:
    """Wrap ``text`` in the SGR codes for a Rich style string."""
    if not style or not text:
        return text
    return Style.parse(style).render(text)


def align(left: str, right: str, width: int) -> str:
    """Left text padded (or cut) so ``right`` ends at column ``width``."""
    room = max(width - cell_len(right) - 1, 0)
    return f"{set_cell_size(left, room)} {right}"


def arrow(depth: int) -> str:
    """Depth marker: ``=>`` for roots, ``=> =>`` one level down, ..."""
    return ("=> " * depth).rstrip()


def bar(width: int, fraction: float) -> str:
    """``[====    ]`` of exactly ``width`` cells; empty if there is no room."""
    if width < 3:
        return ""
    inner = width - 2
    fraction = min(max(fraction, 0.0), 1.0)
    filled = sum(1 for i in range(inner) if i < fraction * inner)
    return "[" + "=" * filled + " " * (inner - filled) + "]"


def format_bytes(size: int | float) -> str:
    """Binary-unit size with one decimal, e.g. ``1.5MiB``."""
    unit, suffix = pick_unit_and_suffix(int(size), _BINARY_SUFFIXES, 1024)
    return f"{size / unit:.1f}{suffix}"


def format_duration(seconds: float) -> str:
    """Whole-second duration as ``H:MM:SS``."""
    return str(timedelta(seconds=int(max(seconds, 0))))


def format_seconds(seconds: float) -> str:
    return f"{max(seconds, 0.0):.1f}s"
