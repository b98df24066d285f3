"""Bounded per-task log tail, kept for post-mortem dumps of failed tasks."""

from __future__ import annotations

from collections import deque


class TailBuffer:
    """Ring of the most recent ``max_lines`` log lines.

    Writes are split on newlines; a chunk that does not end in a newline
    leaves its last piece as a line of its own (no reassembly across
    writes).
    """

    def __init__(self, max_lines: int = 32) -> None:
        self._lines: deque[bytes] = deque(maxlen=max_lines)

    @property
    def max_lines(self) -> int:
        return self._lines.maxlen or 0

    def __len__(self) -> int:
        return len(self._lines)

    def write(self, data: bytes) -> int:
        pieces = data.split(b"\n")
        if pieces and pieces[-1] == b"":
            pieces.pop()
        self._lines.extend(pieces)
        return len(data)

    def lines(self) -> list[bytes]:
        """Retained lines, oldest first."""
        return list(self._lines)

    def dump(self) -> str:
        return "\n".join(line.decode("utf-8", errors="replace") for line in self._lines)
