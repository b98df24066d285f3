"""``tasktrail demo`` — simulate an image build with nested, concurrent tasks.

Fetches three layers concurrently, builds with log output and nested
subtasks, then pushes.  ``--fail`` and ``--fail-download`` inject errors to
show the error styling and the post-mortem log dump.
"""

from __future__ import annotations

import io
import random
import sys
import time
from concurrent.futures import ThreadPoolExecutor

import typer
from rich.console import Console

from tasktrail.config import config
from tasktrail.core.display import ProgressConfigError, display_progress
from tasktrail.core.tasks import ReaderTask, Task, WriterTask

console = Console(stderr=True)

_CHUNK = 64 * 1024


class PacedStream(io.RawIOBase):
    """Readable of ``size`` zero bytes delivered at about ``rate`` bytes/s."""

    def __init__(self, size: int, rate: float) -> None:
        self._remaining = size
        self._rate = rate

    def readable(self) -> bool:
        return True

    def readinto(self, buffer) -> int:
        n = min(len(buffer), self._remaining, _CHUNK)
        if n <= 0:
            return 0
        time.sleep(n / self._rate)
        buffer[:n] = bytes(n)
        self._remaining -= n
        return n


class DiscardSink(io.RawIOBase):
    """Writable that drops everything."""

    def writable(self) -> bool:
        return True

    def write(self, data) -> int:
        return len(data)


def _pause(seconds: float, speed: float) -> None:
    time.sleep(seconds / speed)


# ---------------------------------------------------------------------------
# Simulated build
# ---------------------------------------------------------------------------


def _fetch_layer(parent: Task, index: int, *, fail: bool, speed: float) -> None:
    size = random.randint(10_000_000, 20_000_000)
    rate = random.randint(5_300_121, 10_600_242) * speed

    def body(rt: ReaderTask) -> None:
        rt.display_rate(True)
        rt.display_eta(True)
        rt.display_bar(True)
        limit = size // 2 if fail else size
        while rt.transferred < limit and rt.read(_CHUNK):
            pass
        if fail:
            raise RuntimeError("download err")

    parent.reader(f"fetching {index}", PacedStream(size, rate), size, body)


def _fetch(task: Task, *, fail_download: bool, speed: float) -> None:
    with ThreadPoolExecutor(max_workers=3) as pool:
        futures = [
            pool.submit(_fetch_layer, task, i, fail=fail_download and i == 1, speed=speed)
            for i in range(3)
        ]
    errors = [f.exception() for f in futures if f.exception() is not None]
    if errors:
        raise RuntimeError(f"failed to fetch image: {'; '.join(map(str, errors))}") from errors[0]


def _build(task: Task, *, fail: bool, speed: float) -> None:
    for i in range(10):
        _pause(random.uniform(0.05, 0.15), speed)
        print(f"some line {i}", file=task.log)

    def subsubimage(t: Task) -> None:
        _pause(random.uniform(0.5, 1.5), speed)
        if fail:
            raise RuntimeError("some err")

    def subimage(t: Task) -> None:
        _pause(random.uniform(0.5, 1.5), speed)
        try:
            t.execute("build subsubimage", subsubimage)
        except RuntimeError as exc:
            raise RuntimeError(f"failed to build subsubimage: {exc}") from exc
        _pause(random.uniform(0.5, 1.5), speed)

    try:
        task.execute("build subimage", subimage)
    except RuntimeError as exc:
        raise RuntimeError(f"failed to build subimage: {exc}") from exc


def _push(wt: WriterTask, *, speed: float) -> None:
    size = random.randint(10_000_000, 20_000_000)
    source = PacedStream(size, 20_000_000 * speed)
    while chunk := source.read(_CHUNK):
        wt.write(chunk)


def run_build(root: Task, *, fail: bool = False, fail_download: bool = False, speed: float = 1.0) -> None:
    """Fetch, build and push; runs a cleanup step if build or push fails."""
    root.execute("fetch image", lambda t: _fetch(t, fail_download=fail_download, speed=speed))
    try:
        root.execute("build image", lambda t: _build(t, fail=fail, speed=speed))
        root.writer("push image", DiscardSink(), 0, lambda wt: _push(wt, speed=speed))
    except Exception:
        root.execute("cleanup", lambda t: _pause(2.0, speed))
        raise


def demo_cmd(
    mode: str = typer.Option(
        config.mode,
        "--mode",
        "-m",
        help="Display mode: auto, tty or plain.",
    ),
    fail: bool = typer.Option(
        False,
        "--fail",
        help="Fail the innermost build step.",
    ),
    fail_download: bool = typer.Option(
        False,
        "--fail-download",
        help="Fail the second layer download halfway through.",
    ),
    speed: float = typer.Option(
        1.0,
        "--speed",
        "-s",
        min=0.01,
        help="Speed-up factor applied to every simulated delay.",
    ),
) -> None:
    """Simulate an image build with nested, concurrent tasks."""
    try:
        display = display_progress(sys.stdout, "build stuff", mode)
    except ProgressConfigError as exc:
        console.print(f"[bold red]Cannot display progress:[/bold red] {exc}")
        raise typer.Exit(code=2)

    failed = False
    with display:
        try:
            run_build(display.root, fail=fail, fail_download=fail_download, speed=speed)
        except RuntimeError:
            failed = True

    if failed:
        raise typer.Exit(code=1)
