"""``tasktrail load`` — a multi-phase copy shown on a single row.

One copier downloads and then extracts an image, calling ``reset`` between
the phases, while two unrelated subtasks run next to it.
"""

from __future__ import annotations

import sys
import time
from concurrent.futures import ThreadPoolExecutor

import typer
from rich.console import Console

from tasktrail.cli.commands.demo import DiscardSink, PacedStream
from tasktrail.config import config
from tasktrail.core.display import ProgressConfigError, display_progress
from tasktrail.core.tasks import CopyTask, Task

console = Console(stderr=True)

_MIB = 1024 * 1024


def _chill(seconds: float) -> None:
    time.sleep(seconds)


def load_image(task: Task, *, size_mb: int, speed: float) -> None:
    """Download then extract through one copier row."""

    def body(ct: CopyTask) -> None:
        with ThreadPoolExecutor(max_workers=2) as pool:
            side = [
                pool.submit(ct.execute, "some subtask", lambda t, s=s: _chill(s / speed))
                for s in (2.0, 5.0)
            ]

            ct.display_bar(True)
            ct.display_rate(True)
            ct.display_eta(True)

            download = size_mb * _MIB
            ct.reset(download)
            ct.rename("download image")
            ct.copy(DiscardSink(), PacedStream(download, 4 * _MIB * speed))

            extract = 2 * size_mb * _MIB
            ct.reset(extract)
            ct.rename("extract image")
            ct.copy(DiscardSink(), PacedStream(extract, 5 * _MIB * speed))

        for future in side:
            future.result()

    task.copier("load image", 0, body)


def load_cmd(
    mode: str = typer.Option(
        config.mode,
        "--mode",
        "-m",
        help="Display mode: auto, tty or plain.",
    ),
    size_mb: int = typer.Option(
        32,
        "--size-mb",
        min=1,
        help="Size of the simulated download in MiB (extraction is twice that).",
    ),
    speed: float = typer.Option(
        1.0,
        "--speed",
        "-s",
        min=0.01,
        help="Speed-up factor applied to every simulated delay.",
    ),
) -> None:
    """Download and extract an image on a single progress row."""
    try:
        display = display_progress(sys.stdout, "build image", mode)
    except ProgressConfigError as exc:
        console.print(f"[bold red]Cannot display progress:[/bold red] {exc}")
        raise typer.Exit(code=2)

    failed = False
    with display as root:
        try:
            root.execute("get image", lambda t: load_image(t, size_mb=size_mb, speed=speed))
            root.execute("build image", lambda t: _chill(10.0 / speed))
        except RuntimeError:
            failed = True

    if failed:
        raise typer.Exit(code=1)
