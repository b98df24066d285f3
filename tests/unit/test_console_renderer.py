"""Unit tests for the ConsoleRenderer."""

from __future__ import annotations

import re

import pytest

from tasktrail.models.events import TaskEvent, Toggle
from tasktrail.monitor.layout import cursor_up
from tasktrail.monitor.renderer import ConsoleRenderer, Renderer

_BAR = re.compile(r"\[=+ *\]")


@pytest.fixture
def renderer(clock) -> ConsoleRenderer:
    return ConsoleRenderer("build", clock=clock)


def _rows(renderer: ConsoleRenderer, plain, width: int = 80, show_error: bool = False) -> list[str]:
    return [plain(line) for line in renderer.frame(width, show_error)]


class TestRendererProtocol:
    def test_console_renderer_satisfies_protocol(self, renderer):
        assert isinstance(renderer, Renderer)


class TestTitle:
    def test_title_counts_and_elapsed(self, renderer, clock, plain):
        renderer.update(TaskEvent(id=1, name="fetch", start_time=clock()))
        renderer.update(TaskEvent(id=2, name="build", start_time=clock()))
        renderer.update(TaskEvent(id=1, is_done=True, end_time=clock()))
        clock.advance(1.5)

        title = _rows(renderer, plain)[0]
        assert len(title) == 80
        assert title.startswith("+ build ")
        assert title.endswith("(1/2) 1.5s")

    def test_title_red_on_final_render_with_error(self, renderer):
        renderer.update(TaskEvent(id=1, name="x"))
        renderer.update(TaskEvent(id=1, is_done=True, has_error=True, err=RuntimeError("e")))
        assert renderer.frame(80, show_error=False)[0].startswith("\x1b[34m")
        assert renderer.frame(80, show_error=True)[0].startswith("\x1b[1;31m")


class TestTaskRows:
    def test_nested_rows_depth_first(self, renderer, plain):
        renderer.update(TaskEvent(id=1, name="outer"))
        renderer.update(TaskEvent(id=2, parent_id=1, name="inner"))
        renderer.update(TaskEvent(id=3, name="second"))
        rows = _rows(renderer, plain)
        assert rows[1].startswith("=> outer")
        assert rows[2].startswith("=> => inner")
        assert rows[3].startswith("=> second")

    def test_children_counter_on_parent(self, renderer, clock, plain):
        renderer.update(TaskEvent(id=1, name="outer", start_time=clock()))
        renderer.update(TaskEvent(id=2, parent_id=1, name="a"))
        renderer.update(TaskEvent(id=3, parent_id=1, name="b"))
        renderer.update(TaskEvent(id=2, is_done=True))
        clock.advance(2.0)
        assert _rows(renderer, plain)[1].endswith("(1/2) 2.0s")

    def test_byte_counters(self, renderer, plain):
        renderer.update(TaskEvent(id=1, name="dl", total=2048))
        renderer.update(TaskEvent(id=1, current=1024))
        assert "dl 1.0KiB / 2.0KiB" in _rows(renderer, plain)[1]

        renderer.update(TaskEvent(id=1, current=2048, is_done=True))
        row = _rows(renderer, plain)[1]
        assert "dl 2.0KiB" in row
        assert "/ 2.0KiB" not in row

    def test_no_counters_without_io(self, renderer, plain):
        renderer.update(TaskEvent(id=1, name="compile", total=100))
        assert "B" not in _rows(renderer, plain)[1].split("compile")[1]

    def test_rate_and_eta(self, renderer, clock, plain):
        renderer.update(TaskEvent(id=1, name="dl", total=4096, io_start_time=clock()))
        renderer.update(TaskEvent(id=1, display_rate=Toggle.ENABLED))
        renderer.update(TaskEvent(id=1, display_eta=Toggle.ENABLED))
        renderer.update(TaskEvent(id=1, current=1024))
        clock.advance(1.0)
        row = _rows(renderer, plain)[1]
        assert "(1.0KiB/s)" in row
        assert "ETA 0:00:03" in row

    def test_rate_hidden_when_total_unknown(self, renderer, clock, plain):
        renderer.update(TaskEvent(id=1, name="dl", io_start_time=clock()))
        renderer.update(TaskEvent(id=1, display_rate=Toggle.ENABLED))
        renderer.update(TaskEvent(id=1, current=1024))
        clock.advance(1.0)
        assert "/s)" not in _rows(renderer, plain)[1]

    def test_cached_marker(self, renderer, plain):
        renderer.update(TaskEvent(id=1, name="layer"))
        renderer.update(TaskEvent(id=1, cached=True))
        renderer.update(TaskEvent(id=1, is_done=True))
        frame = renderer.frame(80, False)
        assert plain(frame[1]).startswith("=> CACHED layer")
        assert frame[1].startswith("\x1b[1;34m")

    def test_done_and_failed_styles(self, renderer):
        renderer.update(TaskEvent(id=1, name="ok"))
        renderer.update(TaskEvent(id=2, name="bad"))
        renderer.update(TaskEvent(id=3, name="running"))
        renderer.update(TaskEvent(id=1, is_done=True))
        renderer.update(TaskEvent(id=2, is_done=True, has_error=True, err=RuntimeError("x")))
        frame = renderer.frame(80, False)
        assert frame[1].startswith("\x1b[34m")
        assert frame[2].startswith("\x1b[1;31m")
        assert not frame[3].startswith("\x1b[")


class TestBar:
    def test_bar_fills_remaining_width(self, renderer, plain):
        renderer.update(TaskEvent(id=1, name="dl", total=100, display_bar=Toggle.ENABLED))
        renderer.update(TaskEvent(id=1, current=50))
        row = _rows(renderer, plain, width=60)[1]
        assert len(row) == 60
        assert _BAR.search(row)

    def test_no_bar_before_progress_or_after_done(self, renderer, plain):
        renderer.update(TaskEvent(id=1, name="dl", total=100))
        renderer.update(TaskEvent(id=1, display_bar=Toggle.ENABLED))
        assert not _BAR.search(_rows(renderer, plain)[1])
        renderer.update(TaskEvent(id=1, is_done=True))
        assert not _BAR.search(_rows(renderer, plain)[1])

    def test_no_bar_when_disabled(self, renderer, plain):
        renderer.update(TaskEvent(id=1, name="dl", total=100, display_bar=Toggle.ENABLED))
        renderer.update(TaskEvent(id=1, display_bar=Toggle.DISABLED))
        renderer.update(TaskEvent(id=1, current=50))
        assert not _BAR.search(_rows(renderer, plain)[1])


class TestLogWindow:
    def test_running_task_shows_recent_logs(self, renderer, plain):
        renderer.update(TaskEvent(id=1, name="build"))
        for i in range(10):
            renderer.update(TaskEvent(id=1, logs=f"line {i}\n".encode()))
        rows = _rows(renderer, plain)
        logs = rows[2:]
        assert 0 < len(logs) <= 6
        assert logs[-1] == "line 9"

    def test_log_lines_are_dim(self, renderer):
        renderer.update(TaskEvent(id=1, name="build"))
        renderer.update(TaskEvent(id=1, logs=b"hello\n"))
        assert renderer.frame(80, False)[2] == "\x1b[2mhello\x1b[0m"

    def test_control_sequences_interpreted(self, renderer, plain):
        renderer.update(TaskEvent(id=1, name="build"))
        renderer.update(TaskEvent(id=1, logs=b"10%\r50%\r\x1b[31m90%\x1b[0m\n"))
        assert _rows(renderer, plain)[2] == "90%"

    def test_done_task_hides_logs(self, renderer, plain):
        renderer.update(TaskEvent(id=1, name="build"))
        renderer.update(TaskEvent(id=1, logs=b"hello\n"))
        renderer.update(TaskEvent(id=1, is_done=True))
        assert len(_rows(renderer, plain)) == 2


class TestRender:
    def test_redraw_over_previous_frame(self, renderer, terminal):
        renderer.update(TaskEvent(id=1, name="build"))
        renderer.update(TaskEvent(id=1, logs=b"a\nb\nc\n"))
        renderer.render(terminal, 80, False)
        assert renderer.lines_painted == 5

        renderer.update(TaskEvent(id=1, is_done=True))
        terminal.writes.clear()
        renderer.render(terminal, 80, False)
        assert renderer.lines_painted == 2
        assert terminal.output.startswith(cursor_up(5))
        assert terminal.output.endswith(cursor_up(3))

    def test_final_render_shows_error_and_log_dump(self, renderer, terminal, plain):
        renderer.update(TaskEvent(id=1, name="compile"))
        renderer.update(TaskEvent(id=1, logs=b"gcc: warning\ngcc: error\n"))
        renderer.update(
            TaskEvent(id=1, is_done=True, has_error=True, err=RuntimeError("exit status 1"))
        )
        renderer.render(terminal, 80, True)
        out = plain(terminal.output)

        assert "exit status 1" in out
        assert "=== LOG DUMP compile ===" in out
        assert "gcc: warning\ngcc: error\n" in out
        assert "=" * len("=== LOG DUMP compile ===") in out

    def test_no_dump_without_error(self, renderer, terminal, plain):
        renderer.update(TaskEvent(id=1, name="compile"))
        renderer.update(TaskEvent(id=1, logs=b"fine\n"))
        renderer.update(TaskEvent(id=1, is_done=True))
        renderer.render(terminal, 80, True)
        assert "LOG DUMP" not in plain(terminal.output)

    def test_error_text_only_on_final_render(self, renderer, plain):
        renderer.update(TaskEvent(id=1, name="compile"))
        renderer.update(
            TaskEvent(id=1, is_done=True, has_error=True, err=RuntimeError("exit status 1"))
        )
        assert len(_rows(renderer, plain, show_error=False)) == 2
        rows = _rows(renderer, plain, show_error=True)
        assert rows[2] == "exit status 1"
