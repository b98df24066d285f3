"""Tasktrail monitor — turns the task tree into terminal output.

Modules
-------
renderer
    ``ConsoleRenderer`` redraws the task tree in place on a terminal.
trace
    ``TraceRenderer`` appends timestamped lines for non-interactive output.
layout
    Pure text helpers and the in-place redraw script.
terminal
    Terminal probing and the per-task log window (VT100 emulation).
tail
    ``TailBuffer`` keeps the last log lines of each task for error dumps.
"""
