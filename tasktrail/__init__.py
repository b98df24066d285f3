"""Tasktrail: live hierarchical progress for concurrent work.

Task handles (any number of producer threads) send ``TaskEvent`` values to
a single consumer that folds them into a task tree and paints it, either
in place on an interactive terminal or as an append-only trace log.
"""

__version__ = "0.1.0"
__description__ = "Live hierarchical progress display for concurrent build, fetch and copy tasks"

from tasktrail.core.display import (
    DisplayMode,
    InvalidModeError,
    ProgressConfigError,
    ProgressDisplay,
    TerminalRequiredError,
    display_progress,
    process_events,
)
from tasktrail.core.event_queue import EventQueue, StreamClosedError
from tasktrail.core.tasks import CopyTask, ReaderTask, RootTask, Task, WriterTask
from tasktrail.core.tree import TaskNode, TaskTree
from tasktrail.models.events import TaskEvent, Toggle

__all__ = [
    "CopyTask",
    "DisplayMode",
    "EventQueue",
    "InvalidModeError",
    "ProgressConfigError",
    "ProgressDisplay",
    "ReaderTask",
    "RootTask",
    "StreamClosedError",
    "Task",
    "TaskEvent",
    "TaskNode",
    "TaskTree",
    "TerminalRequiredError",
    "Toggle",
    "WriterTask",
    "display_progress",
    "process_events",
    "__version__",
]
