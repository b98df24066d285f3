"""Tasktrail core: task handles, the event queue, the task tree and the render loop."""
