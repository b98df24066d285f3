"""Tasktrail data models."""

from tasktrail.models.events import TaskEvent, Toggle

__all__ = ["TaskEvent", "Toggle"]
