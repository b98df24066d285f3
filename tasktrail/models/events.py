"""Task events — the only payload that crosses from producers to the consumer.

Every event is a frozen Pydantic model describing one or more fields of a
single task.  Fields left at their defaults mean "no change" when the event
is folded into the task tree.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator


class Toggle(str, Enum):
    """Three-valued display switch carried by an event.

    ``UNSET`` leaves the current setting alone; the last ``ENABLED`` or
    ``DISABLED`` seen for a task wins.
    """

    UNSET = "unset"
    ENABLED = "enabled"
    DISABLED = "disabled"

    @classmethod
    def from_bool(cls, value: bool) -> Toggle:
        return cls.ENABLED if value else cls.DISABLED


class TaskEvent(BaseModel):
    """An immutable update for one task.

    ``id`` is required on every event.  The first event seen for an id
    creates the task; ``parent_id`` is only read at that point.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    id: int = Field(gt=0)
    parent_id: int = Field(default=0, ge=0)  # 0 = root-level task

    name: str = ""  # empty = keep current name

    # time.monotonic() readings; None = not carried by this event
    start_time: float | None = None
    end_time: float | None = None
    io_start_time: float | None = None

    # 0 = no change, except together with ``reset``
    current: int = Field(default=0, ge=0)
    total: int = Field(default=0, ge=0)
    reset: bool = False

    is_done: bool = False
    cached: bool = False
    has_error: bool = False
    err: BaseException | None = None

    display_rate: Toggle = Toggle.UNSET
    display_eta: Toggle = Toggle.UNSET
    display_bar: Toggle = Toggle.UNSET

    logs: bytes = b""

    @model_validator(mode="after")
    def _error_pairing(self) -> TaskEvent:
        if self.has_error and self.err is None:
            raise ValueError("has_error requires err")
        if self.err is not None and not self.has_error:
            raise ValueError("err given without has_error")
        return self

    @property
    def error_message(self) -> str:
        """Text of the carried error, empty when there is none."""
        return str(self.err) if self.err is not None else ""
