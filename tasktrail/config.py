"""Runtime configuration — env-driven.

Reads from a .env file and TASKTRAIL_* environment variables.  The render
cadence values are design constants; they are exposed here so they can be
tuned, not because callers are expected to change them.
"""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ProgressConfig(BaseSettings):
    """Progress display configuration with environment variable overrides.

    Examples
    --------
    Override via environment::

        export TASKTRAIL_MODE=plain
        export TASKTRAIL_LOG_LEVEL=DEBUG

    Or via .env file::

        TASKTRAIL_TICK_INTERVAL=0.25
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="TASKTRAIL_",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Renderer selection: auto, tty or plain
    mode: str = "auto"

    # Render cadence (seconds)
    tick_interval: float = Field(default=0.15, gt=0)
    min_render_gap: float = Field(default=0.10, ge=0)

    # Per-task log capture
    log_window_lines: int = Field(default=6, ge=1)
    tail_lines: int = Field(default=32, ge=1)

    # Producers block once this many events are waiting
    queue_size: int = Field(default=1024, ge=1)

    fallback_width: int = Field(default=80, ge=1)
    suppress_echo: bool = True

    log_level: str = "WARNING"


# Module-level default: import as `from tasktrail.config import config`
config = ProgressConfig()
