"""Main Typer application — imports and registers all CLI commands.

Entry point: ``tasktrail`` (configured via pyproject.toml console_scripts).
"""

from __future__ import annotations

import logging

import typer
from rich.console import Console
from rich.logging import RichHandler

from tasktrail.cli.commands.demo import demo_cmd
from tasktrail.cli.commands.load import load_cmd
from tasktrail.config import config

app = typer.Typer(
    name="tasktrail",
    help="Tasktrail: live hierarchical progress for concurrent work.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)

# Register subcommands
app.command(name="demo", help="Simulate an image build with nested, concurrent tasks.")(demo_cmd)
app.command(name="load", help="Download and extract an image on a single progress row.")(load_cmd)


@app.callback()
def main_callback(
    log_level: str = typer.Option(
        config.log_level,
        "--log-level",
        help="Log level for diagnostics (written to stderr).",
    ),
) -> None:
    """Configure logging so diagnostics stay out of the progress display."""
    logging.basicConfig(
        level=log_level.upper(),
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
