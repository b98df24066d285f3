"""Tasktrail CLI — Typer-based command-line interface.

Provides the ``tasktrail`` command with demo subcommands that exercise the
progress display against simulated workloads.
"""
