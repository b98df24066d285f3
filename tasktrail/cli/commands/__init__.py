"""Tasktrail CLI subcommands."""
