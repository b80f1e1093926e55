"""th executor - runs approved commands."""

from th.executor.shell import execute_command

__all__ = ["execute_command"]
