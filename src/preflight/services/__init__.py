"""Service layer for external process execution."""

from .process import run_command

__all__ = ["run_command"]
