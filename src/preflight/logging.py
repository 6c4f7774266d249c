"""Logging configuration for the preflight CLI."""

import logging

from rich.console import Console
from rich.logging import RichHandler


def configure_logging(
    verbosity: int = 0,
    quiet: bool = False,
    no_color: bool = False,
) -> Console:
    """Configure logging based on CLI options.

    Args:
        verbosity: Number of -v flags (0=warnings and info, 1+=debug)
        quiet: Only show warnings and errors (takes precedence over verbosity)
        no_color: Disable colored output

    Returns:
        Rich console (stderr) shared by log records and CLI messages
    """
    if quiet:
        level = logging.WARNING
    elif verbosity >= 1:
        level = logging.DEBUG
    else:
        level = logging.INFO

    console = Console(
        stderr=True,
        force_terminal=not no_color,
        no_color=no_color,
    )

    handler = RichHandler(
        console=console,
        show_time=verbosity >= 2,
        show_path=verbosity >= 2,
    )

    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[handler],
    )

    return console
