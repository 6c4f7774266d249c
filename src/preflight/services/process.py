"""External command runner for preflight."""

import logging
import os
import subprocess
from collections.abc import Mapping, Sequence
from pathlib import Path

from ..errors import CommandError

logger = logging.getLogger(__name__)


def run_command(
    args: Sequence[str],
    cwd: Path | None = None,
    extra_env: Mapping[str, str] | None = None,
) -> int:
    """Run a command with inherited stdio and return its exit code.

    Args:
        args: Command and arguments
        cwd: Working directory (defaults to current)
        extra_env: Variables added to the current environment

    Returns:
        Exit code of the command

    Raises:
        CommandError: If the command is empty or cannot be started
    """
    if not args:
        raise CommandError("No command given")

    env = {**os.environ, **(extra_env or {})}
    logger.debug(f"Running: {' '.join(args)}")
    try:
        result = subprocess.run(list(args), cwd=cwd, env=env, check=False)
    except FileNotFoundError:
        raise CommandError(f"Command not found: {args[0]}") from None
    except PermissionError as e:
        raise CommandError(f"Cannot execute {args[0]}: {e}") from e
    return result.returncode
