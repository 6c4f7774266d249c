"""Preflight errors."""

from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models import BudgetDecision


class PreflightError(Exception):
    """Base exception for preflight errors."""


class LockTimeoutError(PreflightError):
    """Raised when a waiter never observes the completion marker in time."""

    def __init__(self, lock_path: Path, timeout: float) -> None:
        self.lock_path = lock_path
        self.timeout = timeout
        super().__init__(f"Timed out after {timeout:g}s waiting for lock: {lock_path}")


class BudgetExceededError(PreflightError):
    """Raised when planned requests would exceed the daily budget."""

    def __init__(self, decision: "BudgetDecision") -> None:
        self.decision = decision
        super().__init__(
            f"Planned {decision.planned_requests} would exceed budget "
            f"({decision.used_today}/{decision.budget} used)"
        )


class CommandError(PreflightError):
    """Raised when an external command cannot be started."""
