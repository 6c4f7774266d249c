"""Core business logic for preflight.

- claims: Exclusive acquire-or-fail claims (file-backed by default)
- run_coordinator: Once-per-run execution of a shared seed action
- budget_gate: Daily request budget check/consume/report
- estimator: Static count of live-tagged tests in a corpus
"""

from .budget_gate import BudgetGate, utc_today
from .claims import ClaimFactory, ClaimIdentity, ExclusiveClaim, FileClaim, wait_for_claim
from .estimator import count_marked_cases, estimate, estimate_usage
from .run_coordinator import RunCoordinator

__all__ = [
    "BudgetGate",
    "ClaimFactory",
    "ClaimIdentity",
    "ExclusiveClaim",
    "FileClaim",
    "RunCoordinator",
    "count_marked_cases",
    "estimate",
    "estimate_usage",
    "utc_today",
    "wait_for_claim",
]
