"""Pydantic data models for preflight state.

This package defines:
- Claim file contents (ClaimRecord)
- Persisted daily usage and gate decisions (BudgetState, BudgetDecision)
- Static usage estimates (UsageEstimate)
"""

from .budget import BudgetDecision, BudgetState, UsageEstimate
from .claim import ClaimRecord

__all__ = [
    "BudgetDecision",
    "BudgetState",
    "ClaimRecord",
    "UsageEstimate",
]
