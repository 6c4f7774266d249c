"""Budget state and decision models."""

import datetime as dt

from pydantic import BaseModel, Field, field_validator


class BudgetState(BaseModel):
    """Persisted daily usage, stored as ``{"date": ..., "used": ...}``."""

    date: dt.date
    used: int = 0

    @field_validator("used", mode="before")
    @classmethod
    def coerce_used(cls, value: object) -> int:
        """Read missing, negative or non-integer usage as zero."""
        try:
            used = int(str(value if value is not None else 0), 10)
        except ValueError:
            return 0
        return used if used >= 0 else 0

    def for_day(self, today: dt.date) -> "BudgetState":
        """Return this state, or a fresh zero-usage state if it is from another day."""
        if self.date != today:
            return BudgetState(date=today, used=0)
        return self


class BudgetDecision(BaseModel):
    """Outcome of evaluating planned requests against the daily budget."""

    date: dt.date
    planned_requests: int = Field(ge=0)
    used_today: int = Field(ge=0)
    budget: int = Field(ge=0)
    remaining_before: int = Field(ge=0)
    remaining_after: int = Field(ge=0)
    would_exceed: bool

    @classmethod
    def evaluate(cls, state: BudgetState, budget: int, planned_requests: int) -> "BudgetDecision":
        """Compute a decision for ``planned_requests`` on top of ``state``."""
        planned = max(0, planned_requests)
        next_used = state.used + planned
        return cls(
            date=state.date,
            planned_requests=planned,
            used_today=state.used,
            budget=budget,
            remaining_before=max(0, budget - state.used),
            remaining_after=max(0, budget - next_used),
            would_exceed=next_used > budget,
        )


class UsageEstimate(BaseModel):
    """Predicted request cost of a live test run."""

    live_cases: int = Field(ge=0)
    requests_per_case: int = Field(ge=1)
    planned_requests: int = Field(ge=0)
    overridden: bool = False
