"""Daily request budget gate.

Usage for the current UTC day is persisted as ``{"date", "used"}`` JSON.
A stored date other than today reads as zero usage, so the count resets
on the first read of a new day.

Known limitation: by default ``consume`` reads and writes the state file
without a lock, so two concurrent consumers can lose an update. Set
``serialize_consume`` to guard the read-modify-write with a FileClaim.
"""

import json
import logging
from collections.abc import Callable
from datetime import UTC, date, datetime
from pathlib import Path

from ..config import BudgetConfig
from ..constants import STATE_LOCK_POLL_INTERVAL, STATE_LOCK_TIMEOUT
from ..errors import BudgetExceededError
from ..models import BudgetDecision, BudgetState
from .claims import FileClaim, wait_for_claim

logger = logging.getLogger(__name__)


def utc_today() -> date:
    """Current UTC calendar date."""
    return datetime.now(UTC).date()


class BudgetGate:
    """Checks, commits and reports planned requests against the daily budget.

    Every verb returns None without touching state when the gate is disabled.
    """

    def __init__(self, config: BudgetConfig, clock: Callable[[], date] = utc_today) -> None:
        self.config = config
        self._clock = clock

    @property
    def budget(self) -> int:
        return self.config.automation_budget

    @property
    def state_path(self) -> Path:
        return self.config.state_path

    def load_state(self) -> BudgetState:
        """Load today's usage.

        A missing or corrupt state file reads as zero usage today. A state
        without a date is taken to be today's. Other I/O errors (e.g.
        permissions) propagate.
        """
        today = self._clock()
        try:
            data = json.loads(self.state_path.read_text(encoding="utf-8"))
            if isinstance(data, dict) and not data.get("date"):
                data = {**data, "date": today.isoformat()}
            state = BudgetState.model_validate(data)
        except FileNotFoundError:
            return BudgetState(date=today)
        except ValueError as e:
            logger.warning(f"Ignoring unreadable budget state {self.state_path}: {e}")
            return BudgetState(date=today)
        return state.for_day(today)

    def save_state(self, state: BudgetState) -> None:
        self.state_path.parent.mkdir(parents=True, exist_ok=True)
        self.state_path.write_text(state.model_dump_json(indent=2) + "\n", encoding="utf-8")

    def report(self, planned_requests: int = 0) -> BudgetDecision | None:
        """Evaluate without enforcing or mutating anything."""
        if self.config.disabled:
            return None
        return BudgetDecision.evaluate(self.load_state(), self.budget, planned_requests)

    def check(self, planned_requests: int) -> BudgetDecision | None:
        """Dry run: fail if the planned requests would exceed the budget.

        Raises:
            BudgetExceededError: If used + planned > budget
        """
        if self.config.disabled:
            return None
        decision = BudgetDecision.evaluate(self.load_state(), self.budget, planned_requests)
        if decision.planned_requests > 0 and decision.would_exceed:
            raise BudgetExceededError(decision)
        return decision

    def consume(self, planned_requests: int) -> BudgetDecision | None:
        """Record planned requests as used, if they fit in the budget.

        Nothing is written when the budget would be exceeded or when there
        is nothing to consume.

        Raises:
            BudgetExceededError: If used + planned > budget
        """
        if self.config.disabled:
            return None
        if not self.config.serialize_consume:
            return self._consume(planned_requests)

        claim = FileClaim(self.state_path.with_name(self.state_path.name + ".lock"), "consume")
        wait_for_claim(claim, STATE_LOCK_POLL_INTERVAL, STATE_LOCK_TIMEOUT)
        try:
            return self._consume(planned_requests)
        finally:
            claim.release()

    def _consume(self, planned_requests: int) -> BudgetDecision:
        state = self.load_state()
        decision = BudgetDecision.evaluate(state, self.budget, planned_requests)
        if decision.planned_requests <= 0:
            return decision
        if decision.would_exceed:
            raise BudgetExceededError(decision)
        self.save_state(BudgetState(date=state.date, used=state.used + decision.planned_requests))
        logger.debug(
            f"Consumed {decision.planned_requests} requests, "
            f"{decision.remaining_after} remaining today"
        )
        return decision
