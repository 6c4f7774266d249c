"""Tests for the daily request budget gate."""

import datetime as dt
import json
import tempfile
from collections.abc import Callable
from pathlib import Path

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from preflight.config import BudgetConfig
from preflight.core import BudgetGate
from preflight.errors import BudgetExceededError

FIXED_DAY = dt.date(2026, 3, 14)
TODAY = FIXED_DAY.isoformat()
YESTERDAY = (FIXED_DAY - dt.timedelta(days=1)).isoformat()


def make_gate(config: BudgetConfig) -> BudgetGate:
    return BudgetGate(config, clock=lambda: FIXED_DAY)


def read_state(path: Path) -> dict:
    return json.loads(path.read_text())


class TestLoadState:
    """Tests for BudgetGate.load_state."""

    def test_missing_file_is_zero_usage(self, budget_config: Callable) -> None:
        state = make_gate(budget_config()).load_state()
        assert state.date == FIXED_DAY
        assert state.used == 0

    def test_reads_today_usage(self, budget_config: Callable, write_state: Callable) -> None:
        write_state(TODAY, 6)
        assert make_gate(budget_config()).load_state().used == 6

    def test_stale_date_resets(self, budget_config: Callable, write_state: Callable) -> None:
        write_state(YESTERDAY, 999)
        state = make_gate(budget_config()).load_state()
        assert state.date == FIXED_DAY
        assert state.used == 0

    @pytest.mark.parametrize(
        "content",
        ["not json", "[]", "null", '{"date": "yesterday", "used": 1}', ""],
    )
    def test_corrupt_state_is_zero_usage(
        self, budget_config: Callable, state_path: Path, content: str
    ) -> None:
        state_path.parent.mkdir(parents=True)
        state_path.write_text(content)
        state = make_gate(budget_config()).load_state()
        assert state.used == 0
        assert state.date == FIXED_DAY

    @pytest.mark.parametrize("content", ['{"used": 3}', '{"date": "", "used": 3}'])
    def test_state_without_date_counts_as_today(
        self, budget_config: Callable, state_path: Path, content: str
    ) -> None:
        """Usage recorded without a date is kept rather than reset."""
        state_path.parent.mkdir(parents=True)
        state_path.write_text(content)
        state = make_gate(budget_config()).load_state()
        assert state.date == FIXED_DAY
        assert state.used == 3

    def test_consume_onto_undated_state_accumulates(
        self, budget_config: Callable, state_path: Path
    ) -> None:
        state_path.parent.mkdir(parents=True)
        state_path.write_text('{"used": 3}')
        make_gate(budget_config()).consume(2)
        assert read_state(state_path) == {"date": TODAY, "used": 5}

    @pytest.mark.parametrize("used", ["-4", '"abc"', "null"])
    def test_invalid_used_reads_as_zero(
        self, budget_config: Callable, write_state: Callable, used: str
    ) -> None:
        write_state(TODAY, used)
        assert make_gate(budget_config()).load_state().used == 0

    def test_unreadable_path_propagates(self, budget_config: Callable, state_path: Path) -> None:
        """A directory where the state file should be is not silently defaulted."""
        state_path.mkdir(parents=True)
        with pytest.raises(OSError):
            make_gate(budget_config()).load_state()


class TestCheck:
    """Tests for BudgetGate.check."""

    def test_within_budget(self, budget_config: Callable) -> None:
        decision = make_gate(budget_config(daily_budget=8)).check(5)
        assert decision is not None
        assert decision.remaining_before == 8
        assert decision.remaining_after == 3
        assert decision.would_exceed is False

    def test_exact_budget_allowed(self, budget_config: Callable, write_state: Callable) -> None:
        write_state(TODAY, 3)
        decision = make_gate(budget_config(daily_budget=8)).check(5)
        assert decision is not None
        assert decision.remaining_after == 0

    def test_exceeding_raises(self, budget_config: Callable, write_state: Callable) -> None:
        write_state(TODAY, 6)
        with pytest.raises(BudgetExceededError, match="6/8 used") as exc_info:
            make_gate(budget_config(daily_budget=8)).check(5)
        decision = exc_info.value.decision
        assert decision.would_exceed is True
        assert decision.remaining_before == 2
        assert decision.remaining_after == 0

    def test_check_never_writes(self, budget_config: Callable, state_path: Path) -> None:
        make_gate(budget_config(daily_budget=8)).check(5)
        assert not state_path.exists()

    @pytest.mark.parametrize("planned", [0, -3])
    def test_nothing_planned_is_allowed_even_when_exhausted(
        self, budget_config: Callable, write_state: Callable, planned: int
    ) -> None:
        write_state(TODAY, 50)
        decision = make_gate(budget_config(daily_budget=8)).check(planned)
        assert decision is not None
        assert decision.planned_requests == 0


class TestConsume:
    """Tests for BudgetGate.consume."""

    def test_consume_persists_usage(self, budget_config: Callable, state_path: Path) -> None:
        gate = make_gate(budget_config(daily_budget=8))
        decision = gate.consume(5)
        assert decision is not None
        assert decision.remaining_after == 3
        assert read_state(state_path) == {"date": TODAY, "used": 5}

    def test_consume_accumulates(self, budget_config: Callable, state_path: Path) -> None:
        gate = make_gate(budget_config(daily_budget=8))
        gate.consume(2)
        gate.consume(3)
        assert read_state(state_path)["used"] == 5

    def test_blocked_consume_leaves_state_unchanged(
        self, budget_config: Callable, write_state: Callable, state_path: Path
    ) -> None:
        write_state(TODAY, 6)
        before = state_path.read_text()
        with pytest.raises(BudgetExceededError):
            make_gate(budget_config(daily_budget=8)).consume(5)
        assert state_path.read_text() == before

    def test_consume_after_rollover_starts_fresh(
        self, budget_config: Callable, write_state: Callable, state_path: Path
    ) -> None:
        write_state(YESTERDAY, 8)
        make_gate(budget_config(daily_budget=8)).consume(4)
        assert read_state(state_path) == {"date": TODAY, "used": 4}

    def test_consume_nothing_writes_nothing(
        self, budget_config: Callable, state_path: Path
    ) -> None:
        make_gate(budget_config()).consume(0)
        assert not state_path.exists()

    def test_serialized_consume_releases_state_lock(
        self, budget_config: Callable, state_path: Path
    ) -> None:
        gate = make_gate(budget_config(daily_budget=8, serialize_consume=True))
        gate.consume(2)
        gate.consume(2)
        assert read_state(state_path)["used"] == 4
        assert not state_path.with_name(state_path.name + ".lock").exists()

    def test_serialized_consume_releases_lock_when_blocked(
        self, budget_config: Callable, state_path: Path
    ) -> None:
        gate = make_gate(budget_config(daily_budget=2, serialize_consume=True))
        with pytest.raises(BudgetExceededError):
            gate.consume(3)
        assert not state_path.with_name(state_path.name + ".lock").exists()

    @settings(max_examples=50, deadline=None)
    @given(
        budget=st.integers(min_value=1, max_value=30),
        planned=st.lists(st.integers(min_value=1, max_value=10), min_size=1, max_size=8),
    )
    def test_consume_is_additive_until_budget(self, budget: int, planned: list[int]) -> None:
        """used equals the sum of accepted consumes; the first overflow changes nothing."""
        with tempfile.TemporaryDirectory() as tmpdir:
            state_path = Path(tmpdir) / "state.json"
            gate = make_gate(BudgetConfig(state_path=state_path, daily_budget=budget))

            used = 0
            for p in planned:
                if used + p > budget:
                    with pytest.raises(BudgetExceededError):
                        gate.consume(p)
                    break
                gate.consume(p)
                used += p

            assert gate.load_state().used == used


class TestReport:
    """Tests for BudgetGate.report."""

    def test_report_remaining(self, budget_config: Callable, write_state: Callable) -> None:
        write_state(TODAY, 6)
        decision = make_gate(budget_config(daily_budget=8)).report()
        assert decision is not None
        assert decision.remaining_before == 2

    def test_report_clamps_remaining_at_zero(
        self, budget_config: Callable, write_state: Callable
    ) -> None:
        write_state(TODAY, 12)
        decision = make_gate(budget_config(daily_budget=8)).report(3)
        assert decision is not None
        assert decision.remaining_before == 0
        assert decision.would_exceed is True

    @settings(max_examples=30, deadline=None)
    @given(
        day=st.sampled_from([TODAY, YESTERDAY]),
        used=st.integers(min_value=0, max_value=100),
        planned=st.integers(min_value=-5, max_value=100),
    )
    def test_report_never_mutates(self, day: str, used: int, planned: int) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            state_path = Path(tmpdir) / "state.json"
            state_path.write_text(json.dumps({"date": day, "used": used}))
            before = state_path.read_bytes()

            make_gate(BudgetConfig(state_path=state_path, daily_budget=8)).report(planned)

            assert state_path.read_bytes() == before


class TestDisabled:
    """A disabled gate never touches state."""

    def test_all_verbs_are_noops(self, budget_config: Callable, state_path: Path) -> None:
        state_path.parent.mkdir(parents=True)
        state_path.write_text("corrupt")
        gate = make_gate(budget_config(disabled=True, daily_budget=1))

        assert gate.check(100) is None
        assert gate.consume(100) is None
        assert gate.report() is None
        assert state_path.read_text() == "corrupt"


class TestExampleScenario:
    """Budget 8, five marked cases at one request each."""

    def test_check_then_blocked(self, budget_config: Callable, write_state: Callable) -> None:
        gate = make_gate(budget_config(rpd_limit=20, reserve=12, requests_per_case=1))
        assert gate.budget == 8

        decision = gate.check(5)
        assert decision is not None
        assert decision.remaining_after == 3

        write_state(TODAY, 6)
        with pytest.raises(BudgetExceededError):
            gate.check(5)
