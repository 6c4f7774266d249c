"""Shared test fixtures for preflight tests."""

from collections.abc import Callable
from pathlib import Path

import pytest
from typer.testing import CliRunner

from preflight.config import ENV_OVERRIDES, BudgetConfig


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Isolate tests from preflight environment variables and cwd config."""
    for var in [*ENV_OVERRIDES, "AI_BUDGET_DISABLE", "SEED_DATA"]:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def runner() -> CliRunner:
    """Create CLI test runner."""
    return CliRunner()


@pytest.fixture
def lock_dir(tmp_path: Path) -> Path:
    """Directory for seed locks and completion markers."""
    return tmp_path / "locks"


@pytest.fixture
def state_path(tmp_path: Path) -> Path:
    """Budget state file location (parent not yet created)."""
    return tmp_path / "results" / ".ai-live-budget.json"


@pytest.fixture
def budget_config(state_path: Path) -> Callable[..., BudgetConfig]:
    """Factory for budget configs writing to the temporary state file."""

    def make(**overrides) -> BudgetConfig:
        return BudgetConfig(state_path=state_path, **overrides)

    return make


@pytest.fixture
def write_state(state_path: Path) -> Callable[[str, object], None]:
    """Write a raw budget state document."""

    def write(day: str, used: object) -> None:
        state_path.parent.mkdir(parents=True, exist_ok=True)
        state_path.write_text(f'{{"date": "{day}", "used": {used}}}\n')

    return write


@pytest.fixture
def corpus(tmp_path: Path) -> Path:
    """Test corpus with five @ai-live cases spread across nested files."""
    root = tmp_path / "tests"
    (root / "api").mkdir(parents=True)
    (root / "ui" / "chatbot").mkdir(parents=True)

    (root / "api" / "chat.ai-live.spec.ts").write_text(
        """
import { test, expect } from '@playwright/test';

test.describe('chat api', () => {
  test('answers product questions @ai-live', async ({ request }) => {});
  test("refuses off-topic prompts @ai-live @slow", async () => {});
  test('mocked reply stays stable', async () => {});
});
"""
    )
    (root / "ui" / "chatbot" / "gemini-chatbot.spec.ts").write_text(
        """
test.skip(`streams a live answer @ai-live`, async ({ page }) => {});
test.only(
  'opens the widget @ai-live',
  async ({ page }) => {}
);
test.fixme('keeps history @ai-live', async () => {});
test('closes the widget', async () => {});
"""
    )
    # Wrong suffix: never scanned
    (root / "ui" / "notes.ts").write_text("test('ignored @ai-live', () => {});\n")
    return root
