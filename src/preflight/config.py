"""Configuration management for preflight."""

import os
import tempfile
import tomllib
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import tomli_w
from pydantic import BaseModel, Field, field_validator

from .constants import (
    CONFIG_FILE,
    DEFAULT_CORPUS_ROOT,
    DEFAULT_FILE_SUFFIX,
    DEFAULT_MARKER,
    DEFAULT_REQUESTS_PER_CASE,
    DEFAULT_RPD_LIMIT,
    DEFAULT_RPD_RESERVE,
    DEFAULT_RUN_ID,
    DEFAULT_STATE_FILE,
    SEED_NAMESPACE,
    SEED_POLL_INTERVAL,
    SEED_TIMEOUT,
)

TRUTHY = {"1", "true", "yes", "y", "on"}


def _positive_int(value: Any) -> int | None:
    """Parse value as a positive integer, or None if it is not one."""
    if value is None or isinstance(value, bool):
        return None
    try:
        parsed = int(str(value).strip(), 10)
    except ValueError:
        return None
    return parsed if parsed > 0 else None


def _to_bool(value: str | None, fallback: bool = False) -> bool:
    if value is None or value == "":
        return fallback
    return value.strip().lower() in TRUTHY


class BudgetConfig(BaseModel):
    """Configuration for the daily AI request budget gate.

    Non-positive or unparseable counts fall back to their defaults, so the
    budget can never be configured negative.
    """

    disabled: bool = False
    rpd_limit: int = DEFAULT_RPD_LIMIT  # Provider requests-per-day hard limit
    reserve: int = DEFAULT_RPD_RESERVE  # Carved out for manual use
    daily_budget: int | None = None  # Overrides rpd_limit - reserve
    requests_per_case: int = DEFAULT_REQUESTS_PER_CASE
    planned_override: int | None = None  # Skips the corpus scan when set
    state_path: Path = Path(DEFAULT_STATE_FILE)
    corpus_root: Path = Path(DEFAULT_CORPUS_ROOT)
    marker: str = DEFAULT_MARKER
    file_suffix: str = DEFAULT_FILE_SUFFIX
    serialize_consume: bool = Field(
        default=False,
        description="Guard consume's read-modify-write with an exclusive claim",
    )

    @field_validator("rpd_limit", mode="before")
    @classmethod
    def default_rpd_limit(cls, value: Any) -> int:
        return _positive_int(value) or DEFAULT_RPD_LIMIT

    @field_validator("reserve", mode="before")
    @classmethod
    def default_reserve(cls, value: Any) -> int:
        return _positive_int(value) or DEFAULT_RPD_RESERVE

    @field_validator("requests_per_case", mode="before")
    @classmethod
    def default_requests_per_case(cls, value: Any) -> int:
        return _positive_int(value) or DEFAULT_REQUESTS_PER_CASE

    @field_validator("daily_budget", "planned_override", mode="before")
    @classmethod
    def optional_positive(cls, value: Any) -> int | None:
        return _positive_int(value)

    @property
    def automation_budget(self) -> int:
        """Daily budget available to automation."""
        if self.daily_budget is not None:
            return self.daily_budget
        return max(1, self.rpd_limit - self.reserve)


class SeedConfig(BaseModel):
    """Configuration for once-per-run seed coordination."""

    enabled: bool = True
    run_id: str = DEFAULT_RUN_ID
    namespace: str = SEED_NAMESPACE
    lock_dir: Path | None = None  # Defaults to {tempdir}/{namespace}
    poll_interval: float = Field(default=SEED_POLL_INTERVAL, gt=0)
    timeout: float = Field(default=SEED_TIMEOUT, gt=0)
    stale_after: float | None = Field(
        default=None,
        gt=0,
        description="Break lock files older than this many seconds. Unset never breaks.",
    )

    @field_validator("run_id")
    @classmethod
    def validate_run_id(cls, value: str) -> str:
        """Reject run IDs that cannot name a file in the lock directory."""
        value = value.strip()
        if not value:
            raise ValueError("run_id must not be empty")
        if "/" in value or "\\" in value or value in {".", ".."}:
            raise ValueError(f"run_id must not contain path separators: {value!r}")
        return value

    @property
    def effective_lock_dir(self) -> Path:
        """Directory holding lock files and completion markers."""
        if self.lock_dir is not None:
            return self.lock_dir
        return Path(tempfile.gettempdir()) / self.namespace


class PreflightConfig(BaseModel):
    """Root configuration for preflight."""

    budget: BudgetConfig = Field(default_factory=BudgetConfig)
    seed: SeedConfig = Field(default_factory=SeedConfig)


# Environment variable -> (section, field)
ENV_OVERRIDES: dict[str, tuple[str, str]] = {
    "AI_RPD_LIMIT": ("budget", "rpd_limit"),
    "AI_RPD_RESERVE": ("budget", "reserve"),
    "AI_AUTOMATION_DAILY_BUDGET": ("budget", "daily_budget"),
    "AI_LIVE_REQUESTS_PER_CASE": ("budget", "requests_per_case"),
    "AI_LIVE_PLANNED_REQUESTS": ("budget", "planned_override"),
    "AI_BUDGET_STATE_FILE": ("budget", "state_path"),
    "SEED_RUN_ID": ("seed", "run_id"),
    "SEED_LOCK_DIR": ("seed", "lock_dir"),
    "SEED_TIMEOUT": ("seed", "timeout"),
    "SEED_STALE_AFTER": ("seed", "stale_after"),
}


def apply_env_overrides(data: dict[str, Any], environ: Mapping[str, str]) -> dict[str, Any]:
    """Overlay environment variables onto raw config data.

    Args:
        data: Raw config mapping (as loaded from TOML)
        environ: Environment to read from

    Returns:
        New mapping with overrides applied
    """
    merged: dict[str, Any] = {
        "budget": dict(data.get("budget", {})),
        "seed": dict(data.get("seed", {})),
    }

    for var, (section, field) in ENV_OVERRIDES.items():
        value = environ.get(var)
        if value:
            merged[section][field] = value

    if "AI_BUDGET_DISABLE" in environ:
        merged["budget"]["disabled"] = _to_bool(environ["AI_BUDGET_DISABLE"])
    if "SEED_DATA" in environ:
        # Seeding stays on unless explicitly turned off
        merged["seed"]["enabled"] = environ["SEED_DATA"].strip().lower() != "false"

    return merged


def load_config(
    config_path: Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> PreflightConfig:
    """Load config from preflight.toml, then apply environment overrides.

    Args:
        config_path: Path to config file (defaults to ./preflight.toml)
        environ: Environment mapping (defaults to os.environ)

    Returns:
        Loaded configuration, or defaults if the config file doesn't exist
    """
    if config_path is None:
        config_path = Path.cwd() / CONFIG_FILE
    if environ is None:
        environ = os.environ

    data: dict[str, Any] = {}
    if config_path.exists():
        with open(config_path, "rb") as f:
            data = tomllib.load(f)

    return PreflightConfig.model_validate(apply_env_overrides(data, environ))


def write_config_template(config_path: Path) -> Path:
    """Write default preflight.toml template.

    Args:
        config_path: Destination file

    Returns:
        Path to the written config file
    """
    template = {
        "budget": {
            "disabled": False,
            "rpd_limit": DEFAULT_RPD_LIMIT,
            "reserve": DEFAULT_RPD_RESERVE,
            "requests_per_case": DEFAULT_REQUESTS_PER_CASE,
            "state_path": DEFAULT_STATE_FILE,
            "corpus_root": DEFAULT_CORPUS_ROOT,
            "marker": DEFAULT_MARKER,
            "file_suffix": DEFAULT_FILE_SUFFIX,
            "serialize_consume": False,
        },
        "seed": {
            "enabled": True,
            "run_id": DEFAULT_RUN_ID,
            "namespace": SEED_NAMESPACE,
            "poll_interval": SEED_POLL_INTERVAL,
            "timeout": SEED_TIMEOUT,
        },
    }
    config_path.parent.mkdir(parents=True, exist_ok=True)
    with open(config_path, "wb") as f:
        tomli_w.dump(template, f)
    return config_path
