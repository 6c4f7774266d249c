"""Constants for preflight."""

# Seed coordination (seconds)
SEED_POLL_INTERVAL = 0.25
SEED_TIMEOUT = 120.0
SEED_NAMESPACE = "preflight-seed"
DEFAULT_RUN_ID = "local"

# Budget gate
DEFAULT_RPD_LIMIT = 20
DEFAULT_RPD_RESERVE = 12
DEFAULT_REQUESTS_PER_CASE = 1
DEFAULT_STATE_FILE = "test-results/.ai-live-budget.json"
STATE_LOCK_POLL_INTERVAL = 0.05
STATE_LOCK_TIMEOUT = 30.0

# Usage estimation
DEFAULT_CORPUS_ROOT = "tests"
DEFAULT_MARKER = "@ai-live"
DEFAULT_FILE_SUFFIX = ".spec.ts"

CONFIG_FILE = "preflight.toml"
