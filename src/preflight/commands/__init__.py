"""CLI command modules for preflight."""

from .budget import budget, live_run
from .estimate import estimate
from .init import init
from .seed import seed, seed_clear

__all__ = [
    "budget",
    "estimate",
    "init",
    "live_run",
    "seed",
    "seed_clear",
]
