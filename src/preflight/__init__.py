"""Preflight: once-per-run seeding and daily AI request budgets for test runs."""

__version__ = "0.1.0"
