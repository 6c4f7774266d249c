"""Estimate command: count live-tagged tests in the corpus."""

from pathlib import Path

import typer

from ..config import PreflightConfig
from ..core import estimate_usage
from ..output import get_output_context


def estimate(
    typer_ctx: typer.Context,
    corpus: Path | None = typer.Option(None, "--corpus", help="Test corpus root"),
    marker: str | None = typer.Option(None, "--marker", help="Live test marker tag"),
) -> None:
    """Show how many live requests the test corpus would plan."""
    ctx = get_output_context()
    config: PreflightConfig = typer_ctx.obj
    cfg = config.budget

    usage = estimate_usage(
        corpus or cfg.corpus_root,
        marker or cfg.marker,
        cfg.requests_per_case,
        override=cfg.planned_override,
        suffix=cfg.file_suffix,
    )
    ctx.fields(
        "ai-budget",
        {
            "live_cases": usage.live_cases,
            "requests_per_case": usage.requests_per_case,
            "planned_requests": usage.planned_requests,
        },
    )
    if usage.overridden:
        ctx.print("Planned requests overridden by AI_LIVE_PLANNED_REQUESTS")
    ctx.print_json(usage.model_dump())
