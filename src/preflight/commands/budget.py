"""Budget gate commands: budget check/consume/report and live-run."""

from pathlib import Path
from typing import Any

import typer
from rich.markup import escape

from ..config import BudgetConfig, PreflightConfig
from ..core import BudgetGate, estimate_usage
from ..errors import BudgetExceededError, CommandError
from ..models import BudgetDecision, UsageEstimate
from ..output import OutputContext, get_output_context
from ..services import run_command

MODES = ("check", "consume", "report")
USAGE = "Usage: preflight budget <check|consume|report>"
PREFIX = "ai-budget"


def _budget_config(
    config: PreflightConfig,
    corpus: Path | None,
    marker: str | None,
    state_file: Path | None,
) -> BudgetConfig:
    updates: dict[str, Any] = {}
    if corpus is not None:
        updates["corpus_root"] = corpus
    if marker is not None:
        updates["marker"] = marker
    if state_file is not None:
        updates["state_path"] = state_file
    return config.budget.model_copy(update=updates)


def _estimate(cfg: BudgetConfig, planned: int | None) -> UsageEstimate:
    override = planned if planned is not None else cfg.planned_override
    return estimate_usage(
        cfg.corpus_root,
        cfg.marker,
        cfg.requests_per_case,
        override=override,
        suffix=cfg.file_suffix,
    )


def _print_summary(
    ctx: OutputContext,
    mode: str,
    cfg: BudgetConfig,
    usage: UsageEstimate,
    decision: BudgetDecision,
) -> None:
    ctx.fields(
        PREFIX,
        {
            "mode": mode,
            "date_utc": decision.date.isoformat(),
            "live_cases": usage.live_cases,
            "planned_requests": decision.planned_requests,
            "used_today": decision.used_today,
            "automation_budget": (
                f"{decision.budget} (rpd_limit={cfg.rpd_limit}, reserve={cfg.reserve})"
            ),
        },
    )


def _json_payload(
    mode: str, usage: UsageEstimate, decision: BudgetDecision, allowed: bool
) -> dict[str, Any]:
    return {
        "mode": mode,
        "allowed": allowed,
        "live_cases": usage.live_cases,
        **decision.model_dump(mode="json"),
    }


def run_gate(ctx: OutputContext, gate: BudgetGate, mode: str, usage: UsageEstimate) -> int:
    """Run one gate verb and print the outcome.

    Returns:
        Exit code: 0 on success or no-op, 1 if the budget would be exceeded
    """
    planned = usage.planned_requests
    try:
        if mode == "report":
            decision = gate.report(planned)
        elif mode == "check":
            decision = gate.check(planned)
        else:
            decision = gate.consume(planned)
    except BudgetExceededError as e:
        _print_summary(ctx, mode, gate.config, usage, e.decision)
        verb = "Consume blocked" if mode == "consume" else "Blocked"
        ctx.error(f"{verb}: {e}", _json_payload(mode, usage, e.decision, allowed=False))
        return 1

    if decision is None:
        ctx.success("Budget gate disabled (AI_BUDGET_DISABLE).", {"mode": mode, "disabled": True})
        return 0

    _print_summary(ctx, mode, gate.config, usage, decision)
    ctx.print_json(_json_payload(mode, usage, decision, allowed=True))

    if mode == "report":
        ctx.fields(PREFIX, {"remaining_today": decision.remaining_before})
    elif decision.planned_requests <= 0:
        ctx.print(f"No {escape(gate.config.marker)} test cases found. Nothing to gate.")
    elif mode == "check":
        ctx.print(f"[green]OK:[/green] remaining_after_run={decision.remaining_after}")
    else:
        ctx.print(
            f"[green]Consumed {decision.planned_requests}.[/green] "
            f"remaining_today={decision.remaining_after}"
        )
    return 0


def budget(
    typer_ctx: typer.Context,
    mode: str = typer.Argument("check", help="check, consume or report"),
    planned: int | None = typer.Option(
        None, "--planned", "-p", help="Planned requests (skips the corpus scan)"
    ),
    corpus: Path | None = typer.Option(None, "--corpus", help="Test corpus root"),
    marker: str | None = typer.Option(None, "--marker", help="Live test marker tag"),
    state_file: Path | None = typer.Option(None, "--state-file", help="Budget state file"),
) -> None:
    """Check, consume or report the daily AI request budget."""
    ctx = get_output_context()
    mode = mode.lower()
    if mode not in MODES:
        ctx.error(USAGE)
        raise typer.Exit(1)

    cfg = _budget_config(typer_ctx.obj, corpus, marker, state_file)
    usage = _estimate(cfg, planned)
    code = run_gate(ctx, BudgetGate(cfg), mode, usage)
    if code:
        raise typer.Exit(code)


def live_run(
    typer_ctx: typer.Context,
    command: list[str] = typer.Argument(..., help="Test command to run (after --)"),
    planned: int | None = typer.Option(None, "--planned", "-p", help="Planned requests"),
) -> None:
    """Check the budget, run live tests, then consume the planned requests."""
    ctx = get_output_context()
    cfg = _budget_config(typer_ctx.obj, None, None, None)
    usage = _estimate(cfg, planned)
    gate = BudgetGate(cfg)

    code = run_gate(ctx, gate, "check", usage)
    if code:
        raise typer.Exit(code)

    try:
        test_code = run_command(command, extra_env={"RUN_AI_LIVE": "true"})
    except CommandError as e:
        ctx.error(str(e))
        raise typer.Exit(1) from None

    # Requests were spent whether or not the tests passed
    code = run_gate(ctx, gate, "consume", usage)
    if code:
        raise typer.Exit(code)
    if test_code:
        raise typer.Exit(test_code)
