"""Seed coordination commands: seed and seed-clear."""

import typer

from ..config import PreflightConfig
from ..core import RunCoordinator
from ..errors import CommandError, LockTimeoutError
from ..output import get_output_context
from ..services import run_command


class SeedCommandError(Exception):
    """Seed command exited with a non-zero status."""

    def __init__(self, returncode: int) -> None:
        self.returncode = returncode
        super().__init__(f"Seed command failed with exit code {returncode}")


def seed(
    typer_ctx: typer.Context,
    command: list[str] = typer.Argument(..., help="Seed command to run (after --)"),
    run_id: str | None = typer.Option(
        None, "--run-id", "-r", help="Run identity (defaults to SEED_RUN_ID or 'local')"
    ),
) -> None:
    """Run a seed command at most once per run, across parallel workers."""
    ctx = get_output_context()
    config: PreflightConfig = typer_ctx.obj
    run_id = run_id or config.seed.run_id

    if not config.seed.enabled:
        ctx.warn("Seeding requested, but SEED_DATA=false so the seed is skipped.")
        return

    def action() -> None:
        code = run_command(command)
        if code:
            raise SeedCommandError(code)

    coordinator = RunCoordinator.from_config(config.seed)
    try:
        ran = coordinator.ensure_once(run_id, action)
    except ValueError as e:
        ctx.error(str(e))
        raise typer.Exit(1) from None
    except LockTimeoutError as e:
        ctx.error(str(e), {"run_id": run_id, "lock_path": str(e.lock_path)})
        raise typer.Exit(1) from None
    except (SeedCommandError, CommandError) as e:
        ctx.error(str(e), {"run_id": run_id})
        raise typer.Exit(1) from None

    if ran:
        ctx.success(f"Seeded run {run_id}", {"run_id": run_id, "ran": True})
    else:
        ctx.success(f"Run {run_id} already seeded", {"run_id": run_id, "ran": False})


def seed_clear(
    typer_ctx: typer.Context,
    run_id: str = typer.Argument(..., help="Run identity whose lock to remove"),
    done: bool = typer.Option(False, "--done", help="Also remove the completion marker"),
) -> None:
    """Remove an orphaned seed lock left by a crashed worker."""
    ctx = get_output_context()
    config: PreflightConfig = typer_ctx.obj
    coordinator = RunCoordinator.from_config(config.seed)
    try:
        removed = coordinator.clear(run_id, include_marker=done)
    except ValueError as e:
        ctx.error(str(e))
        raise typer.Exit(1) from None

    if not removed:
        ctx.print(f"Nothing to clear for run {run_id}")
    for path in removed:
        ctx.print(f"Removed {path}")
    ctx.print_json({"run_id": run_id, "removed": [str(p) for p in removed]})
