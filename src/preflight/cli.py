"""Preflight CLI: pre-flight guards for parallel and AI-backed test runs."""

from pathlib import Path

import typer

from preflight import __version__

from .commands import budget, estimate, init, live_run, seed, seed_clear
from .config import load_config
from .logging import configure_logging
from .output import OutputContext, set_output_context


def _version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"preflight {__version__}")
        raise typer.Exit()


app = typer.Typer(
    name="preflight",
    help="Once-per-run seeding and daily AI request budgets for test runs",
    no_args_is_help=True,
)


@app.callback()
def main(
    typer_ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
    verbose: int = typer.Option(
        0,
        "--verbose",
        "-v",
        count=True,
        help="Increase verbosity (-v, -vv)",
    ),
    quiet: bool = typer.Option(
        False,
        "--quiet",
        "-q",
        help="Suppress non-error output",
    ),
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Output in JSON format for automation",
    ),
    no_color: bool = typer.Option(
        False,
        "--no-color",
        help="Disable colored output",
    ),
    config_path: Path | None = typer.Option(
        None,
        "--config",
        "-c",
        help="Config file (defaults to ./preflight.toml)",
    ),
) -> None:
    """Preflight - guards run before parallel and live-AI test suites."""
    console = configure_logging(
        verbosity=verbose,
        quiet=quiet,
        no_color=no_color,
    )
    ctx = OutputContext(console=console, json_mode=json_output, quiet=quiet)
    set_output_context(ctx)

    try:
        typer_ctx.obj = load_config(config_path)
    except ValueError as e:
        ctx.error(f"Invalid configuration: {e}")
        raise typer.Exit(1) from None


app.command("budget")(budget)
app.command("live-run")(live_run)
app.command("estimate")(estimate)
app.command("seed")(seed)
app.command("seed-clear")(seed_clear)
app.command("init")(init)


if __name__ == "__main__":
    app()
