"""Init command: write a preflight.toml template."""

from pathlib import Path

import typer

from ..config import write_config_template
from ..constants import CONFIG_FILE
from ..output import get_output_context


def init(
    path: Path = typer.Option(Path(CONFIG_FILE), "--path", help="Config file to write"),
    force: bool = typer.Option(False, "--force", "-f", help="Overwrite an existing file"),
) -> None:
    """Write a preflight.toml configuration template."""
    ctx = get_output_context()
    if path.exists() and not force:
        ctx.print(f"[yellow]Config already exists:[/yellow] {path}")
        return
    write_config_template(path)
    ctx.success(f"Created config template: {path}", {"path": str(path)})
