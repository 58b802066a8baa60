"""Build command - assemble the landing page and the installer."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer

from shpage.lib.assembler import assemble, build, read_input
from shpage.lib.config import load_project_config, merge_overrides
from shpage.lib.errors import handle_error

from .utils import console


def _absolute(path: Optional[Path]) -> Optional[Path]:
    return path.resolve() if path is not None else None


def build_command(
    html: Optional[Path] = None,
    script: Optional[Path] = None,
    output: Optional[Path] = None,
    shebang: Optional[str] = None,
    delimiter: Optional[str] = None,
    strategy: Optional[str] = None,
    close_comment: Optional[bool] = None,
    dry_run: bool = False,
    config_path: Optional[Path] = None,
) -> None:
    """Assemble the polyglot, write it (or print it with dry_run)."""
    try:
        config = load_project_config(config_path)
        config = merge_overrides(
            config,
            {
                "html": _absolute(html),
                "script": _absolute(script),
                "output": _absolute(output),
                "assemble": {
                    "shebang": shebang,
                    "delimiter": delimiter,
                    "delimiter_strategy": strategy,
                    "close_comment": close_comment,
                },
            },
        )

        if dry_run:
            text = assemble(
                read_input(config.html, "HTML document"),
                read_input(config.script, "shell script"),
                config.assemble,
            )
            typer.echo(text, nl=False)
            return

        out = build(config.html, config.script, config.output_path, config.assemble)
    except Exception as e:
        handle_error(e)

    console.print(f"[green]✓[/green] Created polyglot {out.name}")
    console.print("  curl <site> | sh  →  runs installer", style="dim")
    console.print("  open <site>       →  shows landing page", style="dim")
