"""Check command - verify an assembled polyglot."""

from __future__ import annotations

from pathlib import Path

from rich.table import Table

from shpage.lib.assembler import read_input
from shpage.lib.errors import handle_error
from shpage.lib.verify import verify_polyglot

from .utils import console


def check_command(path: Path) -> None:
    """Verify that `path` is a well-formed page/installer polyglot."""
    try:
        parts = verify_polyglot(read_input(path, "polyglot"))
    except Exception as e:
        handle_error(e)

    table = Table(show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("Interpreter", parts.shebang)
    table.add_row("Delimiter", parts.delimiter)
    table.add_row("HTML", f"{len(parts.html.encode('utf-8'))} bytes")
    script_lines = parts.script.count("\n")
    table.add_row(
        "Script",
        f"{len(parts.script.encode('utf-8'))} bytes, {script_lines} lines",
    )
    table.add_row("Comment closed", "yes" if parts.comment_closed else "no")

    console.print(table)
    console.print(f"[green]✓[/green] {path} is a valid polyglot")
