"""shpage CLI Main Entry Point

shpage - one URL, two audiences
Turns a built landing page into a file that is also the site's install script.

Usage:
    shpage build                   # dist/index.html + public/install.sh -> dist/index.html
    shpage build --dry-run         # Print the polyglot instead of writing it
    shpage build --strategy hash   # Derive the heredoc delimiter from the content
    shpage check dist/index.html   # Verify an assembled file
    shpage init                    # Write a default shpage.yaml
    shpage -V                      # Show version
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer

from ._version import __version__
from .commands import build_command, check_command, init_command
from .commands.utils import setup_logging

typer_app = typer.Typer(
    help="Assemble a landing page and an installer into one polyglot file.",
    no_args_is_help=True,
)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"shpage {__version__}")
        raise typer.Exit()


@typer_app.callback()
def main(
    version: bool = typer.Option(
        False,
        "-V",
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
) -> None:
    """shpage - serve one file to browsers and to `curl | sh`."""


@typer_app.command()
def build(
    html: Optional[Path] = typer.Option(
        None, "--html", help="Built HTML page (default: dist/index.html)."
    ),
    script: Optional[Path] = typer.Option(
        None, "--script", help="Installer script (default: public/install.sh)."
    ),
    output: Optional[Path] = typer.Option(
        None, "-o", "--output", help="Output file (default: the HTML page)."
    ),
    shebang: Optional[str] = typer.Option(
        None, "--shebang", help="Interpreter line for the output."
    ),
    delimiter: Optional[str] = typer.Option(
        None, "--delimiter", help="Heredoc delimiter for the fixed strategy."
    ),
    strategy: Optional[str] = typer.Option(
        None, "--strategy", help="Delimiter strategy: fixed or hash."
    ),
    close_comment: Optional[bool] = typer.Option(
        None,
        "--close-comment/--no-close-comment",
        help="End the output with a '# -->' line.",
    ),
    dry_run: bool = typer.Option(
        False, "--dry-run", help="Print the polyglot without writing it."
    ),
    config: Optional[Path] = typer.Option(
        None, "-c", "--config", help="Path to shpage.yaml."
    ),
    verbose: bool = typer.Option(False, "-v", "--verbose", help="Verbose logging."),
) -> None:
    """Assemble the landing page and the installer into one file."""
    setup_logging(verbose)
    build_command(
        html=html,
        script=script,
        output=output,
        shebang=shebang,
        delimiter=delimiter,
        strategy=strategy,
        close_comment=close_comment,
        dry_run=dry_run,
        config_path=config,
    )


@typer_app.command()
def check(
    path: Path = typer.Argument(..., help="Assembled file to verify."),
    verbose: bool = typer.Option(False, "-v", "--verbose", help="Verbose logging."),
) -> None:
    """Verify that a file is a well-formed page/installer polyglot."""
    setup_logging(verbose)
    check_command(path)


@typer_app.command()
def init(
    force: bool = typer.Option(
        False, "--force", "-f", help="Overwrite an existing shpage.yaml."
    ),
) -> None:
    """Write a default shpage.yaml in the current directory."""
    setup_logging()
    init_command(force=force)


def app() -> None:
    """Entry point for the CLI."""
    typer_app()


if __name__ == "__main__":
    app()
