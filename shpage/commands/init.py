"""Init command for shpage."""

from pathlib import Path

import typer

from shpage.lib.config import CONFIG_FILENAME, default_config_data, save_config
from shpage.lib.errors import ShpageError, handle_error


class AlreadyInitializedError(ShpageError):
    """Raised when shpage.yaml already exists."""

    def __init__(self, path: Path) -> None:
        super().__init__(
            f"{path} already exists (use --force to overwrite)", exit_code=1
        )


def init_command(force: bool = False, cwd: Path | None = None) -> None:
    """Write a default shpage.yaml in the current directory."""
    try:
        config_path = (cwd or Path.cwd()) / CONFIG_FILENAME
        if config_path.exists() and not force:
            raise AlreadyInitializedError(config_path)

        save_config(default_config_data(), config_path)
        typer.echo(f"Created {CONFIG_FILENAME}")
    except Exception as e:
        handle_error(e)
