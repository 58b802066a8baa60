"""Configuration management for shpage.

Schema of shpage.yaml:
- html: the built landing page (relative to the config file)
- script: the installer script to embed
- output: where the polyglot is written (defaults to html, replacing it)
- assemble: framing options
  - shebang: interpreter line written at the top of the output
  - delimiter_strategy: "fixed" or "hash"
  - delimiter: heredoc sentinel used by the fixed strategy
  - close_comment: end the output with a "# -->" line
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from .errors import ConfigError

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "shpage.yaml"

DEFAULT_SHEBANG = "#!/bin/sh"
DEFAULT_DELIMITER = "SHPAGE_HTML_EOF"
DEFAULT_HTML = Path("dist/index.html")
DEFAULT_SCRIPT = Path("public/install.sh")


class AssembleOptions(BaseModel):
    """How the page and the installer are framed together."""

    model_config = {"extra": "forbid"}

    shebang: str = Field(
        default=DEFAULT_SHEBANG, description="Interpreter line for the output"
    )
    delimiter_strategy: Literal["fixed", "hash"] = Field(
        default="fixed", description="How the heredoc delimiter is chosen"
    )
    delimiter: str = Field(
        default=DEFAULT_DELIMITER,
        pattern=r"^[A-Za-z_][A-Za-z0-9_]*$",
        description="Heredoc sentinel for the fixed strategy",
    )
    close_comment: bool = Field(
        default=True, description="Close the HTML comment with a '# -->' line"
    )

    @field_validator("shebang")
    @classmethod
    def check_shebang(cls, value: str) -> str:
        if not value.startswith("#!"):
            raise ValueError("shebang must start with '#!'")
        if "\n" in value or "\r" in value:
            raise ValueError("shebang must be a single line")
        return value


class ShpageConfig(BaseModel):
    """Main shpage.yaml configuration."""

    model_config = {"extra": "forbid"}

    html: Path = Field(default=DEFAULT_HTML, description="Built HTML page")
    script: Path = Field(default=DEFAULT_SCRIPT, description="Installer script")
    output: Path | None = Field(
        default=None, description="Output path (defaults to the html path)"
    )
    assemble: AssembleOptions = Field(default_factory=AssembleOptions)

    @property
    def output_path(self) -> Path:
        return self.output or self.html

    def resolve_paths(self, base: Path) -> "ShpageConfig":
        """Return a copy with relative paths anchored at `base`."""

        def _anchor(p: Path | None) -> Path | None:
            if p is None:
                return None
            p = p.expanduser()
            return p if p.is_absolute() else base / p

        return self.model_copy(
            update={
                "html": _anchor(self.html),
                "script": _anchor(self.script),
                "output": _anchor(self.output),
            }
        )


def find_config_file(start: Path | None = None) -> Path | None:
    """Find shpage.yaml in `start` (or cwd) or any parent."""
    cur = (start or Path.cwd()).resolve()
    for parent in [cur] + list(cur.parents):
        candidate = parent / CONFIG_FILENAME
        if candidate.exists():
            return candidate
    return None


def load_config(path: Path) -> ShpageConfig:
    """Load shpage.yaml from path, resolving paths against its directory."""
    if not path.exists():
        raise ConfigError(f"Config file not found: {path}")

    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"{path} must contain a mapping at the top level")

    try:
        config = ShpageConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid config in {path}: {e}") from e

    return config.resolve_paths(path.resolve().parent)


def load_project_config(
    config_path: Path | None = None, cwd: Path | None = None
) -> ShpageConfig:
    """Load the explicit config, the nearest shpage.yaml, or the defaults."""
    cwd = cwd or Path.cwd()
    if config_path is None:
        config_path = find_config_file(cwd)

    if config_path is None:
        logger.info("No %s found, using defaults relative to %s", CONFIG_FILENAME, cwd)
        return ShpageConfig().resolve_paths(cwd)

    logger.info("Using config %s", config_path)
    return load_config(config_path)


def merge_overrides(base: ShpageConfig, overrides: dict[str, Any]) -> ShpageConfig:
    """Merge command-line overrides into the config.

    Top-level keys replace values; the `assemble` mapping is merged key by key.
    None values are ignored so unset CLI options keep the configured value.
    """
    data = base.model_dump()

    for key, value in overrides.items():
        if value is None:
            continue
        if key == "assemble":
            data["assemble"].update(
                {k: v for k, v in value.items() if v is not None}
            )
        else:
            data[key] = value

    try:
        return ShpageConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid option: {e}") from e


def default_config_data() -> dict[str, Any]:
    return {
        "html": str(DEFAULT_HTML),
        "script": str(DEFAULT_SCRIPT),
        "output": str(DEFAULT_HTML),
        "assemble": AssembleOptions().model_dump(),
    }


def save_config(data: dict[str, Any], path: Path) -> Path:
    """Write a config mapping to shpage.yaml."""
    path.parent.mkdir(parents=True, exist_ok=True)

    with open(path, "w", encoding="utf-8") as f:
        yaml.safe_dump(data, f, sort_keys=False, default_flow_style=False)
    return path
