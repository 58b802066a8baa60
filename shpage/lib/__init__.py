"""shpage library - polyglot assembly, verification and configuration."""

from .assembler import assemble, build
from .config import AssembleOptions, ShpageConfig
from .errors import ShpageError
from .verify import PolyglotParts, split_polyglot, verify_polyglot

__all__ = [
    "assemble",
    "build",
    "AssembleOptions",
    "ShpageConfig",
    "ShpageError",
    "PolyglotParts",
    "split_polyglot",
    "verify_polyglot",
]
