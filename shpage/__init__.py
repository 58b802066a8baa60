"""shpage - build a landing page that is also its own install script."""

from ._version import __version__
from .lib import assemble, build, split_polyglot, verify_polyglot

__all__ = [
    "__version__",
    "assemble",
    "build",
    "split_polyglot",
    "verify_polyglot",
]
