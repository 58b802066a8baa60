"""CLI commands"""

from .build import build_command
from .check import check_command
from .init import init_command

__all__ = ["build_command", "check_command", "init_command"]
