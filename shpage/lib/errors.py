"""Shared error handling for shpage."""

import sys
from typing import NoReturn

import typer


class ShpageError(Exception):
    """Base exception for shpage operations."""

    def __init__(self, message: str, exit_code: int = 1) -> None:
        self.message = message
        self.exit_code = exit_code
        super().__init__(message)


class EmptyInputError(ShpageError):
    """Raised when the page or the installer has nothing in it."""

    def __init__(self, what: str) -> None:
        self.what = what
        super().__init__(f"{what} is empty", exit_code=2)


class AlreadyAssembledError(ShpageError):
    """Raised when the HTML input already carries an interpreter line."""

    def __init__(self) -> None:
        super().__init__(
            "HTML input starts with '#!' and looks like an assembled artifact; "
            "rebuild the page before assembling",
            exit_code=2,
        )


class MissingAnchorError(ShpageError):
    """Raised when the HTML has no closing </html> tag to open the comment after."""

    def __init__(self) -> None:
        super().__init__("HTML input has no closing </html> tag", exit_code=3)


class CommentLeakError(ShpageError):
    """Raised when text after the anchor would close the HTML comment early."""

    def __init__(self, where: str, token: str) -> None:
        self.where = where
        self.token = token
        super().__init__(
            f"{where} contains {token!r}, which would end the HTML comment "
            "and show the installer on the page",
            exit_code=3,
        )


class DelimiterCollisionError(ShpageError):
    """Raised when a line of the input equals the heredoc delimiter."""

    def __init__(self, delimiter: str, where: str, lineno: int) -> None:
        self.delimiter = delimiter
        self.where = where
        self.lineno = lineno
        super().__init__(
            f"heredoc delimiter {delimiter!r} appears as line {lineno} of {where}; "
            "choose another delimiter or use the hash strategy",
            exit_code=4,
        )


class MalformedPolyglotError(ShpageError):
    """Raised when an artifact does not have the expected shell/HTML framing."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"not a valid polyglot document: {reason}", exit_code=5)


class AssemblyIOError(ShpageError):
    """Raised when an input cannot be read or the output cannot be written."""

    def __init__(self, message: str) -> None:
        super().__init__(message, exit_code=6)


class ConfigError(ShpageError):
    """Raised for a missing or invalid shpage.yaml."""

    def __init__(self, message: str) -> None:
        super().__init__(message, exit_code=7)


def exit_with_error(message: str, exit_code: int = 1) -> NoReturn:
    """Exit the program with an error message."""
    typer.echo(f"Error: {message}", err=True)
    sys.exit(exit_code)


def handle_error(error: Exception) -> NoReturn:
    """Handle and exit on shpage errors."""
    if isinstance(error, ShpageError):
        exit_with_error(error.message, error.exit_code)
    else:
        # Unexpected error
        typer.echo(f"Unexpected error: {error}", err=True)
        sys.exit(1)
