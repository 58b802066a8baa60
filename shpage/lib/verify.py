"""Read an assembled polyglot back into its page and installer."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from pydantic import ValidationError

from .assembler import COMMENT_OPENER, assemble
from .config import AssembleOptions
from .errors import MalformedPolyglotError, ShpageError
from .frame import COMMENT_CLOSER

logger = logging.getLogger(__name__)

HEREDOC_OPENER_RE = re.compile(r"^: <<'([A-Za-z_][A-Za-z0-9_]*)'$")
OPENED_ANCHOR_RE = re.compile(r"</html\s*>" + re.escape(COMMENT_OPENER), re.IGNORECASE)


@dataclass
class PolyglotParts:
    """The pieces of an assembled document."""

    shebang: str
    delimiter: str
    html: str  # page as it was before assembly
    script: str  # installer body, without its own #! line
    comment_closed: bool


def split_polyglot(text: str) -> PolyglotParts:
    """Split a polyglot into its parts.

    The page is recovered exactly; the script comes back with a trailing
    newline even if the input lacked one.

    Raises:
        MalformedPolyglotError: If the framing is not what assemble() writes.
    """
    first_nl = text.find("\n")
    if first_nl == -1 or not text.startswith("#!"):
        raise MalformedPolyglotError("first line is not an interpreter line")
    shebang = text[:first_nl]
    if shebang.endswith("\r"):
        raise MalformedPolyglotError("interpreter line ends with a carriage return")

    second_nl = text.find("\n", first_nl + 1)
    if second_nl == -1:
        raise MalformedPolyglotError("missing heredoc opener on line 2")
    match = HEREDOC_OPENER_RE.match(text[first_nl + 1 : second_nl])
    if match is None:
        raise MalformedPolyglotError("line 2 is not a quoted heredoc opener")
    delimiter = match.group(1)

    # The shell stops at the first line equal to the delimiter
    terminator = f"\n{delimiter}\n"
    end = text.find(terminator, second_nl)
    if end == -1:
        raise MalformedPolyglotError(f"heredoc terminator {delimiter!r} not found")
    if end == second_nl:
        raise MalformedPolyglotError("heredoc is empty")
    page = text[second_nl + 1 : end]

    anchor = None
    for anchor in OPENED_ANCHOR_RE.finditer(page):
        pass
    if anchor is None:
        raise MalformedPolyglotError("no comment opener after </html>")
    cut = anchor.end() - len(COMMENT_OPENER)
    html = page[:cut] + page[anchor.end() :]

    rest = text[end + len(terminator) :]
    if not rest.startswith("\n"):
        raise MalformedPolyglotError("missing blank line after the heredoc")
    script = rest[1:]

    comment_closed = script.endswith(COMMENT_CLOSER + "\n")
    if comment_closed:
        script = script[: -len(COMMENT_CLOSER) - 1]

    return PolyglotParts(
        shebang=shebang,
        delimiter=delimiter,
        html=html,
        script=script,
        comment_closed=comment_closed,
    )


def verify_polyglot(text: str) -> PolyglotParts:
    """Split `text` and check that reassembling the parts reproduces it."""
    parts = split_polyglot(text)

    try:
        options = AssembleOptions(
            shebang=parts.shebang,
            delimiter_strategy="fixed",
            delimiter=parts.delimiter,
            close_comment=parts.comment_closed,
        )
    except ValidationError as e:
        raise MalformedPolyglotError(f"invalid framing: {e}") from e

    try:
        rebuilt = assemble(parts.html, parts.script, options)
    except ShpageError as e:
        raise MalformedPolyglotError(e.message) from e

    if rebuilt != text:
        raise MalformedPolyglotError("framing does not match the embedded parts")

    logger.debug("Verified polyglot with delimiter %r", parts.delimiter)
    return parts
