"""Frame - lays out the shell side of the polyglot around the page.

The output is rendered from a small Jinja2 template:

    #!/bin/sh
    : <<'DELIM'
    <html>...</html><!--
    DELIM

    ...installer...
    # -->

`:` is the shell no-op, so the quoted heredoc swallows the whole page without
expansion or command substitution. The browser sees the page, then a comment
that runs to the end of the file.
"""

from __future__ import annotations

import hashlib
import logging
from typing import Callable, Optional

from jinja2 import Environment, StrictUndefined

from .config import AssembleOptions
from .errors import DelimiterCollisionError

logger = logging.getLogger(__name__)

COMMENT_CLOSER = "# -->"

FRAME_TEMPLATE = (
    "{{ shebang }}\n"
    ": <<'{{ delimiter }}'\n"
    "{{ html }}\n"
    "{{ delimiter }}\n"
    "\n"
    "{{ script }}"
    "{% if close_comment %}{{ comment_closer }}\n{% endif %}"
)


def get_frame_env() -> Environment:
    """Create the Jinja2 environment used to render frames.

    Autoescaping stays off and trailing newlines are kept so page and script
    bytes pass through untouched.
    """
    return Environment(
        autoescape=False,
        keep_trailing_newline=True,
        undefined=StrictUndefined,
    )


def strip_interpreter_line(script: str) -> str:
    """Drop the script's own `#!` line (and a leading BOM), if it has one."""
    if script.startswith("\ufeff"):
        script = script[1:]
    if not script.startswith("#!"):
        return script
    newline = script.find("\n")
    if newline == -1:
        return ""
    return script[newline + 1 :]


def _fixed_delimiter(html: str, script: str, options: AssembleOptions) -> str:
    return options.delimiter


def _hash_delimiter(html: str, script: str, options: AssembleOptions) -> str:
    digest = hashlib.sha256()
    digest.update(html.encode("utf-8"))
    digest.update(b"\0")
    digest.update(script.encode("utf-8"))
    return f"HTML_{digest.hexdigest()[:16].upper()}"


DELIMITER_STRATEGIES: dict[str, Callable[[str, str, AssembleOptions], str]] = {
    "fixed": _fixed_delimiter,
    "hash": _hash_delimiter,
}


def choose_delimiter(html: str, script: str, options: AssembleOptions) -> str:
    """Pick the heredoc delimiter for this page/script pair."""
    strategy = DELIMITER_STRATEGIES[options.delimiter_strategy]
    delimiter = strategy(html, script, options)
    logger.debug(
        "Heredoc delimiter %r (%s strategy)", delimiter, options.delimiter_strategy
    )
    return delimiter


def find_line(text: str, line: str) -> Optional[int]:
    """Return the 1-based number of the first line exactly equal to `line`."""
    for lineno, candidate in enumerate(text.split("\n"), start=1):
        if candidate == line:
            return lineno
    return None


def check_delimiter(delimiter: str, html: str, script: str) -> None:
    """Raise DelimiterCollisionError if the delimiter is a line of either part.

    The shell ends a heredoc at the first line that matches exactly, so a match
    in the page would cut it short and run the rest of the page as commands.
    """
    for where, text in (("the HTML document", html), ("the shell script", script)):
        lineno = find_line(text, delimiter)
        if lineno is not None:
            raise DelimiterCollisionError(delimiter, where, lineno)


def render_frame(
    shebang: str,
    delimiter: str,
    html: str,
    script: str,
    close_comment: bool = True,
) -> str:
    """Render the polyglot text from already validated parts."""
    if script and not script.endswith("\n"):
        script += "\n"

    env = get_frame_env()
    tmpl = env.from_string(FRAME_TEMPLATE)
    return tmpl.render(
        shebang=shebang,
        delimiter=delimiter,
        html=html,
        script=script,
        close_comment=close_comment,
        comment_closer=COMMENT_CLOSER,
    )
