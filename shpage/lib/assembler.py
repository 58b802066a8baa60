"""Polyglot assembler - one file that is both the landing page and the installer.

    curl https://site/ | sh    ->  runs the installer
    open https://site/         ->  shows the landing page
"""

from __future__ import annotations

import logging
import os
import re
import tempfile
from pathlib import Path
from typing import Optional

from .config import AssembleOptions
from .errors import (
    AlreadyAssembledError,
    AssemblyIOError,
    CommentLeakError,
    EmptyInputError,
    MissingAnchorError,
)
from .frame import (
    check_delimiter,
    choose_delimiter,
    render_frame,
    strip_interpreter_line,
)

logger = logging.getLogger(__name__)

ANCHOR_RE = re.compile(r"</html\s*>", re.IGNORECASE)
COMMENT_OPENER = "<!--"
COMMENT_TERMINATORS = ("-->", "--!>")

DEFAULT_FILE_MODE = 0o644


def open_comment_at_anchor(html: str) -> tuple[str, str]:
    """Insert `<!--` right after the final `</html>` tag.

    Returns the modified page and the part of it that follows the anchor.
    """
    last = None
    for last in ANCHOR_RE.finditer(html):
        pass
    if last is None:
        raise MissingAnchorError()

    end = last.end()
    tail = html[end:]
    return html[:end] + COMMENT_OPENER + tail, tail


def check_comment_body(text: str, where: str) -> None:
    """Raise CommentLeakError if `text` would end the HTML comment."""
    for token in COMMENT_TERMINATORS:
        if token in text:
            raise CommentLeakError(where, token)


def _check_anchor_tail(tail: str) -> None:
    # "<!-->" and "<!--->" are complete (empty) comments in HTML
    for prefix in (">", "->"):
        if tail.startswith(prefix):
            raise CommentLeakError("the HTML after </html>", COMMENT_OPENER + prefix)
    check_comment_body(tail, "the HTML after </html>")


def assemble(
    html: str, script: str, options: Optional[AssembleOptions] = None
) -> str:
    """Combine a finished page and a finished installer into one polyglot.

    Args:
        html: The complete HTML document.
        script: The installer; a leading `#!` line is replaced by options.shebang.
        options: Framing options (defaults to AssembleOptions()).

    Returns:
        The polyglot text.

    Raises:
        EmptyInputError: If either input (or the script body) is empty.
        AlreadyAssembledError: If the page is itself an assembled artifact.
        MissingAnchorError: If the page has no closing </html> tag.
        CommentLeakError: If text after the anchor would close the comment.
        DelimiterCollisionError: If the delimiter is a line of either part.
    """
    options = options or AssembleOptions()

    if not html:
        raise EmptyInputError("HTML document")
    if not script:
        raise EmptyInputError("shell script")
    if html.startswith("#!"):
        raise AlreadyAssembledError()

    body = strip_interpreter_line(script)
    if not body.strip():
        raise EmptyInputError("shell script body")

    page, tail = open_comment_at_anchor(html)
    _check_anchor_tail(tail)
    check_comment_body(body, "the shell script")

    delimiter = choose_delimiter(page, body, options)
    check_delimiter(delimiter, page, body)

    logger.debug(
        "Framing %d chars of HTML and %d chars of script", len(page), len(body)
    )
    return render_frame(
        shebang=options.shebang,
        delimiter=delimiter,
        html=page,
        script=body,
        close_comment=options.close_comment,
    )


def read_input(path: Path, what: str) -> str:
    """Read a UTF-8 input file without newline translation, dropping a BOM."""
    try:
        data = path.read_bytes()
    except OSError as e:
        raise AssemblyIOError(f"Cannot read {what} {path}: {e.strerror or e}") from e

    try:
        return data.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise AssemblyIOError(f"{what} {path} is not valid UTF-8: {e}") from e


def write_atomic(path: Path, text: str) -> None:
    """Replace `path` with `text` in one step, or leave it untouched."""
    tmp_name = None
    try:
        mode = DEFAULT_FILE_MODE
        if path.exists():
            mode = path.stat().st_mode & 0o777

        path.parent.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile(
            dir=path.parent, prefix=f".{path.name}.", suffix=".tmp", delete=False
        ) as f:
            tmp_name = f.name
            f.write(text.encode("utf-8"))
        os.chmod(tmp_name, mode)
        os.replace(tmp_name, path)
    except OSError as e:
        if tmp_name is not None and os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise AssemblyIOError(f"Cannot write {path}: {e.strerror or e}") from e


def build(
    html_path: Path,
    script_path: Path,
    output_path: Optional[Path] = None,
    options: Optional[AssembleOptions] = None,
) -> Path:
    """Assemble the page and installer on disk.

    The output (default: the page itself) is overwritten only after the
    polyglot has been fully built.
    """
    output_path = output_path or html_path

    html = read_input(html_path, "HTML document")
    script = read_input(script_path, "shell script")
    polyglot = assemble(html, script, options)

    write_atomic(output_path, polyglot)
    logger.info("Wrote %d bytes to %s", len(polyglot.encode("utf-8")), output_path)
    return output_path
