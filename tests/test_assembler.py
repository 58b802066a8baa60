"""Tests for the polyglot assembler."""

import os
import shutil
import subprocess
from html.parser import HTMLParser
from pathlib import Path

import pytest

from shpage.lib.assembler import (
    assemble,
    build,
    open_comment_at_anchor,
    write_atomic,
)
from shpage.lib.config import AssembleOptions
from shpage.lib.errors import (
    AlreadyAssembledError,
    AssemblyIOError,
    CommentLeakError,
    DelimiterCollisionError,
    EmptyInputError,
    MissingAnchorError,
)

HTML = "<html><body>hi</body></html>"
SCRIPT = "#!/bin/bash\necho ok"

requires_sh = pytest.mark.skipif(shutil.which("sh") is None, reason="needs sh")


def run_sh(text, cwd=None):
    return subprocess.run(
        ["sh"], input=text, capture_output=True, text=True, cwd=cwd
    )


class PageText(HTMLParser):
    """Collects rendered text and comments."""

    def __init__(self):
        super().__init__()
        self.data = []
        self.comments = []

    def handle_data(self, data):
        self.data.append(data)

    def handle_comment(self, data):
        self.comments.append(data)

    @property
    def text(self):
        return "".join(self.data)


def parse_html(text):
    parser = PageText()
    parser.feed(text)
    parser.close()
    return parser


# =============================================================================
# Framing
# =============================================================================


class TestAssemble:
    def test_exact_output(self):
        out = assemble(HTML, SCRIPT)
        assert out == (
            "#!/bin/sh\n"
            ": <<'SHPAGE_HTML_EOF'\n"
            "<html><body>hi</body></html><!--\n"
            "SHPAGE_HTML_EOF\n"
            "\n"
            "echo ok\n"
            "# -->\n"
        )

    def test_without_closing_comment(self):
        out = assemble(HTML, SCRIPT, AssembleOptions(close_comment=False))
        assert out.endswith("\necho ok\n")
        assert "-->" not in out

    def test_custom_shebang_replaces_script_shebang(self):
        out = assemble(HTML, SCRIPT, AssembleOptions(shebang="#!/usr/bin/env bash"))
        assert out.startswith("#!/usr/bin/env bash\n")
        assert "#!/bin/bash" not in out

    def test_script_without_shebang_kept_whole(self):
        out = assemble(HTML, "set -e\necho ok\n")
        assert "\n\nset -e\necho ok\n" in out

    def test_final_anchor_is_used(self):
        html = "<html><body><code></html></code></body></html>\n"
        out = assemble(html, SCRIPT)
        assert "<code></html></code>" in out
        assert "</body></html><!--\n" in out

    def test_anchor_is_case_insensitive(self):
        page, tail = open_comment_at_anchor("<HTML><BODY>x</BODY></HTML >\n")
        assert page == "<HTML><BODY>x</BODY></HTML ><!--\n"
        assert tail == "\n"

    def test_crlf_bytes_preserved(self):
        html = "<html>\r\n<body>hi</body>\r\n</html>\r\n"
        out = assemble(html, "echo ok\r\n")
        assert "<html>\r\n<body>hi</body>\r\n</html><!--\r\n" in out

    def test_idempotent(self):
        assert assemble(HTML, SCRIPT) == assemble(HTML, SCRIPT)

    def test_hash_strategy_is_deterministic(self):
        opts = AssembleOptions(delimiter_strategy="hash")
        first = assemble(HTML, SCRIPT, opts)
        second = assemble(HTML, SCRIPT, opts)
        assert first == second

        opener = first.split("\n")[1]
        assert opener.startswith(": <<'HTML_")
        assert "SHPAGE_HTML_EOF" not in first

    def test_hash_strategy_avoids_default_sentinel_collision(self):
        script = "#!/bin/sh\ncat <<SHPAGE_HTML_EOF\nx\nSHPAGE_HTML_EOF\n"
        out = assemble(HTML, script, AssembleOptions(delimiter_strategy="hash"))
        assert "cat <<SHPAGE_HTML_EOF" in out


# =============================================================================
# Guards
# =============================================================================


class TestGuards:
    def test_missing_anchor(self):
        with pytest.raises(MissingAnchorError):
            assemble("<html><body>hi</body>", SCRIPT)

    def test_empty_html(self):
        with pytest.raises(EmptyInputError):
            assemble("", SCRIPT)

    def test_empty_script(self):
        with pytest.raises(EmptyInputError):
            assemble(HTML, "")

    def test_script_with_only_shebang(self):
        with pytest.raises(EmptyInputError):
            assemble(HTML, "#!/bin/sh\n\n")

    def test_delimiter_line_in_html(self):
        html = "<html><body><pre>\nSHPAGE_HTML_EOF\n</pre></body></html>"
        with pytest.raises(DelimiterCollisionError) as exc:
            assemble(html, SCRIPT)
        assert exc.value.lineno == 2
        assert "HTML" in exc.value.where

    def test_delimiter_line_in_script(self):
        script = "#!/bin/bash\necho ok\nSHPAGE_HTML_EOF\n"
        with pytest.raises(DelimiterCollisionError):
            assemble(HTML, script)

    def test_delimiter_inside_a_line_is_fine(self):
        html = "<html><body>SHPAGE_HTML_EOF is a word here</body></html>"
        assert "SHPAGE_HTML_EOF is a word here" in assemble(html, SCRIPT)

    def test_custom_delimiter_collision(self):
        html = "<html>\nEOF\n</html>"
        with pytest.raises(DelimiterCollisionError):
            assemble(html, SCRIPT, AssembleOptions(delimiter="EOF"))

    def test_script_closing_comment(self):
        with pytest.raises(CommentLeakError):
            assemble(HTML, "#!/bin/sh\necho '-->'\n")

    def test_script_closing_comment_with_bang(self):
        with pytest.raises(CommentLeakError):
            assemble(HTML, "#!/bin/sh\necho '--!>'\n")

    def test_comment_after_anchor(self):
        with pytest.raises(CommentLeakError):
            assemble("<html></html><!-- built -->\n", SCRIPT)

    def test_bracket_right_after_anchor(self):
        with pytest.raises(CommentLeakError):
            assemble("<html></html>>\n", SCRIPT)

    def test_already_assembled_input(self):
        out = assemble(HTML, SCRIPT)
        with pytest.raises(AlreadyAssembledError):
            assemble(out, SCRIPT)


# =============================================================================
# Both readers
# =============================================================================


@requires_sh
class TestShellView:
    def test_prints_ok_only(self):
        result = run_sh(assemble(HTML, SCRIPT))
        assert result.returncode == 0
        assert result.stdout == "ok\n"
        assert result.stderr == ""

    def test_same_effects_as_script_body(self):
        script = "#!/bin/bash\necho one\necho two >&2\nexit 3\n"
        expected = run_sh("echo one\necho two >&2\nexit 3\n")
        actual = run_sh(assemble(HTML, script))

        assert actual.stdout == expected.stdout
        assert actual.stderr == expected.stderr
        assert actual.returncode == expected.returncode == 3

    def test_page_is_not_expanded(self, tmp_path):
        html = (
            "<html><body>\n"
            "$(touch subst)\n"
            "`touch backtick`\n"
            "${HOME:?x} $(( 1 / 0 ))\n"
            "</body></html>\n"
        )
        result = run_sh(assemble(html, SCRIPT), cwd=tmp_path)

        assert result.stdout == "ok\n"
        assert not (tmp_path / "subst").exists()
        assert not (tmp_path / "backtick").exists()

    def test_bom_before_shebang_not_run(self):
        result = run_sh(assemble(HTML, "\ufeff#!/bin/bash\necho ok\n"))
        assert result.stdout == "ok\n"
        assert result.stderr == ""

    def test_unclosed_comment_variant(self):
        out = assemble(HTML, SCRIPT, AssembleOptions(close_comment=False))
        assert run_sh(out).stdout == "ok\n"

    def test_run_as_file(self, tmp_path):
        path = tmp_path / "index.html"
        path.write_text(assemble(HTML, SCRIPT))

        result = subprocess.run(["sh", str(path)], capture_output=True, text=True)
        assert result.stdout == "ok\n"


class TestHTMLView:
    def test_page_text_without_script(self):
        page = parse_html(assemble(HTML, SCRIPT))

        assert page.text == "#!/bin/sh\n: <<'SHPAGE_HTML_EOF'\nhi\n"
        assert page.comments == ["\nSHPAGE_HTML_EOF\n\necho ok\n# "]

    def test_comment_holds_only_trailer(self):
        html = "<!doctype html>\n<html><body><p>Install</p></body></html>\n"
        page = parse_html(assemble(html, "#!/bin/sh\ndocker swarm init\n"))

        assert "Install" in page.text
        assert "docker" not in page.text
        assert page.comments[0].startswith("\n\nSHPAGE_HTML_EOF\n")


# =============================================================================
# Files
# =============================================================================


def write_inputs(tmp_path, html=HTML, script=SCRIPT):
    html_path = tmp_path / "dist" / "index.html"
    script_path = tmp_path / "public" / "install.sh"
    html_path.parent.mkdir(parents=True)
    script_path.parent.mkdir(parents=True)
    html_path.write_bytes(html.encode("utf-8"))
    script_path.write_bytes(script.encode("utf-8"))
    return html_path, script_path


class TestBuild:
    def test_replaces_page_in_place(self, tmp_path):
        html_path, script_path = write_inputs(tmp_path)

        out = build(html_path, script_path)

        assert out == html_path
        assert html_path.read_text() == assemble(HTML, SCRIPT)

    def test_separate_output(self, tmp_path):
        html_path, script_path = write_inputs(tmp_path)
        output = tmp_path / "publish" / "index.html"

        build(html_path, script_path, output)

        assert html_path.read_text() == HTML
        assert output.read_text().startswith("#!/bin/sh\n")

    def test_bytes_written_exactly(self, tmp_path):
        html = "<html>\r\n<body>café</body>\r\n</html>\r\n"
        html_path, script_path = write_inputs(tmp_path, html=html)

        build(html_path, script_path)

        assert html_path.read_bytes() == assemble(html, SCRIPT).encode("utf-8")

    def test_collision_writes_nothing(self, tmp_path):
        html_path, script_path = write_inputs(
            tmp_path, script="#!/bin/bash\nSHPAGE_HTML_EOF\n"
        )

        with pytest.raises(DelimiterCollisionError):
            build(html_path, script_path)

        assert html_path.read_text() == HTML
        assert sorted(p.name for p in html_path.parent.iterdir()) == ["index.html"]

    def test_missing_script(self, tmp_path):
        html_path, script_path = write_inputs(tmp_path)
        script_path.unlink()

        with pytest.raises(AssemblyIOError):
            build(html_path, script_path)
        assert html_path.read_text() == HTML

    def test_script_bom_dropped(self, tmp_path):
        html_path, script_path = write_inputs(tmp_path)
        script_path.write_bytes(b"\xef\xbb\xbf#!/bin/bash\necho ok\n")

        build(html_path, script_path)

        out = html_path.read_text()
        assert "\ufeff" not in out
        assert "#!/bin/bash" not in out
        assert out == assemble(HTML, SCRIPT)

    def test_stat_failure_is_io_error(self, tmp_path, monkeypatch):
        def denied(self, *args, **kwargs):
            raise PermissionError(13, "Permission denied")

        monkeypatch.setattr(Path, "exists", lambda self, *a, **k: True)
        monkeypatch.setattr(Path, "stat", denied)

        with pytest.raises(AssemblyIOError, match="Cannot write"):
            write_atomic(tmp_path / "index.html", "x")

    def test_invalid_utf8(self, tmp_path):
        html_path, script_path = write_inputs(tmp_path)
        script_path.write_bytes(b"#!/bin/sh\necho \xff\n")

        with pytest.raises(AssemblyIOError):
            build(html_path, script_path)

    @pytest.mark.skipif(os.name != "posix", reason="posix permissions")
    def test_new_file_is_world_readable(self, tmp_path):
        html_path, script_path = write_inputs(tmp_path)
        output = tmp_path / "out.html"

        build(html_path, script_path, output)

        assert output.stat().st_mode & 0o777 == 0o644
