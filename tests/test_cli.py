"""
Tests for the rumtpl command line interface.
"""

import json
import pytest

from rumtpl.__main__ import main, parse_param


class TestParseParam:
    """Test NAME=VALUE parsing."""

    @pytest.mark.parametrize("text,expected", [
        ("n=3", ("n", 3)),
        ("x=2.5", ("x", 2.5)),
        ("flag=true", ("flag", True)),
        ("name=ada", ("name", "ada")),
        ("q='a=b'", ("q", "a=b")),
    ])
    def test_values(self, text, expected):
        assert parse_param(text) == expected

    def test_missing_equals(self):
        with pytest.raises(ValueError):
            parse_param("nothing")


class TestCommands:
    """Test the CLI subcommands."""

    def test_check_ok(self, tmp_path, capsys):
        path = tmp_path / "page.html"
        path.write_text("<% if a %>x<% end %>")
        assert main(["check", str(path)]) == 0
        assert "OK: page.html" in capsys.readouterr().out

    def test_check_error(self, tmp_path, capsys):
        path = tmp_path / "page.html"
        path.write_text("<% if a %>x")
        assert main(["check", str(path)]) == 1
        assert "E110" in capsys.readouterr().err

    def test_missing_file(self, tmp_path, capsys):
        assert main(["check", str(tmp_path / "nope.html")]) == 1
        assert "File not found" in capsys.readouterr().err

    def test_tokens(self, tmp_path, capsys):
        path = tmp_path / "page.html"
        path.write_text("hi <%= name %>")
        assert main(["tokens", str(path)]) == 0
        out = capsys.readouterr().out
        assert "OUTPUT_START" in out
        assert "IDENTIFIER('name')" in out

    def test_render_vars(self, tmp_path, capsys):
        path = tmp_path / "page.html"
        path.write_text("<%= name.capitalize %> x<%= n %>")
        assert main(["render", str(path), "-v", "name=ada", "-v", "n=3"]) == 0
        assert capsys.readouterr().out == "Ada x3"

    def test_render_json_and_partials(self, tmp_path, capsys):
        (tmp_path / "_item.html").write_text("<i><%= item %></i>")
        page = tmp_path / "page.html"
        page.write_text("<% for item in items %><%% '_item' %><% end %>")
        ctx = tmp_path / "ctx.json"
        ctx.write_text(json.dumps({"items": ["a", "b"]}))
        assert main(["render", str(page), "--json", str(ctx)]) == 0
        assert capsys.readouterr().out == "<i>a</i><i>b</i>"

    def test_render_to_file(self, tmp_path, capsys):
        page = tmp_path / "page.html"
        page.write_text("static")
        out = tmp_path / "out.html"
        assert main(["render", str(page), "-o", str(out)]) == 0
        assert out.read_text() == "static"

    def test_render_error(self, tmp_path, capsys):
        page = tmp_path / "page.html"
        page.write_text("<%= missing %>")
        assert main(["render", str(page)]) == 1
        assert "E401" in capsys.readouterr().err

    def test_render_json_not_object(self, tmp_path, capsys):
        page = tmp_path / "page.html"
        page.write_text("x")
        ctx = tmp_path / "ctx.json"
        ctx.write_text("[1, 2]")
        assert main(["render", str(page), "--json", str(ctx)]) == 1

    def test_render_undecodable_file(self, tmp_path, capsys):
        """Bytes that are not valid UTF-8 give exit code 1, not a traceback."""
        page = tmp_path / "page.html"
        page.write_bytes(b"\xff\xfe<%= x %>")
        assert main(["render", str(page)]) == 1
        assert "cannot read" in capsys.readouterr().err

    def test_check_undecodable_file(self, tmp_path, capsys):
        page = tmp_path / "page.html"
        page.write_bytes(b"\xff")
        assert main(["check", str(page)]) == 1
        assert "cannot read" in capsys.readouterr().err

    def test_render_unwritable_output(self, tmp_path, capsys):
        """Writing onto a directory fails cleanly."""
        page = tmp_path / "page.html"
        page.write_text("static")
        assert main(["render", str(page), "-o", str(tmp_path)]) == 1
        assert "cannot write" in capsys.readouterr().err

    def test_methods(self, capsys):
        assert main(["methods"]) == 0
        out = capsys.readouterr().out
        assert "Integer:" in out
        assert "times" in out
        assert "to_s (alias: to_string)" in out
        assert "Nil: (no methods)" in out
