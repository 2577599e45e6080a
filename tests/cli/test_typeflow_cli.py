"""Test typeflow CLI"""

import json

import pytest

from typeflow.cli.main import detect_language, format_response, main
from typeflow.analyzers.query import QueryResponse


class TestCliHelpers:
    """Test suite for CLI helpers"""

    def test_detect_language(self, tmp_path):
        """Test language detection from suffix"""
        assert detect_language(tmp_path / "a.lua") == "lua"
        assert detect_language(tmp_path / "a.js") == "javascript"
        assert detect_language(tmp_path / "a.txt") == "javascript"

    def test_format_empty_response(self):
        """Test the no-result rendering"""
        assert format_response(QueryResponse()) == "No result"

    def test_format_response(self):
        """Test plain text rendering"""
        text = format_response(QueryResponse(["number"], [], "x", [(4, 5), (9, 10)]))
        assert "Types: number" in text
        assert "Variable: x" in text
        assert "Occurrences: 4-5, 9-10" in text

    def test_missing_file(self, tmp_path, capsys):
        """Test a missing input file exits with status 1"""
        with pytest.raises(SystemExit) as excinfo:
            main([str(tmp_path / "missing.js")])
        assert excinfo.value.code == 1
        assert "Input file not found" in capsys.readouterr().err


class TestCliMain:
    """Test suite for CLI main"""

    def test_lists_globals(self, tmp_path, capsys):
        """Test globals are listed without an offset"""
        pytest.importorskip("tree_sitter_language_pack")
        source = tmp_path / "app.js"
        source.write_text('var x = 1;\nvar y = x + "a";\n')

        main([str(source)])
        out = capsys.readouterr().out
        assert "x: number" in out
        assert "y: string" in out

    def test_offset_query_json(self, tmp_path, capsys):
        """Test JSON output for an offset query"""
        pytest.importorskip("tree_sitter_language_pack")
        source = tmp_path / "app.js"
        source.write_text("var x = 1;\nvar y = x;\n")

        main([str(source), "--offset", "4", "--json"])
        data = json.loads(capsys.readouterr().out)
        assert data["typeNames"] == ["number"]
        assert data["variableNameAtPosition"] == "x"
        assert data["occurrences"] == [{"start": 4, "end": 5}, {"start": 19, "end": 20}]

    def test_lua_file(self, tmp_path, capsys):
        """Test Lua files are detected and analyzed"""
        pytest.importorskip("luaparser")
        source = tmp_path / "script.lua"
        source.write_text("local s = 'a' .. 'b'\n")

        main([str(source)])
        assert "s: string" in capsys.readouterr().out

    def test_parse_error_is_no_result(self, tmp_path, capsys):
        """Test syntax errors print no result instead of failing"""
        pytest.importorskip("tree_sitter_language_pack")
        source = tmp_path / "broken.js"
        source.write_text("var = ;")

        main([str(source), "--offset", "0"])
        captured = capsys.readouterr()
        assert "No result" in captured.out
        assert "Error analyzing" in captured.err

    def test_deep_nesting_is_no_result(self, tmp_path, capsys):
        """Test a very long chain prints no result instead of crashing"""
        pytest.importorskip("tree_sitter_language_pack")
        source = tmp_path / "concat.js"
        source.write_text("var s = " + " + ".join(['"a"'] * 3000) + ";\n")

        main([str(source), "--offset", "4"])
        captured = capsys.readouterr()
        assert "No result" in captured.out
        assert "nests too deeply" in captured.err

    def test_verbose_summary(self, tmp_path, capsys):
        """Test verbose mode prints the pass summary"""
        pytest.importorskip("tree_sitter_language_pack")
        source = tmp_path / "app.js"
        source.write_text("function f(p) { return p; }\nf(1);\n")

        main([str(source), "--verbose", "-k", "1"])
        out = capsys.readouterr().out
        assert "f: fn f(p)" in out
        assert "=== Type Propagation Summary ===" in out
