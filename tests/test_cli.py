"""
Tests for the command-line interface.
"""

import json
import pytest
from unittest.mock import patch

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))


class TestUsage:
    """Tests for usage handling."""

    def test_no_search_string_prints_usage(self, capsys):
        """Test that a missing search string shows usage and succeeds."""
        from cli import main

        exit_code = main([])
        out = capsys.readouterr().out

        assert exit_code == 0
        assert "grab version 1.0.3" in out
        assert "Do not search subdirectories" in out
        assert "searching..." not in out

    def test_two_search_strings_prints_usage(self, capsys):
        """Test that more than one search string shows usage."""
        from cli import main

        exit_code = main(["one", "two"])
        out = capsys.readouterr().out

        assert exit_code == 0
        assert "Usage" in out or "usage" in out

    def test_h_is_not_help(self):
        """Test that -h maps to excluding hidden files."""
        from cli import build_parser

        args = build_parser().parse_args(["-h", "-d", "-c", "-s", "needle"])

        assert args.exclude_hidden is True
        assert args.exclude_subdirs is True
        assert args.case_sensitive is True
        assert args.show_skipped is True
        assert args.terms == ["needle"]

    def test_invalid_concurrency_rejected(self):
        """Test argument validation for -j."""
        from cli import build_parser

        with pytest.raises(SystemExit):
            build_parser().parse_args(["-j", "0", "needle"])


class TestSearchCommand:
    """Tests for running a search from the CLI."""

    def test_text_output(self, tmp_path, capsys):
        """Test grouped text output for the cat scenario."""
        from cli import main

        (tmp_path / "a.txt").write_text("cat\nconcatenate\nCat")

        exit_code = main(["--root", str(tmp_path), "cat"])
        out = capsys.readouterr().out
        path = str(tmp_path / "a.txt")

        assert exit_code == 0
        assert out.startswith("searching...")
        assert f"{path} (3):" in out
        assert f"  - {path}:1:1" in out
        assert f"  - {path}:2:4" in out
        assert f"  - {path}:3:1" in out
        assert "Scanned files: 1" in out
        assert "Scanned directories: 1" in out
        assert "Skipped files" not in out

    def test_case_sensitive_flag(self, tmp_path, capsys):
        """Test -c."""
        from cli import main

        (tmp_path / "a.txt").write_text("cat\nCat\n")

        main(["-c", "--root", str(tmp_path), "Cat"])
        out = capsys.readouterr().out

        assert f"{tmp_path / 'a.txt'} (1):" in out

    def test_show_skipped_flag(self, tmp_path, capsys):
        """Test -s shows the skip count."""
        from cli import main

        (tmp_path / "a.txt").write_text("x\n")

        main(["-s", "--root", str(tmp_path), "needle"])
        out = capsys.readouterr().out

        assert "Skipped files: 0" in out

    def test_json_output(self, tmp_path, capsys):
        """Test that --json prints a single JSON document."""
        from cli import main

        (tmp_path / "a.txt").write_text("needle\n")

        exit_code = main(["--json", "--root", str(tmp_path), "needle"])
        data = json.loads(capsys.readouterr().out)

        assert exit_code == 0
        assert data["matches"] == {str(tmp_path / "a.txt"): [{"line": 1, "column": 1}]}
        assert data["stats"]["files_scanned"] == 1

    def test_defaults_to_working_directory(self, tmp_path, capsys, monkeypatch):
        """Test that the current directory is the default root."""
        from cli import main

        (tmp_path / "here.txt").write_text("needle\n")
        monkeypatch.chdir(tmp_path)

        exit_code = main(["needle"])
        out = capsys.readouterr().out

        assert exit_code == 0
        assert f"{os.path.join(os.getcwd(), 'here.txt')}:1:1" in out

    def test_missing_root_exits_non_zero(self, tmp_path, capsys):
        """Test that a bad root is fatal."""
        from cli import main

        exit_code = main(["--root", str(tmp_path / "nope"), "needle"])

        assert exit_code == 1
        assert "not a directory" in capsys.readouterr().err

    def test_unresolvable_working_directory(self, capsys):
        """Test that a working directory failure exits non-zero."""
        from cli import main

        with patch("cli.os.getcwd", side_effect=FileNotFoundError(2, "No such file or directory")):
            exit_code = main(["needle"])

        captured = capsys.readouterr()
        assert exit_code == 1
        assert "Error getting current directory" in captured.err
        assert "searching..." not in captured.out

    def test_interrupt_exits_130(self, tmp_path, capsys):
        """Test Ctrl-C handling."""
        from cli import main

        with patch("cli.SearchEngine.run", side_effect=KeyboardInterrupt):
            exit_code = main(["--root", str(tmp_path), "needle"])

        assert exit_code == 130
        assert "interrupted" in capsys.readouterr().err

    def test_relative_root_without_working_directory(self, capsys):
        """Test that a relative --root fails cleanly when the cwd is gone."""
        from cli import main

        with patch("cli.os.getcwd", side_effect=FileNotFoundError(2, "No such file or directory")):
            exit_code = main(["--root", "relative/dir", "needle"])

        captured = capsys.readouterr()
        assert exit_code == 1
        assert "Error getting current directory" in captured.err
        assert "searching..." not in captured.out


class TestOutputEncoding:
    """Tests for printing paths that are not valid UTF-8."""

    def test_undecodable_file_name(self, tmp_path, capsys):
        """Test that a non-UTF-8 file name is printed with escapes."""
        from cli import main

        raw_path = os.path.join(os.fsencode(str(tmp_path)), b"bad\xff.txt")
        with open(raw_path, "wb") as f:
            f.write(b"needle\n")

        exit_code = main(["--root", str(tmp_path), "needle"])
        out = capsys.readouterr().out
        shown = os.path.join(str(tmp_path), "bad\\xff.txt")

        assert exit_code == 0
        assert f"{shown} (1):" in out
        assert f"  - {shown}:1:1" in out

    def test_strict_stdout_encoding(self, tmp_path, monkeypatch):
        """Test printing to a strict UTF-8 stream."""
        import io
        from cli import main

        raw_path = os.path.join(os.fsencode(str(tmp_path)), b"bad\xff.txt")
        with open(raw_path, "wb") as f:
            f.write(b"needle\n")

        stream = io.TextIOWrapper(io.BytesIO(), encoding="utf-8", errors="strict")
        monkeypatch.setattr(sys, "stdout", stream)

        exit_code = main(["--root", str(tmp_path), "needle"])
        stream.flush()

        assert exit_code == 0
        assert b"bad\\xff.txt:1:1" in stream.buffer.getvalue()

    def test_printable_keeps_valid_text(self):
        """Test that ordinary text passes through unchanged."""
        from cli import printable

        assert printable("/tmp/café.txt:1:1") == "/tmp/café.txt:1:1"
