"""Unit tests for LaTeX log scanning."""

import pytest

from latexmk_runner.building.log_parser import parse_latex_log, read_latex_log

SAMPLE_LOG = r"""
This is pdfTeX, Version 3.141592653-2.6-1.40.25 (TeX Live 2023)
(./input.tex
LaTeX2e <2022-11-01>
! Undefined control sequence.
l.4 This has an \undefinedcommand
                                  {test} that should fail.
LaTeX Warning: Reference `fig:missing' on page 1 undefined on input line 7.
Package hyperref Warning: Token not allowed in a PDF string (Unicode):
Overfull \hbox (12.3pt too wide) in paragraph at lines 10--12
Underfull \hbox (badness 10000) in paragraph at lines 14--15
! Emergency stop.
"""


@pytest.mark.unit
class TestParseLatexLog:
    """Tests for parse_latex_log()."""

    def test_bang_lines_are_errors(self):
        errors, _ = parse_latex_log(SAMPLE_LOG)

        assert errors == ["Undefined control sequence.", "Emergency stop."]

    def test_warnings_collected(self):
        _, warnings = parse_latex_log(SAMPLE_LOG)

        assert "Reference `fig:missing' on page 1 undefined on input line 7." in warnings
        assert "Token not allowed in a PDF string (Unicode):" in warnings
        assert "12.3pt too wide" in warnings
        assert "badness 10000" in warnings

    def test_missing_file_error_without_bang(self):
        log = "LaTeX Error: File `mystyle.sty' not found.\n"

        errors, _ = parse_latex_log(log)

        assert errors == ["LaTeX Error: File `mystyle.sty' not found."]

    def test_clean_log(self):
        assert parse_latex_log("Output written on input.pdf (1 page).\n") == ([], [])


@pytest.mark.unit
class TestReadLatexLog:
    """Tests for read_latex_log()."""

    def test_missing_log_is_empty(self, tmp_path):
        assert read_latex_log(tmp_path / "input.log") == ([], [])

    def test_latin1_log(self, tmp_path):
        log_file = tmp_path / "input.log"
        log_file.write_bytes("! Missing $ inserted caf\xe9.\n".encode("latin-1"))

        errors, _ = read_latex_log(log_file)

        assert errors == ["Missing $ inserted café."]
