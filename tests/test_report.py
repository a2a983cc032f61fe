"""Tests for charfreq.report."""

from __future__ import annotations

from rich.console import Console

from charfreq.config import IgnorePolicy, ReportOptions
from charfreq.ranking import rank
from charfreq.report import display_char, render


class TestDisplayChar:
    def test_plain(self) -> None:
        assert display_char("a") == "a"

    def test_newline(self) -> None:
        assert display_char("\n") == "\\n \\u000a"

    def test_space(self) -> None:
        assert display_char(" ") == "\\s \\u0020"

    def test_control(self) -> None:
        assert display_char("\x00") == "\\u0000"

    def test_format_characters_shown_as_code(self) -> None:
        assert display_char("\ufeff") == "\\ufeff"
        assert display_char("\u200b") == "\\u200b"


class TestRender:
    def test_table_contents(self) -> None:
        console = Console(record=True, width=120)
        options = ReportOptions(ignore=IgnorePolicy(count_space=True))
        render(rank({"a": 3, "\t": 1}, options), console)
        text = console.export_text()
        assert "% of selected" in text
        assert "75.00" in text
        assert "\\t \\u0009" in text

    def test_empty_report(self) -> None:
        console = Console(record=True)
        render(rank({}, ReportOptions()), console)
        assert "No characters" in console.export_text()
