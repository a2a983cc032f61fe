"""Rich rendering of a ranked report."""

from __future__ import annotations

import unicodedata

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from charfreq.ranking import RankedReport

_ESCAPES: dict[str, str] = {
    "\t": "\\t",
    "\n": "\\n",
    "\r": "\\r",
    "\v": "\\v",
    "\f": "\\f",
}


def display_char(char: str) -> str:
    """Return a printable form of *char*.

    Whitespace and control characters are shown as an escape plus their
    code point, e.g. ``\\n \\u000a``.
    """
    code = f"\\u{ord(char):04x}"
    if char in _ESCAPES:
        return _ESCAPES[char] + " " + code
    if char.isspace():
        return "\\s " + code
    if unicodedata.category(char) in ("Cc", "Cf"):
        return code
    return char


def render(report: RankedReport, console: Console, title: str | None = None) -> None:
    """Print *report* as a table on *console*."""
    if not report.rows:
        console.print("[dim]No characters to show.[/dim]")
        return

    table = Table(title=title)
    table.add_column("#", style="cyan", justify="right")
    table.add_column("Frequency", justify="right")
    table.add_column("% of all", justify="right")
    table.add_column("% of selected", justify="right")
    table.add_column("Char", style="magenta")

    for row in report.rows:
        table.add_row(
            str(row.rank),
            str(row.count),
            f"{row.percent_all:.2f}",
            f"{row.percent_selected:.2f}",
            escape(display_char(row.char)),
        )

    console.print(table)
    console.print(
        f"[dim]{report.total_selected} of {report.total_all} characters selected.[/dim]"
    )
