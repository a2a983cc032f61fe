"""Filtering and ranking of an aggregate into a percentage table."""

from __future__ import annotations

import unicodedata
from collections.abc import Mapping
from dataclasses import dataclass, field

from charfreq.config import IgnorePolicy, ReportOptions

_SYMBOL_CATEGORIES = frozenset({"Sm", "Sc", "Sk", "So"})


def is_ignored(char: str, policy: IgnorePolicy) -> bool:
    """Return True if *char* falls in a class that *policy* leaves out."""
    category = unicodedata.category(char)
    if category.startswith("L"):
        return policy.letters
    if category == "Nd":
        return policy.digits
    if category in _SYMBOL_CATEGORIES:
        return policy.symbols
    if char.isspace():
        return not policy.count_space
    return False


def _percent(part: int, whole: int) -> float:
    return part * 100 / whole if whole else 0.0


@dataclass(frozen=True)
class RankedRow:
    """One line of the ranked table."""

    rank: int
    char: str
    count: int
    percent_all: float
    percent_selected: float


@dataclass
class RankedReport:
    """An aggregate reduced to its top characters."""

    total_all: int
    total_selected: int
    rows: list[RankedRow] = field(default_factory=list)


def rank(aggregate: Mapping[str, int], options: ReportOptions = ReportOptions()) -> RankedReport:
    """Rank the characters of *aggregate* that survive the ignore policy.

    Ignored characters still count toward ``total_all``. Ties on count are
    broken by code point. At most ``options.top_n`` rows are returned;
    ``top_n == 0`` returns every surviving character.
    """
    total_all = sum(aggregate.values())
    selected = [(char, count) for char, count in aggregate.items() if not is_ignored(char, options.ignore)]
    total_selected = sum(count for _, count in selected)

    selected.sort(key=lambda item: (-item[1], ord(item[0])))
    if options.top_n:
        selected = selected[: options.top_n]

    rows = [
        RankedRow(
            rank=i,
            char=char,
            count=count,
            percent_all=_percent(count, total_all),
            percent_selected=_percent(count, total_selected),
        )
        for i, (char, count) in enumerate(selected, start=1)
    ]
    return RankedReport(total_all=total_all, total_selected=total_selected, rows=rows)
