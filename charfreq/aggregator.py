"""Folding per-file frequency maps into one map per bucket."""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable, Mapping


def combine(mappings: Iterable[Mapping[str, int]]) -> dict[str, int]:
    """Sum counts for identical characters across all *mappings*.

    The result does not depend on the order of the inputs.
    """
    total: Counter[str] = Counter()
    for mapping in mappings:
        total.update(mapping)
    return {char: count for char, count in total.items() if count > 0}
