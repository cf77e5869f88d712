"""Helpers for deterministic enumeration order."""

from __future__ import annotations

from typing import Iterator, Sequence, TypeVar

T = TypeVar("T")


def iter_unordered_pairs(items: Sequence[T]) -> Iterator[tuple[T, T]]:
    """Yield every unordered pair once, outer index first, in input order."""
    count = len(items)
    for i in range(count):
        first = items[i]
        for j in range(i + 1, count):
            yield first, items[j]
