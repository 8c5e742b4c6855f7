#!/usr/bin/env python

"""Enumerate multisets (combinations with repetition) of candidates.

Examples
--------
>>> multichoose(2, ["R", "A", "T"])
>>> [('R', 'R'), ('R', 'A'), ('R', 'T'), ('A', 'A'), ('A', 'T'), ('T', 'T')]
"""

from typing import Sequence, List, Tuple, TypeVar
from itertools import combinations_with_replacement
from scipy.special import comb

T = TypeVar("T")


def multichoose(k: int, candidates: Sequence[T]) -> List[Tuple[T, ...]]:
    """Return every multiset of size k drawn from candidates.

    Items are drawn with repetition and each multiset appears once,
    as a tuple ordered by the position of its items in candidates.
    The output order is lexicographic on those positions so repeated
    calls with the same input return the same sequence. Duplicate
    items in candidates are treated as one item.
    """
    if k < 0:
        raise ValueError(f"multichoose size must be >= 0, not {k}")
    unique = list(dict.fromkeys(candidates))
    return list(combinations_with_replacement(unique, k))


def multichoose_count(k: int, n: int) -> int:
    """Number of multisets of size k from n items, C(n + k - 1, k)."""
    return int(comb(n + k - 1, k, exact=True))
