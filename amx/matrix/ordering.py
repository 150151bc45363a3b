"""Display/priority ordering of combinations.

Layered comparator, first non-zero result wins:

1. primary key chosen by the sort mode (score, favourite or date)
2. completed before any other status, whatever the sort mode
3. within one status, higher progress first
4. insertion order (``sorted`` is stable)

The comparator only reads snapshot fields, so ordering can run while renders
are in flight.
"""

from __future__ import annotations

from collections.abc import Iterable
from functools import cmp_to_key

from amx.schemas.models import Combination, CombinationStatus, SortMode


def _cmp_desc(a: float, b: float) -> int:
    return (a < b) - (a > b)


def _primary(a: Combination, b: Combination, mode: SortMode) -> int:
    if mode == SortMode.SCORE:
        # Unscored combinations sort as lowest
        score_a = a.engagement_score if a.engagement_score is not None else -1.0
        score_b = b.engagement_score if b.engagement_score is not None else -1.0
        return _cmp_desc(score_a, score_b)
    if mode == SortMode.FAVOURITE:
        return _cmp_desc(int(a.is_favourite), int(b.is_favourite))
    if mode == SortMode.DATE:
        return _cmp_desc(a.sequence, b.sequence)
    raise ValueError(f"Unknown sort mode: {mode!r}")


def compare(a: Combination, b: Combination, mode: SortMode) -> int:
    result = _primary(a, b, mode)
    if result:
        return result

    a_done = a.status == CombinationStatus.COMPLETED
    b_done = b.status == CombinationStatus.COMPLETED
    if a_done != b_done:
        return -1 if a_done else 1

    if a.status == b.status:
        return _cmp_desc(a.progress, b.progress)
    return 0


def order(combinations: Iterable[Combination], sort_mode: SortMode | str = SortMode.SCORE) -> list[Combination]:
    """Return a new list in display order; the input is not modified."""
    mode = SortMode(sort_mode)
    return sorted(combinations, key=cmp_to_key(lambda a, b: compare(a, b, mode)))
