"""Block-range coverage utilities for incremental scans.

Functions
---------
- merge_intervals: merge overlapping/adjacent [start, end] integer ranges.
- subtract_iv: subtract a set of covered intervals from a target interval.
- covered_blocks: number of blocks inside merged intervals.
- reconcile_logs: apply a reorg policy to accumulated logs.

All intervals are inclusive on both ends: [start, end].
"""

from __future__ import annotations

from collections.abc import Iterable

from logcascade.core.config import ReorgPolicy
from logcascade.core.models import EventLog


def merge_intervals(intervals: list[tuple[int, int]]) -> list[tuple[int, int]]:
    """Merge overlapping/adjacent inclusive intervals.

    Parameters
    ----------
    intervals : list[tuple[int, int]]
        Unordered inclusive ranges.

    Returns
    -------
    list[tuple[int, int]]
        Minimal set of merged inclusive ranges, sorted by start.
    """
    merged: list[tuple[int, int]] = []
    for start, end in sorted(intervals):
        if merged and start <= merged[-1][1] + 1:
            last_start, last_end = merged[-1]
            merged[-1] = (last_start, max(last_end, end))
        else:
            merged.append((start, end))
    return merged


def subtract_iv(iv: tuple[int, int], covered: list[tuple[int, int]]) -> list[tuple[int, int]]:
    """Parts of the inclusive interval `iv` not inside any `covered` interval.

    `covered` must be merged and sorted (see `merge_intervals`).
    """
    lo, hi = iv
    holes: list[tuple[int, int]] = []
    for start, end in covered:
        if lo > hi or start > hi:
            break
        if end < lo:
            continue
        if start > lo:
            holes.append((lo, start - 1))
        lo = end + 1
    if lo <= hi:
        holes.append((lo, hi))
    return holes


def covered_blocks(merged: Iterable[tuple[int, int]]) -> int:
    """Count blocks in merged (non-overlapping) inclusive intervals."""
    return sum(e - s + 1 for s, e in merged)


def reconcile_logs(
    logs: Iterable[EventLog],
    policy: ReorgPolicy,
    finalized_block_number: int | None,
) -> list[EventLog]:
    """Filter accumulated logs according to `policy`; order is preserved."""
    if policy is ReorgPolicy.KEEP:
        return list(logs)
    kept = [log for log in logs if not log.removed]
    if policy is ReorgPolicy.FINALIZED_ONLY and finalized_block_number is not None:
        kept = [log for log in kept if log.block_number <= finalized_block_number]
    return kept
