# timegrid/interval.py
from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Dict, List, Sequence, Tuple

from .model import DayBucketEntry


@dataclass(frozen=True)
class SweepState:
    active: Tuple[Tuple[int, int], ...] = ()   # (end_minutes, column) of entries still running
    group_id: int = 0
    group_columns: Tuple[Tuple[int, int], ...] = ()   # (group_id, max column + 1)


def _first_free_column(active: Tuple[Tuple[int, int], ...]) -> int:
    used = {col for _end, col in active}
    column = 0
    while column in used:
        column += 1
    return column


def _step(state: SweepState, start_min: int, end_min: int) -> Tuple[SweepState, int]:
    """Place one interval; returns the next state and the chosen column."""
    active = tuple(a for a in state.active if a[0] > start_min)

    group_id = state.group_id
    if not active:
        group_id += 1

    column = _first_free_column(active)

    counts = dict(state.group_columns)
    counts[group_id] = max(counts.get(group_id, 0), column + 1)

    nxt = SweepState(
        active=active + ((end_min, column),),
        group_id=group_id,
        group_columns=tuple(sorted(counts.items())),
    )
    return nxt, column


def arrange_day_entries(entries: Sequence[DayBucketEntry]) -> List[DayBucketEntry]:
    """Assign display columns to one day's entries.

    Greedy first-fit sweep in (start, end) order, which is optimal for
    interval graphs. Entries whose [start, end) overlap never share a column;
    every entry of an overlap-connected group gets that group's column count.
    Returns new entries sorted by (start_minutes, end_minutes).
    """
    ordered = sorted(entries, key=lambda e: (e.start_minutes, e.end_minutes))

    state = SweepState()
    placed: List[Tuple[DayBucketEntry, int, int]] = []
    for entry in ordered:
        state, column = _step(state, entry.start_minutes, entry.end_minutes)
        placed.append((entry, column, state.group_id))

    group_columns: Dict[int, int] = dict(state.group_columns)
    return [
        replace(entry, column=column, columns=group_columns.get(group_id, 1))
        for entry, column, group_id in placed
    ]


def entry_geometry(entry: DayBucketEntry) -> Tuple[float, float]:
    """(left_percent, width_percent) of an arranged entry inside its day column."""
    columns = max(1, int(entry.columns))
    width = 100.0 / columns
    return entry.column * width, width
