# timegrid/ranges.py
from __future__ import annotations

from typing import Tuple

from .civil import CivilClock
from .julian import days_in_month, from_julian, to_julian, weekday_index
from .model import VIEW_DAY, VIEW_MONTH, VIEW_WEEK, VIEWS, CivilDate, VisibleRange

MONTH_GRID_DAYS = 42
FETCH_PADDING_DAYS = 14


def _require_view(view: str) -> str:
    if view not in VIEWS:
        raise ValueError(f"Unknown view mode: {view!r} (expected one of {', '.join(VIEWS)})")
    return view


def compute_visible_range(view: str, reference: CivilDate, clock: CivilClock | None = None) -> VisibleRange:
    """Visible day span and label span for `view` around `reference`.

    Month view always covers 6 full Monday-first weeks so the grid stays
    rectangular; its label range is the exact month.
    """
    _require_view(view)

    if view == VIEW_MONTH:
        first = CivilDate(reference.year, reference.month, 1)
        first_julian = to_julian(first)
        start_julian = first_julian - weekday_index(first, clock)
        return VisibleRange(
            view=view,
            start_julian=start_julian,
            end_julian=start_julian + MONTH_GRID_DAYS,
            label_start_julian=first_julian,
            label_end_julian=first_julian + days_in_month(reference.year, reference.month),
        )

    current_julian = to_julian(reference)
    if view == VIEW_WEEK:
        start_julian = current_julian - weekday_index(reference, clock)
        duration = 7
    else:
        start_julian = current_julian
        duration = 1

    return VisibleRange(
        view=view,
        start_julian=start_julian,
        end_julian=start_julian + duration,
        label_start_julian=start_julian,
        label_end_julian=start_julian + duration,
    )


def advance(view: str, reference: CivilDate, direction: int) -> CivilDate:
    """Move the reference date one view step forward (+1) or back (-1).

    Month steps keep the day of month, clamped to the target month's length.
    """
    _require_view(view)
    if direction not in (1, -1):
        raise ValueError(f"direction must be 1 or -1, got {direction!r}")

    if view == VIEW_MONTH:
        month_index = reference.year * 12 + (reference.month - 1) + direction
        year, month0 = divmod(month_index, 12)
        month = month0 + 1
        day = min(reference.day, days_in_month(year, month))
        return CivilDate(year, month, day)

    step = 7 if view == VIEW_WEEK else 1
    return from_julian(to_julian(reference) + direction * step)


def range_bounds_ms(rng: VisibleRange, clock: CivilClock) -> Tuple[int, int]:
    """UTC instants of local midnight at the visible start and (exclusive) end."""
    start_ms = clock.day_start_ms(from_julian(rng.start_julian))
    end_ms = clock.day_start_ms(from_julian(rng.end_julian))
    return start_ms, end_ms


def fetch_window(rng: VisibleRange, clock: CivilClock, padding_days: int = FETCH_PADDING_DAYS) -> Tuple[int, int]:
    """Padded UTC window a data fetcher should request for `rng`.

    Padding on both sides lets one navigation step reuse the previous fetch.
    """
    pad = max(0, int(padding_days))
    start_ms = clock.day_start_ms(from_julian(rng.start_julian - pad))
    end_ms = clock.day_start_ms(from_julian(rng.end_julian + pad))
    return start_ms, end_ms
