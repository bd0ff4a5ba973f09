# timegrid/indexer.py
from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Sequence

from .civil import CivilClock, format_hhmm, iso_utc
from .interval import arrange_day_entries
from .julian import from_julian, iter_julian, to_julian, weekday_index
from .model import (
    DAY_MINUTES,
    CalendarEvent,
    CivilDate,
    DayBucketEntry,
    MonthDayCell,
    VisibleHoursWindow,
    VisibleRange,
    WeekColumn,
)
from .ranges import range_bounds_ms

MIN_EVENT_HEIGHT_PERCENT = 3.0
MIN_DURATION_MIN = 30


def bucket_by_day(events: Iterable[CalendarEvent], clock: CivilClock) -> Dict[int, List[CalendarEvent]]:
    """Map each Julian day to the events touching it, in input order.

    An event ending exactly at local 00:00 does not occupy that final day.
    Inverted spans are kept on their start day.
    """
    out: Dict[int, List[CalendarEvent]] = {}
    for ev in events:
        start = clock.to_civil(ev.start_ms)
        end = clock.to_civil(ev.end_ms)
        start_julian = to_julian(start.date)
        end_julian = to_julian(end.date)
        if end_julian > start_julian and end.hour == 0 and end.minute == 0:
            end_julian -= 1
        end_julian = max(end_julian, start_julian)
        for jd in range(start_julian, end_julian + 1):
            out.setdefault(jd, []).append(ev)
    return out


def _clip_minutes(
    start_minutes: int,
    end_minutes: int,
    window: VisibleHoursWindow,
    min_height_percent: float,
) -> tuple[float, float, bool, bool]:
    clipped_at_start = start_minutes < window.start_min
    clipped_at_end = end_minutes > window.end_min
    visible_start = min(max(start_minutes, window.start_min), window.end_min)
    visible_end = min(max(end_minutes, visible_start), window.end_min)
    visible_duration = max(visible_end - visible_start, 0)
    top = (visible_start - window.start_min) / window.duration_min * 100.0
    height = max(visible_duration / window.duration_min * 100.0, float(min_height_percent))
    return top, height, clipped_at_start, clipped_at_end


def layout_within_day(
    day_start_ms: int,
    day_end_ms: int,
    events: Iterable[CalendarEvent],
    clock: CivilClock,
    window: Optional[VisibleHoursWindow] = None,
    *,
    min_duration_min: int = MIN_DURATION_MIN,
    min_height_percent: float = MIN_EVENT_HEIGHT_PERCENT,
) -> List[DayBucketEntry]:
    """Position events touching [day_start_ms, day_end_ms) on one day column.

    Minutes are civil wall-clock minutes (0..1440). Spans that are empty or
    inverted after clamping are widened to `min_duration_min`. Clipping by the
    visible-hours window also sets the continuation flags. Columns are left at
    0/1; see arrange_day_entries.
    """
    window = window or VisibleHoursWindow()
    entries: List[DayBucketEntry] = []

    for ev in events:
        start_ms = int(ev.start_ms)
        end_ms = max(int(ev.end_ms), start_ms)
        if start_ms >= day_end_ms or end_ms < day_start_ms:
            continue
        if end_ms == day_start_ms and start_ms < day_start_ms:
            # ended exactly at this day's midnight
            continue

        continues_from_previous = start_ms < day_start_ms
        continues_into_next = end_ms > day_end_ms
        overlap_start = max(start_ms, day_start_ms)
        overlap_end = min(end_ms, day_end_ms)

        start_minutes = 0 if continues_from_previous else clock.to_civil(overlap_start).minute_of_day
        if continues_into_next or overlap_end >= day_end_ms:
            end_minutes = DAY_MINUTES
        else:
            end_minutes = clock.to_civil(overlap_end).minute_of_day

        if end_minutes <= start_minutes:
            end_minutes = min(DAY_MINUTES, start_minutes + int(min_duration_min))

        top, height, clipped_at_start, clipped_at_end = _clip_minutes(
            start_minutes, end_minutes, window, min_height_percent
        )

        entries.append(
            DayBucketEntry(
                event=ev,
                start_minutes=start_minutes,
                end_minutes=end_minutes,
                top_percent=top,
                height_percent=height,
                continues_from_previous_day=continues_from_previous or clipped_at_start,
                continues_into_next_day=continues_into_next or clipped_at_end,
                display_start="00:00" if continues_from_previous else format_hhmm(start_minutes),
                display_end="24:00" if continues_into_next else format_hhmm(end_minutes),
            )
        )

    return entries


def _is_same_day(date: CivilDate, today: Optional[CivilDate]) -> bool:
    return today is not None and date == today


def build_month_cells(
    rng: VisibleRange,
    events: Sequence[CalendarEvent],
    clock: CivilClock,
    reference: CivilDate,
    now_ms: Optional[int] = None,
) -> List[MonthDayCell]:
    groups = bucket_by_day(events, clock)
    today = clock.today(now_ms)
    cells: List[MonthDayCell] = []
    for jd in iter_julian(rng.start_julian, rng.end_julian):
        date = from_julian(jd)
        day_events = sorted(groups.get(jd, ()), key=lambda e: e.start_ms)
        cells.append(
            MonthDayCell(
                julian=jd,
                date=date,
                iso=iso_utc(clock.day_start_ms(date)),
                is_current_month=(date.year, date.month) == (reference.year, reference.month),
                is_today=_is_same_day(date, today),
                events=tuple(day_events),
            )
        )
    return cells


def build_day_columns(
    rng: VisibleRange,
    events: Sequence[CalendarEvent],
    clock: CivilClock,
    window: Optional[VisibleHoursWindow] = None,
    now_ms: Optional[int] = None,
    *,
    min_duration_min: int = MIN_DURATION_MIN,
    min_height_percent: float = MIN_EVENT_HEIGHT_PERCENT,
) -> List[WeekColumn]:
    today = clock.today(now_ms)
    range_start_ms, range_end_ms = range_bounds_ms(rng, clock)
    in_range = [
        ev for ev in events
        if max(ev.end_ms, ev.start_ms) >= range_start_ms and ev.start_ms < range_end_ms
    ]

    columns: List[WeekColumn] = []
    for jd in iter_julian(rng.start_julian, rng.end_julian):
        date = from_julian(jd)
        day_start_ms = clock.day_start_ms(date)
        day_end_ms = clock.day_start_ms(from_julian(jd + 1))
        entries = layout_within_day(
            day_start_ms,
            day_end_ms,
            in_range,
            clock,
            window,
            min_duration_min=min_duration_min,
            min_height_percent=min_height_percent,
        )
        columns.append(
            WeekColumn(
                julian=jd,
                date=date,
                iso=iso_utc(day_start_ms),
                weekday=weekday_index(date, clock),
                is_today=_is_same_day(date, today),
                entries=tuple(arrange_day_entries(entries)),
            )
        )
    return columns
