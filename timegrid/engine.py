# timegrid/engine.py
from __future__ import annotations

from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from .civil import CivilClock
from .config import EngineConfig
from .indexer import bucket_by_day, build_day_columns, build_month_cells
from .model import VIEW_MONTH, CalendarEvent, CalendarLayout, CivilDate, MonthDayCell, VisibleRange, WeekColumn
from .query_lang import filter_events
from .ranges import advance, compute_visible_range, fetch_window


class CalendarEngine:
    """Timezone-bound facade over the range, filter, bucketing and layout steps.

    Holds only immutable configuration; every call recomputes from its inputs.
    """

    def __init__(self, config: Optional[EngineConfig] = None) -> None:
        self.config = config or EngineConfig()
        self.clock = CivilClock.for_tz(self.config.tz)

    def today(self, now_ms: Optional[int] = None) -> CivilDate:
        return self.clock.today(now_ms)

    def visible_range(self, view: str, reference: CivilDate) -> VisibleRange:
        return compute_visible_range(view, reference, self.clock)

    def advance(self, view: str, reference: CivilDate, direction: int) -> CivilDate:
        return advance(view, reference, direction)

    def fetch_window(self, rng: VisibleRange) -> Tuple[int, int]:
        return fetch_window(rng, self.clock, self.config.fetch_padding_days)

    def filter(
        self,
        events: Sequence[CalendarEvent],
        facet_filters: Optional[Mapping[str, str]] = None,
        query: str = "",
        now_ms: Optional[int] = None,
    ) -> List[CalendarEvent]:
        return filter_events(events, facet_filters, query, now_ms)

    def bucket(self, events: Sequence[CalendarEvent]) -> Dict[int, List[CalendarEvent]]:
        return bucket_by_day(events, self.clock)

    def month_cells(
        self,
        rng: VisibleRange,
        events: Sequence[CalendarEvent],
        reference: CivilDate,
        now_ms: Optional[int] = None,
    ) -> List[MonthDayCell]:
        return build_month_cells(rng, events, self.clock, reference, now_ms)

    def day_columns(
        self,
        rng: VisibleRange,
        events: Sequence[CalendarEvent],
        now_ms: Optional[int] = None,
    ) -> List[WeekColumn]:
        return build_day_columns(
            rng,
            events,
            self.clock,
            self.config.visible_hours,
            now_ms,
            min_duration_min=self.config.min_duration_min,
            min_height_percent=self.config.min_event_height_percent,
        )

    def render(
        self,
        view: str,
        reference: CivilDate,
        events: Sequence[CalendarEvent],
        facet_filters: Optional[Mapping[str, str]] = None,
        query: str = "",
        now_ms: Optional[int] = None,
    ) -> CalendarLayout:
        """Full pipeline: range -> filter -> bucket/position -> columns."""
        rng = self.visible_range(view, reference)
        kept = self.filter(events, facet_filters, query, now_ms)
        if view == VIEW_MONTH:
            return CalendarLayout(
                view=view,
                reference_date=reference,
                range=rng,
                events=tuple(kept),
                month_cells=tuple(self.month_cells(rng, kept, reference, now_ms)),
                tz=self.clock.tz_name,
            )
        return CalendarLayout(
            view=view,
            reference_date=reference,
            range=rng,
            events=tuple(kept),
            day_columns=tuple(self.day_columns(rng, kept, now_ms)),
            tz=self.clock.tz_name,
        )
