"""timegrid.api

Stable *library* entrypoint for timegrid.

Policy:
  - Only names listed in __all__ are considered public API.
  - Everything else is internal and may change without notice.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, List, Union

from timegrid.civil import CivilClock
from timegrid.config import EngineConfig, config_from_env
from timegrid.engine import CalendarEngine
from timegrid.events import parse_event, parse_events
from timegrid.fuzzy import fuzzy_score, normalize_text
from timegrid.indexer import build_day_columns, build_month_cells, bucket_by_day, layout_within_day
from timegrid.interval import arrange_day_entries
from timegrid.julian import days_in_month, from_julian, to_julian, weekday_index
from timegrid.model import CalendarEvent, CivilDate, VisibleHoursWindow
from timegrid.payload import build_payload
from timegrid.query_lang import Query, QueryError, facet_options, filter_events
from timegrid.ranges import advance, compute_visible_range, fetch_window
from timegrid.util.tz import TimezoneRule

JsonPath = Union[str, Path]


def load_events_from_json(path: JsonPath) -> List[CalendarEvent]:
    """Read an events file (a list, or an object with an "events" list) and parse it.

    Malformed records are dropped; a file that is not JSON raises ValueError.
    """
    p = Path(path)
    obj: Any = json.loads(p.read_text(encoding="utf-8"))
    if isinstance(obj, dict):
        obj = obj.get("events")
    if not isinstance(obj, list):
        raise ValueError(f"{p}: expected a list of events or an object with an 'events' list")
    return parse_events(obj)


# --- Public API exports (locked by contract tests) ------------------------
# Keep changes intentional and reviewable.
_PUBLIC_EXPORTS = (
    "CalendarEngine",
    "CivilClock",
    "CivilDate",
    "EngineConfig",
    "Query",
    "QueryError",
    "TimezoneRule",
    "VisibleHoursWindow",
    "advance",
    "arrange_day_entries",
    "bucket_by_day",
    "build_day_columns",
    "build_month_cells",
    "build_payload",
    "compute_visible_range",
    "config_from_env",
    "days_in_month",
    "facet_options",
    "fetch_window",
    "filter_events",
    "from_julian",
    "fuzzy_score",
    "layout_within_day",
    "load_events_from_json",
    "normalize_text",
    "parse_event",
    "parse_events",
    "to_julian",
    "weekday_index",
)

__all__ = [n for n in _PUBLIC_EXPORTS if n in globals()]
# --- /Public API exports --------------------------------------------------
