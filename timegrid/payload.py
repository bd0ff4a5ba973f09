# timegrid/payload.py
from __future__ import annotations

import json
from typing import Any, Dict

from .civil import iso_utc
from .interval import entry_geometry
from .julian import from_julian
from .model import (
    CalendarEvent,
    CalendarLayout,
    DayBucketEntry,
    MonthDayCell,
    SessionEvent,
    VariantEvent,
    WeekColumn,
)

try:
    import orjson  # type: ignore
except Exception:  # pragma: no cover
    orjson = None  # type: ignore

PAYLOAD_VERSION = 1


def event_title(ev: CalendarEvent) -> str:
    if isinstance(ev, SessionEvent):
        return ev.title
    if isinstance(ev, VariantEvent):
        return ev.name or ev.product.name or ev.product.code or ev.id
    raise TypeError(f"unsupported event type: {type(ev).__name__}")


def _event(ev: CalendarEvent) -> Dict[str, Any]:
    return {
        "id": ev.id,
        "kind": ev.kind,
        "title": event_title(ev),
        "start": iso_utc(ev.start_ms),
        "end": iso_utc(ev.end_ms),
    }


def _entry(entry: DayBucketEntry) -> Dict[str, Any]:
    left, width = entry_geometry(entry)
    return {
        "event": _event(entry.event),
        "start_minutes": entry.start_minutes,
        "end_minutes": entry.end_minutes,
        "top_percent": round(entry.top_percent, 4),
        "height_percent": round(entry.height_percent, 4),
        "left_percent": round(left, 4),
        "width_percent": round(width, 4),
        "column": entry.column,
        "columns": entry.columns,
        "continues_from_previous_day": entry.continues_from_previous_day,
        "continues_into_next_day": entry.continues_into_next_day,
        "display_start": entry.display_start,
        "display_end": entry.display_end,
    }


def _cell(cell: MonthDayCell) -> Dict[str, Any]:
    return {
        "julian": cell.julian,
        "date": cell.date.isoformat(),
        "iso": cell.iso,
        "is_current_month": cell.is_current_month,
        "is_today": cell.is_today,
        "events": [_event(ev) for ev in cell.events],
    }


def _column(col: WeekColumn) -> Dict[str, Any]:
    return {
        "julian": col.julian,
        "date": col.date.isoformat(),
        "iso": col.iso,
        "weekday": col.weekday,
        "is_today": col.is_today,
        "entries": [_entry(e) for e in col.entries],
    }


def build_payload(layout: CalendarLayout) -> Dict[str, Any]:
    """JSON-ready dict for a computed layout."""
    rng = layout.range
    return {
        "version": PAYLOAD_VERSION,
        "tz": layout.tz,
        "view": layout.view,
        "reference_date": layout.reference_date.isoformat(),
        "range": {
            "start": from_julian(rng.start_julian).isoformat(),
            "end": from_julian(rng.end_julian).isoformat(),
            "label_start": from_julian(rng.label_start_julian).isoformat(),
            "label_end": from_julian(rng.label_end_julian).isoformat(),
            "start_julian": rng.start_julian,
            "end_julian": rng.end_julian,
            "label_start_julian": rng.label_start_julian,
            "label_end_julian": rng.label_end_julian,
        },
        "event_count": len(layout.events),
        "month_cells": [_cell(c) for c in layout.month_cells],
        "day_columns": [_column(c) for c in layout.day_columns],
    }


def dumps(payload: Dict[str, Any], *, pretty: bool = False) -> str:
    if not isinstance(payload, dict):
        raise TypeError(f"payload must be dict, got {type(payload).__name__}")
    if orjson is not None:
        opts = orjson.OPT_INDENT_2 if pretty else 0
        return orjson.dumps(payload, option=opts).decode("utf-8")
    return json.dumps(payload, ensure_ascii=False, indent=2 if pretty else None, separators=None if pretty else (",", ":"))
