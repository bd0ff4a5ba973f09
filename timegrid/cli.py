# timegrid/cli.py
from __future__ import annotations

import argparse
import json
import os
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from .config import ENV_TZ, ENV_VISIBLE_HOURS, DEFAULT_VISIBLE_HOURS, config_from_env
from .engine import CalendarEngine
from .events import parse_events
from .model import VIEWS, VIEW_MONTH
from .payload import build_payload, dumps
from .query_lang import Query, QueryError
from .util.timeparse import parse_date_yyyy_mm_dd, parse_instant_ms


def _die(msg: str, rc: int = 2) -> int:
    print(f"[timegrid] ERROR: {msg}", file=sys.stderr)
    return rc


def _read_events(path: Path) -> List[Any]:
    obj = json.loads(path.read_text(encoding="utf-8", errors="replace"))
    if isinstance(obj, dict):
        obj = obj.get("events")
    if not isinstance(obj, list):
        raise ValueError("input must be a list of events or an object with an 'events' list")
    return obj


def _parse_filters(items: List[str]) -> Dict[str, str]:
    out: Dict[str, str] = {}
    for item in items:
        key, sep, value = item.partition("=")
        if not sep or not key.strip():
            raise ValueError(f"--filter expects KEY=VALUE, got {item!r}")
        key = key.strip()
        out[key] = f"{out[key]},{value}" if key in out else value
    return out


def main(argv: Optional[List[str]] = None) -> int:
    ap = argparse.ArgumentParser(
        prog="timegrid",
        description="Lay out calendar events (sessions and variants) for a month/week/day view.",
    )
    ap.add_argument("--in", dest="in_json", required=True, help="Events JSON (list, or object with 'events')")
    ap.add_argument("--view", default=VIEW_MONTH, choices=VIEWS, help="View granularity (default: month)")
    ap.add_argument("--date", default=None, help="Reference date YYYY-MM-DD (default: today in --tz)")
    ap.add_argument(
        "--tz",
        default=None,
        help=f"Civil timezone for the grid (default: env {ENV_TZ} or Europe/Madrid)",
    )
    ap.add_argument(
        "--visible-hours",
        default=None,
        help=f"Day/week viewport, e.g. {DEFAULT_VISIBLE_HOURS} (default: env {ENV_VISIBLE_HOURS})",
    )
    ap.add_argument("--q", default="", help="Query: facet:value tokens plus free text")
    ap.add_argument("--filter", action="append", default=[], help="Facet filter KEY=VALUE (repeatable)")
    ap.add_argument("--now", default=None, help="ISO instant used as 'now' (default: current time)")
    ap.add_argument("--out", default="-", help="Output JSON path (default: stdout)")
    ap.add_argument("--pretty", action="store_true", help="Pretty JSON output")
    ns = ap.parse_args(argv)

    try:
        cfg = config_from_env(os.environ, tz=ns.tz, visible_hours=ns.visible_hours)
        engine = CalendarEngine(cfg)
    except ValueError as e:
        return _die(f"invalid configuration: {e}")

    now_ms = None
    if ns.now:
        now_ms = parse_instant_ms(ns.now)
        if now_ms is None:
            return _die(f"invalid --now value: {ns.now!r}")

    try:
        reference = parse_date_yyyy_mm_dd(ns.date) if ns.date else engine.today(now_ms)
    except ValueError as e:
        return _die(f"invalid --date value: {e}")

    p = Path(ns.in_json)
    if not p.exists():
        return _die(f"missing events file: {p}")
    try:
        events = parse_events(_read_events(p))
    except ValueError as e:
        return _die(f"failed to read events: {p} ({e})")

    try:
        query = Query.parse(ns.q)
        facets = query.facet_filters()
        for key, value in _parse_filters(ns.filter).items():
            facets[key] = f"{facets[key]},{value}" if key in facets else value
    except (QueryError, ValueError) as e:
        return _die(str(e))

    layout = engine.render(ns.view, reference, events, facets, query.text, now_ms)
    txt = dumps(build_payload(layout), pretty=ns.pretty)

    if ns.out == "-":
        print(txt)
        return 0

    out_path = Path(ns.out)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_text(txt + "\n", encoding="utf-8", newline="\n")
    print(str(out_path))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
