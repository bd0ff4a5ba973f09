# timegrid/util/timeparse.py
from __future__ import annotations

import datetime as dt
import re
from typing import Optional, Tuple

from ..model import CivilDate

_HHMM_RE = re.compile(r"^(\d{1,2}):(\d{2})$")
_BASIC_UTC_RE = re.compile(r"^(\d{8})T(\d{6})Z$")  # e.g. 20240310T083000Z


def parse_hhmm(s: str, *, allow_24: bool = False) -> Tuple[int, int]:
    m = _HHMM_RE.match(s.strip())
    if not m:
        raise ValueError(f"Invalid HH:MM: {s!r}")
    hh = int(m.group(1))
    mm = int(m.group(2))
    if allow_24 and hh == 24 and mm == 0:
        return hh, mm
    if not (0 <= hh <= 23 and 0 <= mm <= 59):
        raise ValueError(f"Invalid HH:MM: {s!r}")
    return hh, mm


def parse_visible_hours(s: str) -> Tuple[int, int]:
    """Parse a window like "05:00-24:00" into (start_min, end_min)."""
    parts = s.split("-")
    if len(parts) != 2:
        raise ValueError("visible hours must be like 05:00-24:00")
    sh, sm = parse_hhmm(parts[0])
    eh, em = parse_hhmm(parts[1], allow_24=True)
    start = sh * 60 + sm
    end = eh * 60 + em
    if end <= start:
        raise ValueError("visible hours end must be after start")
    return start, end


def parse_date_yyyy_mm_dd(s: str) -> CivilDate:
    d = dt.datetime.strptime(s.strip(), "%Y-%m-%d").date()
    return CivilDate(d.year, d.month, d.day)


def parse_instant_ms(s: Optional[str]) -> Optional[int]:
    """Parse an ISO-8601 instant into epoch ms; None when unparsable.

    Strings without an explicit offset are taken as UTC.
    """
    if not s:
        return None
    s = str(s).strip()
    if not s:
        return None

    m = _BASIC_UTC_RE.match(s)
    if m:
        try:
            aware = dt.datetime.strptime(m.group(1) + m.group(2), "%Y%m%d%H%M%S").replace(tzinfo=dt.timezone.utc)
        except ValueError:
            return None
        return int(aware.timestamp() * 1000)

    try:
        d = dt.datetime.fromisoformat(s.replace("Z", "+00:00"))
    except ValueError:
        return None
    if d.tzinfo is None:
        d = d.replace(tzinfo=dt.timezone.utc)
    return int(round(d.timestamp() * 1000))
