# timegrid/util/tz.py
from __future__ import annotations

import datetime as dt
import re
from dataclasses import dataclass
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

DEFAULT_TZ = "Europe/Madrid"

_LOCAL_ALIASES = frozenset({"local", "system", "native"})
_UTC_ALIASES = frozenset({"utc", "z", "gmt", "utc0", "utc+0"})
_OFFSET_RE = re.compile(r"^([+-])(\d{2}):?(\d{2})$")


def normalize_tz_name(name: Optional[str]) -> str:
    """Canonical config string for a timezone identifier.

    Blank means DEFAULT_TZ; local/UTC aliases collapse to "local" and "UTC";
    IANA names and fixed offsets ("+01:00", "-0530") are kept as given.
    """
    text = "" if name is None else str(name).strip()
    if not text:
        return DEFAULT_TZ
    low = text.lower()
    if low in _LOCAL_ALIASES:
        return "local"
    if low in _UTC_ALIASES:
        return "UTC"
    return text


def _fixed_offset(tz_name: str) -> Optional[dt.tzinfo]:
    m = _OFFSET_RE.match(tz_name)
    if not m:
        return None
    sign_s, hh_s, mm_s = m.groups()
    hours, minutes = int(hh_s), int(mm_s)
    if hours > 23 or minutes > 59:
        raise ValueError(f"Invalid timezone offset: {tz_name!r}")
    total = hours * 60 + minutes
    return dt.timezone(dt.timedelta(minutes=-total if sign_s == "-" else total))


def resolve_tz(name: Optional[str]) -> dt.tzinfo:
    """tzinfo for a timezone name; raises ValueError if it cannot be resolved."""
    tz_name = normalize_tz_name(name)
    if tz_name == "UTC":
        return dt.timezone.utc
    if tz_name == "local":
        return dt.datetime.now().astimezone().tzinfo or dt.timezone.utc

    fixed = _fixed_offset(tz_name)
    if fixed is not None:
        return fixed

    try:
        return ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError, OSError) as ex:
        raise ValueError(f"Invalid timezone identifier: {tz_name!r}") from ex


@dataclass(frozen=True)
class TimezoneRule:
    """Offset rules of one civil timezone, resolved once at configuration time.

    Engines receive a rule explicitly instead of reading module globals, so
    tests can swap in a fixed offset or another IANA zone.
    """

    name: str
    tzinfo: dt.tzinfo

    @classmethod
    def from_name(cls, name: Optional[str]) -> "TimezoneRule":
        tz_name = normalize_tz_name(name)
        return cls(name=tz_name, tzinfo=resolve_tz(tz_name))

    def offset_minutes_at(self, ms: int) -> int:
        """Minutes east of UTC in force at epoch-ms instant `ms`."""
        aware = dt.datetime.fromtimestamp(int(ms) / 1000.0, tz=dt.timezone.utc).astimezone(self.tzinfo)
        off = aware.utcoffset()
        return 0 if off is None else int(off.total_seconds() // 60)
