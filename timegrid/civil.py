# timegrid/civil.py
from __future__ import annotations

import datetime as dt
from typing import Optional

from .model import CivilDate, CivilDateTime
from .util.tz import TimezoneRule

MIN_MS = 60_000


def _round_ms_to_min(ms: int) -> int:
    # Round to nearest minute (handles seconds if ever present)
    if ms >= 0:
        return (ms + (MIN_MS // 2)) // MIN_MS
    return -((-ms + (MIN_MS // 2)) // MIN_MS)


class CivilClock:
    """Converts UTC instants (epoch ms) to civil fields in one timezone and back.

    Offsets for a civil date are always resolved at that date's noon so that the
    forward and backward conversions agree. Civil times inside a DST gap (the
    spring-forward hour) are built with the noon offset and are not adjusted.
    On a transition day the noon offset also differs from the one in force at
    00:00, so from_civil(date) is not that day's real midnight; grid columns
    use day_start_ms, which corrects for it, to stay in line with the civil
    dates used by bucket_by_day.
    """

    def __init__(self, rule: TimezoneRule) -> None:
        self.rule = rule

    @classmethod
    def for_tz(cls, name: Optional[str]) -> "CivilClock":
        return cls(TimezoneRule.from_name(name))

    @property
    def tz_name(self) -> str:
        return self.rule.name

    def to_civil(self, ms: int) -> CivilDateTime:
        minute_ms = _round_ms_to_min(int(ms)) * MIN_MS
        local = dt.datetime.fromtimestamp(minute_ms / 1000.0, tz=dt.timezone.utc).astimezone(self.rule.tzinfo)
        off = local.utcoffset()
        off_min = int(off.total_seconds() // 60) if off is not None else 0
        return CivilDateTime(
            year=local.year,
            month=local.month,
            day=local.day,
            hour=local.hour,
            minute=local.minute,
            utc_offset_min=off_min,
        )

    def offset_for_date(self, date: CivilDate) -> int:
        noon = dt.datetime(date.year, date.month, date.day, 12, 0, tzinfo=dt.timezone.utc)
        return self.rule.offset_minutes_at(int(noon.timestamp() * 1000))

    def from_civil(self, date: CivilDate, hour: int = 0, minute: int = 0) -> int:
        off = self.offset_for_date(date)
        fixed = dt.timezone(dt.timedelta(minutes=off))
        aware = dt.datetime(date.year, date.month, date.day, tzinfo=fixed) + dt.timedelta(hours=hour, minutes=minute)
        return int(aware.timestamp()) * 1000

    def day_start_ms(self, date: CivilDate) -> int:
        """Instant of local 00:00 on `date`, using the offset in force at that instant."""
        ms = self.from_civil(date)
        drift = self.offset_for_date(date) - self.rule.offset_minutes_at(ms)
        return ms + drift * MIN_MS

    def civil_date(self, ms: int) -> CivilDate:
        return self.to_civil(ms).date

    def today(self, now_ms: Optional[int] = None) -> CivilDate:
        if now_ms is None:
            now_ms = int(dt.datetime.now(tz=dt.timezone.utc).timestamp() * 1000)
        return self.civil_date(now_ms)


def format_hhmm(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def iso_utc(ms: int) -> str:
    d = dt.datetime.fromtimestamp(int(ms) / 1000.0, tz=dt.timezone.utc)
    return d.isoformat(timespec="milliseconds").replace("+00:00", "Z")
