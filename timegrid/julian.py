# timegrid/julian.py
"""Gregorian date <-> Julian day number arithmetic.

Julian day numbers give every civil date a linear integer so the grid code
can add, subtract and enumerate days without month or leap-year branches.
"""

from __future__ import annotations

from typing import Iterator, Optional

from .civil import CivilClock
from .model import CivilDate

# JDN of 1970-01-01.
UNIX_EPOCH_JULIAN = 2440588


def _raw_julian(year: int, month: int, day: int) -> int:
    a = (14 - month) // 12
    y = year + 4800 - a
    m = month + 12 * a - 3
    return day + (153 * m + 2) // 5 + 365 * y + y // 4 - y // 100 + y // 400 - 32045


def days_in_month(year: int, month: int) -> int:
    """Length of a month: first of next month minus first of this month."""
    if not (1 <= month <= 12):
        raise ValueError(f"Invalid month: {month!r}")
    ny, nm = (year + 1, 1) if month == 12 else (year, month + 1)
    return _raw_julian(ny, nm, 1) - _raw_julian(year, month, 1)


def to_julian(date: CivilDate) -> int:
    if date.year < 1:
        raise ValueError(f"Year out of range: {date.year!r}")
    if not (1 <= date.day <= days_in_month(date.year, date.month)):
        raise ValueError(f"Invalid date: {date.isoformat()}")
    return _raw_julian(date.year, date.month, date.day)


def from_julian(julian: int) -> CivilDate:
    j = int(julian) + 68569
    c = (4 * j) // 146097
    j = j - (146097 * c + 3) // 4
    d = (4000 * (j + 1)) // 1461001
    j = j - (1461 * d) // 4 + 31
    m = (80 * j) // 2447
    day = j - (2447 * m) // 80
    j = m // 11
    month = m + 2 - 12 * j
    year = 100 * (c - 49) + d + j
    return CivilDate(year, month, day)


def weekday_index(date: CivilDate, clock: Optional[CivilClock] = None) -> int:
    """Monday = 0 .. Sunday = 6.

    With a clock, the day is read back as the civil date of the date's local
    noon, so any UTC offset (including +13 and +14) gives the same answer.
    """
    julian = to_julian(date)
    if clock is not None:
        julian = to_julian(clock.civil_date(clock.from_civil(date, 12, 0)))
    # JDN 0 fell on a Monday.
    return julian % 7


def add_days(date: CivilDate, days: int) -> CivilDate:
    return from_julian(to_julian(date) + int(days))


def iter_julian(start_julian: int, end_julian: int) -> Iterator[int]:
    """Julian days in [start, end)."""
    jd = int(start_julian)
    while jd < end_julian:
        yield jd
        jd += 1
