# timegrid/config.py
from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Mapping, Optional

from .model import VisibleHoursWindow
from .util.timeparse import parse_visible_hours
from .util.tz import DEFAULT_TZ, normalize_tz_name

ENV_TZ = "TIMEGRID_TZ"
ENV_VISIBLE_HOURS = "TIMEGRID_VISIBLE_HOURS"

DEFAULT_VISIBLE_HOURS = "05:00-24:00"


@dataclass(frozen=True)
class EngineConfig:
    tz: str = DEFAULT_TZ
    visible_hours: VisibleHoursWindow = field(default_factory=VisibleHoursWindow)
    min_event_height_percent: float = 3.0
    min_duration_min: int = 30
    fetch_padding_days: int = 14

    def __post_init__(self) -> None:
        if self.min_duration_min <= 0:
            raise ValueError("min_duration_min must be positive")
        if self.min_event_height_percent < 0:
            raise ValueError("min_event_height_percent must be >= 0")
        if self.fetch_padding_days < 0:
            raise ValueError("fetch_padding_days must be >= 0")


def visible_hours_from_str(s: str) -> VisibleHoursWindow:
    start, end = parse_visible_hours(s)
    return VisibleHoursWindow(start_min=start, end_min=end)


def config_from_env(
    env: Optional[Mapping[str, str]] = None,
    *,
    tz: Optional[str] = None,
    visible_hours: Optional[str] = None,
) -> EngineConfig:
    """Build an EngineConfig from TIMEGRID_* variables; explicit arguments win.

    Raises ValueError for a malformed visible-hours window.
    """
    env = os.environ if env is None else env
    tz_name = normalize_tz_name(tz if tz is not None else env.get(ENV_TZ))
    hours = visible_hours if visible_hours is not None else (env.get(ENV_VISIBLE_HOURS) or DEFAULT_VISIBLE_HOURS)
    return EngineConfig(tz=tz_name, visible_hours=visible_hours_from_str(hours))
