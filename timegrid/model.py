# timegrid/model.py
from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import ClassVar, Mapping, Optional, Tuple, Union

DAY_MINUTES = 24 * 60

VIEW_MONTH = "month"
VIEW_WEEK = "week"
VIEW_DAY = "day"
VIEWS: Tuple[str, ...] = (VIEW_MONTH, VIEW_WEEK, VIEW_DAY)

KIND_SESSION = "session"
KIND_VARIANT = "variant"


@dataclass(frozen=True, order=True)
class CivilDate:
    year: int
    month: int
    day: int

    def isoformat(self) -> str:
        return f"{self.year:04d}-{self.month:02d}-{self.day:02d}"


@dataclass(frozen=True)
class CivilDateTime:
    year: int
    month: int
    day: int
    hour: int
    minute: int
    utc_offset_min: int

    @property
    def date(self) -> CivilDate:
        return CivilDate(self.year, self.month, self.day)

    @property
    def minute_of_day(self) -> int:
        return self.hour * 60 + self.minute


@dataclass(frozen=True)
class VisibleHoursWindow:
    """Sub-range of the civil day shown by the day/week grid (minutes from 00:00)."""

    start_min: int = 5 * 60
    end_min: int = DAY_MINUTES

    def __post_init__(self) -> None:
        if not (0 <= self.start_min < self.end_min <= DAY_MINUTES):
            raise ValueError(f"invalid visible hours window: {self.start_min}-{self.end_min}")

    @property
    def duration_min(self) -> int:
        return self.end_min - self.start_min


@dataclass(frozen=True)
class VisibleRange:
    view: str
    start_julian: int
    end_julian: int          # exclusive
    label_start_julian: int
    label_end_julian: int    # exclusive

    @property
    def day_count(self) -> int:
        return self.end_julian - self.start_julian

    @property
    def label_day_count(self) -> int:
        return self.label_end_julian - self.label_start_julian


@dataclass(frozen=True)
class Resource:
    id: str
    name: str
    secondary: Optional[str] = None

    @property
    def display_name(self) -> str:
        sec = (self.secondary or "").strip()
        return f"{self.name} {sec}".strip() if sec else self.name


@dataclass(frozen=True)
class SessionEvent:
    kind: ClassVar[str] = KIND_SESSION

    id: str
    start_ms: int
    end_ms: int
    title: str = ""
    status: str = "BORRADOR"

    deal_id: str = ""
    deal_title: Optional[str] = None
    deal_organization_name: Optional[str] = None
    deal_pipeline_id: Optional[str] = None
    deal_address: Optional[str] = None
    deal_sede_label: Optional[str] = None
    deal_caes_label: Optional[str] = None
    deal_fundae_label: Optional[str] = None
    deal_hotel_label: Optional[str] = None
    deal_transporte: Optional[str] = None

    product_id: str = ""
    product_name: Optional[str] = None
    product_code: Optional[str] = None

    address: Optional[str] = None
    comments: Optional[str] = None
    room: Optional[Resource] = None
    trainers: Tuple[Resource, ...] = ()
    units: Tuple[Resource, ...] = ()
    student_names: Tuple[str, ...] = ()
    students_total: Optional[int] = None


@dataclass(frozen=True)
class VariantProduct:
    id: str
    name: Optional[str] = None
    code: Optional[str] = None
    category: Optional[str] = None


@dataclass(frozen=True)
class VariantDeal:
    id: Optional[str] = None
    title: Optional[str] = None
    organization_name: Optional[str] = None
    pipeline_id: Optional[str] = None
    training_address: Optional[str] = None
    sede_label: Optional[str] = None
    caes_label: Optional[str] = None
    fundae_label: Optional[str] = None
    hotel_label: Optional[str] = None
    transporte: Optional[str] = None


@dataclass(frozen=True)
class VariantEvent:
    kind: ClassVar[str] = KIND_VARIANT

    id: str
    start_ms: int
    end_ms: int
    product: VariantProduct
    variant_id: str = ""
    name: Optional[str] = None
    status: Optional[str] = None
    sede: Optional[str] = None
    trainers: Tuple[Resource, ...] = ()
    room: Optional[Resource] = None
    units: Tuple[Resource, ...] = ()
    students_total: Optional[int] = None
    deals: Tuple[VariantDeal, ...] = ()


CalendarEvent = Union[SessionEvent, VariantEvent]


@dataclass(frozen=True)
class DayBucketEntry:
    event: CalendarEvent
    start_minutes: int
    end_minutes: int
    top_percent: float
    height_percent: float
    continues_from_previous_day: bool
    continues_into_next_day: bool
    display_start: str
    display_end: str
    column: int = 0
    columns: int = 1

    @property
    def kind(self) -> str:
        return self.event.kind


@dataclass(frozen=True)
class FilterRow:
    id: str
    kind: str
    normalized: Mapping[str, str]
    search: str

    def __post_init__(self) -> None:
        # read-only view over a private copy
        object.__setattr__(self, "normalized", MappingProxyType(dict(self.normalized)))


@dataclass(frozen=True)
class MonthDayCell:
    julian: int
    date: CivilDate
    iso: str
    is_current_month: bool
    is_today: bool
    events: Tuple[CalendarEvent, ...]


@dataclass(frozen=True)
class WeekColumn:
    julian: int
    date: CivilDate
    iso: str
    weekday: int
    is_today: bool
    entries: Tuple[DayBucketEntry, ...]


@dataclass(frozen=True)
class CalendarLayout:
    view: str
    reference_date: CivilDate
    range: VisibleRange
    events: Tuple[CalendarEvent, ...]
    month_cells: Tuple[MonthDayCell, ...] = ()
    day_columns: Tuple[WeekColumn, ...] = ()
    tz: str = ""


__all__ = [
    "CalendarEvent",
    "CalendarLayout",
    "CivilDate",
    "CivilDateTime",
    "DayBucketEntry",
    "FilterRow",
    "MonthDayCell",
    "Resource",
    "SessionEvent",
    "VariantDeal",
    "VariantEvent",
    "VariantProduct",
    "VisibleHoursWindow",
    "VisibleRange",
    "WeekColumn",
]
