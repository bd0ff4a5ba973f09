# timegrid/query_lang.py
from __future__ import annotations

import re
import shlex
import time
from dataclasses import dataclass
from typing import Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from .fuzzy import NO_MATCH, fuzzy_score, normalize_text
from .model import CalendarEvent, FilterRow, SessionEvent, VariantEvent
from .util.console import eprint, obs_enabled
from .util.ordered import OrderedKeySet


class QueryError(ValueError):
    """Raised for query strings that cannot be tokenized."""


FILTER_VALUE_SEPARATOR = ","

FACET_KEYS: Tuple[str, ...] = (
    "deal_id",
    "deal_title",
    "deal_organization_name",
    "deal_pipeline_id",
    "deal_training_address",
    "deal_sede_label",
    "deal_caes_label",
    "deal_fundae_label",
    "deal_hotel_label",
    "deal_transporte",
    "product_name",
    "status",
    "pending_completion",
    "trainer",
    "unit",
    "room",
    "students_total",
    "comments",
)

SESSION_STATUS_LABELS: Dict[str, str] = {
    "BORRADOR": "Draft",
    "PLANIFICADA": "Planned",
    "SUSPENDIDA": "Suspended",
    "CANCELADA": "Cancelled",
    "FINALIZADA": "Finished",
}

_FACET_TOKEN_RE = re.compile(r"^([a-z_]+):(.*)$")


def _safe(value: object) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _join(parts: Sequence[Optional[str]], sep: str = " ") -> str:
    return sep.join(p for p in (_safe(x) for x in parts) if p)


def students_label(count: Optional[int]) -> str:
    if count is None:
        return "no students"
    if count <= 0:
        return "0 no students"
    return f"{count} student" if count == 1 else f"{count} students"


def _now_ms() -> int:
    return int(time.time() * 1000)


# --- session facets -----------------------------------------------------------

def _session_pending(ev: SessionEvent, now_ms: int) -> str:
    if ev.status == "FINALIZADA":
        return "no"
    return "yes" if ev.end_ms < now_ms else "no"


def _session_students(ev: SessionEvent) -> str:
    return _join([" ".join(ev.student_names), students_label(ev.students_total)])


_SESSION_FACETS: Dict[str, Callable[[SessionEvent, int], str]] = {
    "deal_id": lambda ev, now: _safe(ev.deal_id),
    "deal_title": lambda ev, now: _safe(ev.deal_title),
    "deal_organization_name": lambda ev, now: _safe(ev.deal_organization_name or ev.deal_title),
    "deal_pipeline_id": lambda ev, now: _safe(ev.deal_pipeline_id),
    "deal_training_address": lambda ev, now: _safe(ev.deal_address or ev.address),
    "deal_sede_label": lambda ev, now: _safe(ev.deal_sede_label),
    "deal_caes_label": lambda ev, now: _safe(ev.deal_caes_label),
    "deal_fundae_label": lambda ev, now: _safe(ev.deal_fundae_label),
    "deal_hotel_label": lambda ev, now: _safe(ev.deal_hotel_label),
    "deal_transporte": lambda ev, now: _safe(ev.deal_transporte),
    "product_name": lambda ev, now: _safe(ev.product_name),
    "status": lambda ev, now: _join([ev.status, SESSION_STATUS_LABELS.get(ev.status, ev.status)]),
    "pending_completion": _session_pending,
    "trainer": lambda ev, now: _join([t.display_name for t in ev.trainers]),
    "unit": lambda ev, now: _join([u.display_name for u in ev.units]),
    "room": lambda ev, now: ev.room.display_name if ev.room else "",
    "students_total": lambda ev, now: _session_students(ev),
    "comments": lambda ev, now: _safe(ev.comments),
}


# --- variant facets -----------------------------------------------------------

def _deal_values(ev: VariantEvent, attr: str) -> List[str]:
    seen: OrderedKeySet[str] = OrderedKeySet(key=lambda v: v.lower())
    for deal in ev.deals:
        value = _safe(getattr(deal, attr))
        if value:
            seen.add(value)
    return seen.to_list()


def _variant_status(ev: VariantEvent) -> str:
    status = _safe(ev.status)
    low = status.lower()
    if low == "publish":
        return "publish published"
    if low == "private":
        return "private cancelled"
    return status


_VARIANT_FACETS: Dict[str, Callable[[VariantEvent, int], str]] = {
    "deal_id": lambda ev, now: _join(_deal_values(ev, "id")),
    "deal_title": lambda ev, now: _join(_deal_values(ev, "title")),
    "deal_organization_name": lambda ev, now: _join(
        [d.organization_name or d.title for d in ev.deals]
    ),
    "deal_pipeline_id": lambda ev, now: _join(_deal_values(ev, "pipeline_id")),
    "deal_training_address": lambda ev, now: _join([ev.sede] + _deal_values(ev, "training_address")),
    "deal_sede_label": lambda ev, now: _join([ev.sede] + _deal_values(ev, "sede_label")),
    "deal_caes_label": lambda ev, now: _join(_deal_values(ev, "caes_label")),
    "deal_fundae_label": lambda ev, now: _join(_deal_values(ev, "fundae_label")),
    "deal_hotel_label": lambda ev, now: _join(_deal_values(ev, "hotel_label")),
    "deal_transporte": lambda ev, now: _join(_deal_values(ev, "transporte")),
    "product_name": lambda ev, now: _safe(ev.name or ev.product.name),
    "status": lambda ev, now: _variant_status(ev),
    "pending_completion": lambda ev, now: "",
    "trainer": lambda ev, now: _join([t.display_name for t in ev.trainers], ", "),
    "unit": lambda ev, now: _join([u.display_name for u in ev.units]),
    "room": lambda ev, now: ev.room.display_name if ev.room else "",
    "students_total": lambda ev, now: students_label(ev.students_total),
    "comments": lambda ev, now: "",
}


def build_filter_row(ev: CalendarEvent, now_ms: Optional[int] = None) -> FilterRow:
    """Project an event onto normalized facet values plus one search blob."""
    now = _now_ms() if now_ms is None else int(now_ms)

    if isinstance(ev, SessionEvent):
        normalized = {key: normalize_text(_SESSION_FACETS[key](ev, now)) for key in FACET_KEYS}
        extra = [ev.title, SESSION_STATUS_LABELS.get(ev.status, "")]
    elif isinstance(ev, VariantEvent):
        normalized = {key: normalize_text(_VARIANT_FACETS[key](ev, now)) for key in FACET_KEYS}
        extra = [ev.name, ev.product.name, ev.status]
    else:
        raise TypeError(f"unsupported event type: {type(ev).__name__}")

    parts = [normalized[key] for key in FACET_KEYS] + [normalize_text(_safe(x)) for x in extra]
    return FilterRow(
        id=ev.id,
        kind=ev.kind,
        normalized=normalized,
        search=" ".join(p for p in parts if p),
    )


def split_filter_value(value: str) -> List[str]:
    return [p.strip() for p in (value or "").split(FILTER_VALUE_SEPARATOR) if p.strip()]


def _facet_matches(row: FilterRow, key: str, value: str) -> bool:
    target = row.normalized.get(key, "")
    needles = [normalize_text(p) for p in split_filter_value(value)]
    needles = [n for n in needles if n]
    if not needles:
        return True
    return any(n in target for n in needles)


def _ranked_positions(rows: Sequence[FilterRow], filters: Mapping[str, str], search: str) -> List[int]:
    active: List[Tuple[str, str]] = []
    for key, value in (filters or {}).items():
        if not _safe(value):
            continue
        if key not in FACET_KEYS:
            if obs_enabled():
                eprint(f"[timegrid.query_lang] WARN: ignoring unknown facet key={key!r}")
            continue
        active.append((key, value))

    kept = [i for i, row in enumerate(rows) if all(_facet_matches(row, k, v) for k, v in active)]

    normalized_search = normalize_text(search)
    if not normalized_search:
        return kept

    scored = [(fuzzy_score(rows[i].search, normalized_search), i) for i in kept]
    scored = [item for item in scored if item[0] != NO_MATCH]
    scored.sort(key=lambda item: item[0])
    return [i for _score, i in scored]


def apply_filters(rows: Sequence[FilterRow], filters: Mapping[str, str], search: str = "") -> List[FilterRow]:
    """Facet filters (AND across facets, OR within one), then fuzzy ranking.

    Unknown facet keys and blank values never exclude anything. With a search
    string, rows that fail any token are dropped and the rest are ordered by
    ascending score (stable for ties).
    """
    return [rows[i] for i in _ranked_positions(rows, filters, search)]


def filter_events(
    events: Sequence[CalendarEvent],
    facet_filters: Optional[Mapping[str, str]] = None,
    query: str = "",
    now_ms: Optional[int] = None,
) -> List[CalendarEvent]:
    """Filter entry point: (events, facets, free text) -> ordered events."""
    rows = [build_filter_row(ev, now_ms) for ev in events]
    return [events[i] for i in _ranked_positions(rows, facet_filters or {}, query)]


# --- facet options ------------------------------------------------------------

OPTION_FACET_KEYS: Tuple[str, ...] = (
    "deal_pipeline_id",
    "deal_training_address",
    "deal_sede_label",
    "deal_caes_label",
    "deal_fundae_label",
    "deal_hotel_label",
    "deal_transporte",
    "trainer",
    "unit",
    "room",
)

_DEAL_OPTION_ATTRS: Tuple[Tuple[str, str], ...] = (
    ("deal_pipeline_id", "pipeline_id"),
    ("deal_training_address", "training_address"),
    ("deal_sede_label", "sede_label"),
    ("deal_caes_label", "caes_label"),
    ("deal_fundae_label", "fundae_label"),
    ("deal_hotel_label", "hotel_label"),
    ("deal_transporte", "transporte"),
)


def _session_option_values(ev: SessionEvent) -> List[Tuple[str, Optional[str]]]:
    values: List[Tuple[str, Optional[str]]] = [
        ("deal_pipeline_id", ev.deal_pipeline_id),
        ("deal_sede_label", ev.deal_sede_label),
        ("deal_caes_label", ev.deal_caes_label),
        ("deal_fundae_label", ev.deal_fundae_label),
        ("deal_hotel_label", ev.deal_hotel_label),
        ("deal_transporte", ev.deal_transporte),
    ]
    values += [("trainer", t.display_name) for t in ev.trainers]
    values += [("unit", u.display_name) for u in ev.units]
    if ev.room is not None:
        values.append(("room", ev.room.display_name))
    return values


def _variant_option_values(ev: VariantEvent) -> List[Tuple[str, Optional[str]]]:
    values: List[Tuple[str, Optional[str]]] = [
        ("deal_training_address", ev.sede),
        ("deal_sede_label", ev.sede),
    ]
    for deal in ev.deals:
        values += [(key, getattr(deal, attr)) for key, attr in _DEAL_OPTION_ATTRS]
    values += [("trainer", t.display_name) for t in ev.trainers]
    values += [("unit", u.display_name) for u in ev.units]
    if ev.room is not None:
        values.append(("room", ev.room.display_name))
    return values


def facet_options(events: Sequence[CalendarEvent]) -> Dict[str, List[str]]:
    """Selectable values per facet, collected from the loaded events.

    Values are trimmed and de-duplicated, then sorted ignoring case and
    accents. Every key of OPTION_FACET_KEYS is present, possibly empty.
    """
    seen: Dict[str, OrderedKeySet[str]] = {key: OrderedKeySet(key=lambda v: v) for key in OPTION_FACET_KEYS}
    for ev in events:
        if isinstance(ev, SessionEvent):
            pairs = _session_option_values(ev)
        elif isinstance(ev, VariantEvent):
            pairs = _variant_option_values(ev)
        else:
            raise TypeError(f"unsupported event type: {type(ev).__name__}")
        for key, value in pairs:
            text = _safe(value)
            if text:
                seen[key].add(text)
    return {key: sorted(values, key=lambda v: (normalize_text(v), v)) for key, values in seen.items()}


@dataclass(frozen=True)
class Query:
    """Facet filters plus free text, parsed from one query string.

    `trainer:ana,luis room:"aula 2" garcia` keeps events whose trainer matches
    ana or luis, whose room contains "aula 2", and that fuzzy-match "garcia".
    """

    facets: Tuple[Tuple[str, str], ...] = ()
    text: str = ""

    @classmethod
    def parse(cls, expr: str) -> "Query":
        expr = (expr or "").strip()
        if not expr:
            return cls()

        try:
            toks = shlex.split(expr, posix=True)
        except ValueError as e:
            raise QueryError(f"Could not parse query (quoting/escaping error): {e}") from e

        facets: Dict[str, List[str]] = {}
        words: List[str] = []
        for tok in toks:
            tok = tok.strip()
            if not tok:
                continue
            m = _FACET_TOKEN_RE.match(tok)
            if m:
                values = split_filter_value(m.group(2))
                if values:
                    facets.setdefault(m.group(1), []).extend(values)
                continue
            words.append(tok)

        return cls(
            facets=tuple((k, FILTER_VALUE_SEPARATOR.join(v)) for k, v in facets.items()),
            text=" ".join(words),
        )

    def facet_filters(self) -> Dict[str, str]:
        return dict(self.facets)

    def run(self, events: Sequence[CalendarEvent], now_ms: Optional[int] = None) -> List[CalendarEvent]:
        return filter_events(events, self.facet_filters(), self.text, now_ms)


def compile_query(expr: str) -> Query:
    return Query.parse(expr)
