# timegrid/events.py
from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional, Tuple

from .model import (
    KIND_SESSION,
    KIND_VARIANT,
    CalendarEvent,
    Resource,
    SessionEvent,
    VariantDeal,
    VariantEvent,
    VariantProduct,
)
from .util.console import eprint, obs_enabled
from .util.ordered import unique_by
from .util.timeparse import parse_instant_ms

SESSION_STATUSES: Tuple[str, ...] = (
    "BORRADOR",
    "PLANIFICADA",
    "SUSPENDIDA",
    "CANCELADA",
    "FINALIZADA",
)
DEFAULT_SESSION_STATUS = "BORRADOR"


def _trimmed(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _optional_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip().replace(",", "."))
        except ValueError:
            try:
                f = float(value.strip().replace(",", "."))
            except ValueError:
                return None
            return int(f) if f.is_integer() else None
    return None


def _status(value: Any) -> str:
    text = _trimmed(value)
    if not text:
        return DEFAULT_SESSION_STATUS
    upper = text.upper()
    return upper if upper in SESSION_STATUSES else DEFAULT_SESSION_STATUS


def _resource(value: Any) -> Optional[Resource]:
    if not isinstance(value, dict):
        return None
    rid = _trimmed(value.get("id"))
    name = _trimmed(value.get("name"))
    if not rid or not name:
        return None
    return Resource(id=rid, name=name, secondary=_trimmed(value.get("secondary")))


def _resources(values: Any) -> Tuple[Resource, ...]:
    if not isinstance(values, list):
        return ()
    parsed = [r for r in (_resource(v) for v in values) if r is not None]
    return unique_by(parsed, key=lambda r: r.id)


def _resources_or_single(data: Dict[str, Any], many_key: str, one_key: str) -> Tuple[Resource, ...]:
    many = _resources(data.get(many_key))
    if many:
        return many
    one = _resource(data.get(one_key))
    return (one,) if one is not None else ()


def _warn(msg: str) -> None:
    if obs_enabled():
        eprint(f"[timegrid.events] WARN: {msg}")


def _parse_span(raw: Dict[str, Any], eid: str) -> Optional[Tuple[int, int]]:
    start_raw = raw.get("start")
    end_raw = raw.get("end")
    start_ms = parse_instant_ms(start_raw)
    end_ms = parse_instant_ms(end_raw)
    if start_ms is None:
        _warn(f"dropping event with malformed start id={eid!r} value={start_raw!r}")
        return None
    if end_ms is None:
        _warn(f"dropping event with malformed end id={eid!r} value={end_raw!r}")
        return None
    return start_ms, end_ms


def parse_session(raw: Dict[str, Any]) -> Optional[SessionEvent]:
    eid = _trimmed(raw.get("id"))
    if not eid:
        _warn("dropping session without id")
        return None
    span = _parse_span(raw, eid)
    if span is None:
        return None

    names = raw.get("student_names")
    student_names = tuple(n for n in (_trimmed(x) for x in names) if n) if isinstance(names, list) else ()

    return SessionEvent(
        id=eid,
        start_ms=span[0],
        end_ms=span[1],
        title=_trimmed(raw.get("title")) or "Session",
        status=_status(raw.get("status")),
        deal_id=_trimmed(raw.get("deal_id")) or "",
        deal_title=_trimmed(raw.get("deal_title")),
        deal_organization_name=_trimmed(raw.get("deal_organization_name")),
        deal_pipeline_id=_trimmed(raw.get("deal_pipeline_id")),
        deal_address=_trimmed(raw.get("deal_training_address")),
        deal_sede_label=_trimmed(raw.get("deal_sede_label")),
        deal_caes_label=_trimmed(raw.get("deal_caes_label")),
        deal_fundae_label=_trimmed(raw.get("deal_fundae_label")),
        deal_hotel_label=_trimmed(raw.get("deal_hotel_label")),
        deal_transporte=_trimmed(raw.get("deal_transporte")),
        product_id=_trimmed(raw.get("product_id")) or "",
        product_name=_trimmed(raw.get("product_name")),
        product_code=_trimmed(raw.get("product_code")),
        address=_trimmed(raw.get("address")),
        comments=_trimmed(raw.get("comments")),
        room=_resource(raw.get("room")),
        trainers=_resources(raw.get("trainers")),
        units=_resources(raw.get("units")),
        student_names=student_names,
        students_total=_optional_int(raw.get("students_total")),
    )


def _deal(raw: Any) -> Optional[VariantDeal]:
    if not isinstance(raw, dict):
        return None
    return VariantDeal(
        id=_trimmed(raw.get("id")),
        title=_trimmed(raw.get("title")),
        organization_name=_trimmed(raw.get("organization_name")),
        pipeline_id=_trimmed(raw.get("pipeline_id")),
        training_address=_trimmed(raw.get("training_address")),
        sede_label=_trimmed(raw.get("sede_label")),
        caes_label=_trimmed(raw.get("caes_label")),
        fundae_label=_trimmed(raw.get("fundae_label")),
        hotel_label=_trimmed(raw.get("hotel_label")),
        transporte=_trimmed(raw.get("transporte")),
    )


def parse_variant(raw: Dict[str, Any]) -> Optional[VariantEvent]:
    eid = _trimmed(raw.get("id"))
    if not eid:
        _warn("dropping variant without id")
        return None

    product_raw = raw.get("product")
    details = raw.get("variant")
    product_id = _trimmed(product_raw.get("id")) if isinstance(product_raw, dict) else None
    variant_id = _trimmed(details.get("id")) if isinstance(details, dict) else None
    if not product_id or not variant_id or not isinstance(product_raw, dict) or not isinstance(details, dict):
        _warn(f"dropping variant without product/variant details id={eid!r}")
        return None

    span = _parse_span(raw, eid)
    if span is None:
        return None

    deals_raw = raw.get("deals")
    deals = tuple(d for d in (_deal(x) for x in deals_raw) if d is not None) if isinstance(deals_raw, list) else ()

    return VariantEvent(
        id=eid,
        start_ms=span[0],
        end_ms=span[1],
        product=VariantProduct(
            id=product_id,
            name=_trimmed(product_raw.get("name")),
            code=_trimmed(product_raw.get("code")),
            category=_trimmed(product_raw.get("category")),
        ),
        variant_id=variant_id,
        name=_trimmed(details.get("name")),
        status=_trimmed(details.get("status")),
        sede=_trimmed(details.get("sede")),
        trainers=_resources_or_single(details, "trainers", "trainer"),
        room=_resource(details.get("room")),
        units=_resources_or_single(details, "units", "unit"),
        students_total=_optional_int(details.get("students_total")),
        deals=deals,
    )


def parse_event(raw: Any) -> Optional[CalendarEvent]:
    """Parse one event record; None (and a WARN when enabled) if malformed.

    Records without "kind" are treated as variants when they carry a "variant"
    object, otherwise as sessions.
    """
    if not isinstance(raw, dict):
        _warn(f"dropping non-object event record of type {type(raw).__name__}")
        return None
    kind = _trimmed(raw.get("kind"))
    if kind is None:
        kind = KIND_VARIANT if isinstance(raw.get("variant"), dict) else KIND_SESSION
    kind = kind.lower()

    if kind == KIND_SESSION:
        return parse_session(raw)
    if kind == KIND_VARIANT:
        return parse_variant(raw)
    _warn(f"dropping event with unknown kind={kind!r} id={raw.get('id')!r}")
    return None


def parse_events(raws: Iterable[Any]) -> List[CalendarEvent]:
    """Parse a fetched event list, keeping input order and the first record per (kind, id)."""
    out: List[CalendarEvent] = []
    for raw in raws or []:
        ev = parse_event(raw)
        if ev is not None:
            out.append(ev)
    return list(unique_by(out, key=lambda e: (e.kind, e.id)))
