from __future__ import annotations

import os
import unittest
from unittest.mock import patch

from timegrid.events import parse_event, parse_events
from timegrid.model import SessionEvent, VariantEvent
from timegrid.util.ordered import OrderedKeySet, unique_by
from timegrid.util.timeparse import parse_instant_ms

SESSION = {
    "id": "s1",
    "kind": "session",
    "start": "2024-03-10T08:00:00Z",
    "end": "2024-03-10T10:00:00Z",
    "title": "  Excel  ",
    "status": "planificada",
    "trainers": [
        {"id": "t1", "name": "Ana"},
        {"id": "t1", "name": "Ana (dup)"},
        {"id": "t2", "name": "Luis", "secondary": "Pérez"},
        {"id": "", "name": "Nobody"},
    ],
    "room": {"id": "r1", "name": "Aula 2"},
    "student_names": ["Juan", " ", "Marta"],
    "students_total": "12",
}

VARIANT = {
    "id": "v1",
    "start": "20240310T080000Z",
    "end": "2024-03-10T11:00:00+01:00",
    "product": {"id": "p1", "name": "Excel", "code": "EXC"},
    "variant": {
        "id": "var1",
        "name": "Excel marzo",
        "status": "publish",
        "sede": "Madrid",
        "trainer": {"id": "t1", "name": "Ana"},
        "students_total": 8,
    },
    "deals": [{"id": "d1", "title": "ACME"}, "junk"],
}


class TestEventIntakeContract(unittest.TestCase):
    def test_session_fields(self) -> None:
        ev = parse_event(SESSION)
        self.assertIsInstance(ev, SessionEvent)
        self.assertEqual(ev.kind, "session")
        self.assertEqual(ev.title, "Excel")
        self.assertEqual(ev.status, "PLANIFICADA")
        self.assertEqual([t.id for t in ev.trainers], ["t1", "t2"])
        self.assertEqual(ev.trainers[0].name, "Ana")
        self.assertEqual(ev.trainers[1].display_name, "Luis Pérez")
        self.assertEqual(ev.room.name, "Aula 2")
        self.assertEqual(ev.student_names, ("Juan", "Marta"))
        self.assertEqual(ev.students_total, 12)
        self.assertEqual(ev.start_ms, parse_instant_ms("2024-03-10T08:00:00Z"))

    def test_variant_inferred_without_kind(self) -> None:
        ev = parse_event(VARIANT)
        self.assertIsInstance(ev, VariantEvent)
        self.assertEqual(ev.start_ms, parse_instant_ms("2024-03-10T08:00:00Z"))
        self.assertEqual(ev.end_ms, parse_instant_ms("2024-03-10T10:00:00Z"))
        self.assertEqual(ev.product.code, "EXC")
        self.assertEqual(ev.variant_id, "var1")
        self.assertEqual([t.name for t in ev.trainers], ["Ana"])
        self.assertEqual(ev.students_total, 8)
        self.assertEqual([d.title for d in ev.deals], ["ACME"])

    def test_unknown_status_falls_back_to_draft(self) -> None:
        ev = parse_event(dict(SESSION, status="whatever"))
        self.assertEqual(ev.status, "BORRADOR")
        self.assertEqual(parse_event(dict(SESSION, status=None)).status, "BORRADOR")

    def test_malformed_records_are_dropped(self) -> None:
        raws = [
            SESSION,
            dict(SESSION, id="bad-start", start="not-a-date"),
            dict(SESSION, id="bad-end", end=""),
            dict(SESSION, id=""),
            dict(SESSION, id="m1", kind="meeting"),
            dict(VARIANT, id="v2", variant={"name": "no id"}),
            "not an object",
            VARIANT,
            dict(SESSION, title="second copy"),
        ]
        out = parse_events(raws)
        self.assertEqual([(e.kind, e.id) for e in out], [("session", "s1"), ("variant", "v1")])
        self.assertEqual(out[0].title, "Excel")

    def test_same_id_different_kind_is_kept(self) -> None:
        out = parse_events([SESSION, dict(VARIANT, id="s1")])
        self.assertEqual([(e.kind, e.id) for e in out], [("session", "s1"), ("variant", "s1")])

    def test_malformed_logs_when_obs_enabled(self) -> None:
        raw = dict(SESSION, id="bad", start="2024-13-01T00:00:00Z")
        with patch.dict(os.environ, {"TIMEGRID_OBS_LOG": "1"}, clear=False), patch("timegrid.events.eprint") as ep:
            self.assertIsNone(parse_event(raw))
        combined = "\n".join(str(c.args[0]) for c in ep.call_args_list if c.args)
        self.assertIn("[timegrid.events] WARN: dropping event with malformed start", combined)

    def test_malformed_does_not_log_when_obs_disabled(self) -> None:
        raw = dict(SESSION, id="bad", start="2024-13-01T00:00:00Z")
        with patch.dict(os.environ, {}, clear=True), patch("timegrid.events.eprint") as ep:
            self.assertIsNone(parse_event(raw))
        self.assertFalse(ep.called)


class TestOrderedKeySetContract(unittest.TestCase):
    def test_first_item_per_key_wins(self) -> None:
        s: OrderedKeySet[str] = OrderedKeySet(key=str.lower)
        self.assertTrue(s.add("Ana"))
        self.assertFalse(s.add("ANA"))
        self.assertTrue(s.add("Luis"))
        self.assertEqual(s.to_list(), ["Ana", "Luis"])
        self.assertIn("ana", s)
        self.assertEqual(len(s), 2)

    def test_unique_by(self) -> None:
        self.assertEqual(unique_by([3, 1, 3, 2, 1], key=lambda x: x), (3, 1, 2))


if __name__ == "__main__":
    unittest.main(verbosity=2)
