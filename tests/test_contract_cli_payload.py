from __future__ import annotations

import contextlib
import io
import json
import tempfile
import unittest
from pathlib import Path

from timegrid import cli
from timegrid.engine import CalendarEngine
from timegrid.config import EngineConfig
from timegrid.events import parse_events
from timegrid.model import CivilDate
from timegrid.payload import PAYLOAD_VERSION, build_payload, dumps
from timegrid.util.timeparse import parse_instant_ms

EVENTS = [
    {
        "id": "s1",
        "kind": "session",
        "start": "2024-03-09T23:30:00Z",
        "end": "2024-03-10T01:00:00Z",
        "title": "Excel avanzado",
        "trainers": [{"id": "t1", "name": "Ana"}],
    },
    {
        "id": "s2",
        "kind": "session",
        "start": "2024-03-10T22:30:00Z",
        "end": "2024-03-11T01:00:00Z",
        "title": "Primeros auxilios",
        "trainers": [{"id": "t2", "name": "Luis"}],
    },
    {"id": "broken", "kind": "session", "start": "nope", "end": "nope"},
]


class TestPayloadContract(unittest.TestCase):
    def test_week_payload_shape(self) -> None:
        engine = CalendarEngine(EngineConfig(tz="+01:00"))
        layout = engine.render(
            "week", CivilDate(2024, 3, 10), parse_events(EVENTS), now_ms=parse_instant_ms("2024-03-10T12:00:00Z")
        )
        payload = build_payload(layout)
        self.assertEqual(payload["version"], PAYLOAD_VERSION)
        self.assertEqual(payload["tz"], "+01:00")
        self.assertEqual(payload["range"]["start"], "2024-03-04")
        self.assertEqual(payload["range"]["end"], "2024-03-11")
        self.assertEqual(payload["event_count"], 2)
        self.assertEqual(payload["month_cells"], [])

        sunday = payload["day_columns"][6]
        self.assertTrue(sunday["is_today"])
        first = sunday["entries"][0]
        self.assertEqual(first["event"]["id"], "s1")
        self.assertEqual(first["event"]["start"], "2024-03-09T23:30:00.000Z")
        self.assertEqual((first["left_percent"], first["width_percent"]), (0.0, 100.0))
        self.assertEqual(sunday["entries"][1]["display_end"], "24:00")

        self.assertEqual(json.loads(dumps(payload)), payload)
        self.assertIn("\n", dumps(payload, pretty=True))

    def test_dumps_requires_dict(self) -> None:
        with self.assertRaises(TypeError):
            dumps([])  # type: ignore[arg-type]


class TestCliContract(unittest.TestCase):
    def _write_events(self, tmp: Path, obj) -> Path:
        p = tmp / "events.json"
        p.write_text(json.dumps(obj), encoding="utf-8")
        return p

    def test_week_layout_to_file(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            tmp = Path(td)
            src = self._write_events(tmp, {"events": EVENTS})
            out = tmp / "out" / "layout.json"
            with contextlib.redirect_stdout(io.StringIO()):
                rc = cli.main(
                    [
                        "--in", str(src),
                        "--view", "week",
                        "--date", "2024-03-10",
                        "--tz", "+01:00",
                        "--now", "2024-03-10T12:00:00Z",
                        "--out", str(out),
                    ]
                )
            self.assertEqual(rc, 0)
            payload = json.loads(out.read_text(encoding="utf-8"))
            self.assertEqual(payload["view"], "week")
            self.assertEqual(len(payload["day_columns"]), 7)
            self.assertEqual([e["event"]["id"] for e in payload["day_columns"][6]["entries"]], ["s1", "s2"])

    def test_filters_and_query(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            src = self._write_events(Path(td), EVENTS)
            buf = io.StringIO()
            with contextlib.redirect_stdout(buf):
                rc = cli.main(
                    [
                        "--in", str(src),
                        "--view", "month",
                        "--date", "2024-03-10",
                        "--tz", "+01:00",
                        "--q", "trainer:luis",
                        "--filter", "trainer=ana",
                    ]
                )
            self.assertEqual(rc, 0)
            payload = json.loads(buf.getvalue())
            self.assertEqual(payload["event_count"], 2)
            self.assertEqual(len(payload["month_cells"]), 42)

    def test_user_errors_exit_2(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            src = self._write_events(Path(td), EVENTS)
            cases = [
                ["--in", str(src), "--tz", "No/Such_Zone"],
                ["--in", str(src), "--visible-hours", "20:00-08:00"],
                ["--in", str(src), "--date", "2024-02-30"],
                ["--in", str(src), "--now", "yesterday"],
                ["--in", str(Path(td) / "missing.json")],
                ["--in", str(src), "--q", 'room:"aula'],
                ["--in", str(src), "--filter", "novalue"],
            ]
            for argv in cases:
                err = io.StringIO()
                with contextlib.redirect_stderr(err), contextlib.redirect_stdout(io.StringIO()):
                    rc = cli.main(argv)
                self.assertEqual(rc, 2, argv)
                self.assertIn("[timegrid] ERROR:", err.getvalue())

    def test_non_list_input_is_rejected(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            src = self._write_events(Path(td), {"items": []})
            err = io.StringIO()
            with contextlib.redirect_stderr(err):
                rc = cli.main(["--in", str(src)])
            self.assertEqual(rc, 2)
            self.assertIn("failed to read events", err.getvalue())


if __name__ == "__main__":
    unittest.main(verbosity=2)
