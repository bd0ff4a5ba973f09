from __future__ import annotations

import unittest

from timegrid.civil import iso_utc
from timegrid.config import EngineConfig, config_from_env, visible_hours_from_str
from timegrid.engine import CalendarEngine
from timegrid.model import CivilDate, SessionEvent, VisibleHoursWindow
from timegrid.util.timeparse import parse_instant_ms

NOW = parse_instant_ms("2024-03-10T12:00:00Z")


def _session(eid: str, start: str, end: str, title: str = "") -> SessionEvent:
    return SessionEvent(id=eid, start_ms=parse_instant_ms(start), end_ms=parse_instant_ms(end), title=title or eid)


class TestEngineConfigContract(unittest.TestCase):
    def test_defaults(self) -> None:
        cfg = config_from_env({})
        self.assertEqual(cfg.tz, "Europe/Madrid")
        self.assertEqual(cfg.visible_hours, VisibleHoursWindow(300, 1440))
        self.assertEqual(cfg.min_duration_min, 30)
        self.assertEqual(cfg.min_event_height_percent, 3.0)
        self.assertEqual(cfg.fetch_padding_days, 14)

    def test_env_and_explicit_overrides(self) -> None:
        env = {"TIMEGRID_TZ": "utc", "TIMEGRID_VISIBLE_HOURS": "08:00-20:00"}
        cfg = config_from_env(env)
        self.assertEqual(cfg.tz, "UTC")
        self.assertEqual(cfg.visible_hours, VisibleHoursWindow(480, 1200))

        cfg = config_from_env(env, tz="+02:00", visible_hours="07:30-24:00")
        self.assertEqual(cfg.tz, "+02:00")
        self.assertEqual(cfg.visible_hours, VisibleHoursWindow(450, 1440))

    def test_invalid_values_raise(self) -> None:
        for bad in ("20:00-08:00", "08:00", "25:00-26:00", "08:00-24:30"):
            with self.assertRaises(ValueError, msg=bad):
                visible_hours_from_str(bad)
        with self.assertRaises(ValueError):
            VisibleHoursWindow(600, 600)
        with self.assertRaises(ValueError):
            EngineConfig(min_duration_min=0)
        with self.assertRaises(ValueError):
            CalendarEngine(EngineConfig(tz="No/Such_Zone"))


class TestCalendarEngineContract(unittest.TestCase):
    def setUp(self) -> None:
        self.engine = CalendarEngine(EngineConfig(tz="+01:00", visible_hours=VisibleHoursWindow(0, 1440)))
        self.events = [
            _session("early", "2024-03-09T23:30:00Z", "2024-03-10T01:00:00Z", "Excel avanzado"),
            _session("overnight", "2024-03-10T22:30:00Z", "2024-03-11T01:00:00Z", "Primeros auxilios"),
            _session("overlap", "2024-03-10T00:00:00Z", "2024-03-10T00:45:00Z", "Excel basico"),
        ]

    def test_default_engine_uses_madrid(self) -> None:
        self.assertEqual(CalendarEngine().clock.tz_name, "Europe/Madrid")

    def test_week_render(self) -> None:
        layout = self.engine.render("week", CivilDate(2024, 3, 10), self.events, now_ms=NOW)
        self.assertEqual(layout.view, "week")
        self.assertEqual(layout.tz, "+01:00")
        self.assertEqual(layout.month_cells, ())
        self.assertEqual(len(layout.day_columns), 7)

        sunday = layout.day_columns[6]
        self.assertTrue(sunday.is_today)
        self.assertEqual([e.event.id for e in sunday.entries], ["early", "overlap", "overnight"])
        self.assertEqual([(e.column, e.columns) for e in sunday.entries], [(0, 2), (1, 2), (0, 1)])

    def test_month_render(self) -> None:
        layout = self.engine.render("month", CivilDate(2024, 3, 10), self.events, now_ms=NOW)
        self.assertEqual(len(layout.month_cells), 42)
        self.assertEqual(layout.day_columns, ())
        by_date = {c.date: c for c in layout.month_cells}
        self.assertEqual(len(by_date[CivilDate(2024, 3, 10)].events), 3)
        self.assertEqual([e.id for e in by_date[CivilDate(2024, 3, 11)].events], ["overnight"])

    def test_filters_run_before_layout(self) -> None:
        layout = self.engine.render("day", CivilDate(2024, 3, 10), self.events, query="excel", now_ms=NOW)
        self.assertEqual([e.id for e in layout.events], ["early", "overlap"])
        (col,) = layout.day_columns
        self.assertEqual({e.event.id for e in col.entries}, {"early", "overlap"})

    def test_unknown_view(self) -> None:
        with self.assertRaises(ValueError):
            self.engine.render("agenda", CivilDate(2024, 3, 10), self.events, now_ms=NOW)

    def test_navigation_and_fetch(self) -> None:
        ref = CivilDate(2024, 1, 31)
        self.assertEqual(self.engine.advance("month", ref, 1), CivilDate(2024, 2, 29))
        rng = self.engine.visible_range("day", CivilDate(2024, 3, 10))
        start, end = self.engine.fetch_window(rng)
        self.assertEqual(iso_utc(start), "2024-02-24T23:00:00.000Z")
        self.assertEqual(iso_utc(end), "2024-03-24T23:00:00.000Z")
        self.assertEqual(self.engine.today(NOW), CivilDate(2024, 3, 10))


if __name__ == "__main__":
    unittest.main(verbosity=2)
