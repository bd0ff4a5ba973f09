from __future__ import annotations

import json
import tempfile
import unittest
from pathlib import Path


class TestPublicApiLockContract(unittest.TestCase):
    def test_api_module_exports_are_present(self) -> None:
        import timegrid.api as api

        self.assertIsInstance(api.__all__, (list, tuple))
        self.assertIn("facet_options", api.__all__)
        for name in api.__all__:
            self.assertTrue(hasattr(api, name), f"timegrid.api missing public name: {name}")
            self.assertIsNotNone(getattr(api, name), f"timegrid.api {name} is None")

    def test_package_reexports_match_api_all(self) -> None:
        import timegrid
        import timegrid.api as api

        self.assertEqual(timegrid.__all__, api.__all__)
        for name in api.__all__:
            self.assertIs(getattr(timegrid, name), getattr(api, name), f"timegrid.{name} must be timegrid.api.{name}")

    def test_load_events_from_json(self) -> None:
        from timegrid import load_events_from_json

        records = [
            {"id": "s1", "kind": "session", "start": "2024-03-10T08:00:00Z", "end": "2024-03-10T09:00:00Z"},
            {"id": "s2", "kind": "session", "start": "bad", "end": "2024-03-10T09:00:00Z"},
        ]
        with tempfile.TemporaryDirectory() as td:
            p = Path(td) / "events.json"
            p.write_text(json.dumps({"events": records}), encoding="utf-8")
            self.assertEqual([e.id for e in load_events_from_json(p)], ["s1"])

            p.write_text(json.dumps({"rows": records}), encoding="utf-8")
            with self.assertRaises(ValueError):
                load_events_from_json(str(p))


if __name__ == "__main__":
    unittest.main(verbosity=2)
