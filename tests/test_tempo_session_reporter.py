import csv
import json
import tempfile
import unittest
from pathlib import Path

import numpy as np

from tempo_session_reporter import TempoSessionReporter


class TestTempoSessionReporter(unittest.TestCase):
    def test_appends_and_bounds_history(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            reporter = TempoSessionReporter(Path(tmpdir), max_sessions=2)
            for bpm in (100.0, 110.0, 120.0):
                reporter.save_session({"source": "a.wav", "windows": 3, "bpm": np.float64(bpm)})

            with open(reporter.json_path, "r", encoding="utf-8") as f:
                payload = json.load(f)
            with open(reporter.csv_path, "r", newline="", encoding="utf-8") as f:
                rows = list(csv.DictReader(f))

        self.assertEqual(payload["session_count"], 2)
        self.assertEqual([s["bpm"] for s in payload["sessions"]], [110.0, 120.0])
        self.assertEqual(payload["latest"]["bpm"], 120.0)
        self.assertEqual(len(rows), 2)
        self.assertEqual(rows[-1]["bpm"], "120.0")
        self.assertEqual(rows[-1]["valid_windows"], "")

    def test_corrupt_report_starts_fresh(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            reporter = TempoSessionReporter(Path(tmpdir))
            reporter.json_path.write_text("{not json", encoding="utf-8")
            reporter.save_session({"bpm": 90.0})

            with open(reporter.json_path, "r", encoding="utf-8") as f:
                payload = json.load(f)

        self.assertEqual(payload["session_count"], 1)


if __name__ == "__main__":
    unittest.main()
