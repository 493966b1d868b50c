"""
Test suite for street_racer.highscore -- persisted best score.
"""

import io
import json
import os
import tempfile
import unittest
from unittest import mock

from street_racer.core import RaceSimulation
from street_racer.highscore import HIGH_SCORE_KEY, HighScoreStore


class TestHighScoreStore(unittest.TestCase):

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.path = os.path.join(self.tmp.name, "scores", "highscore.json")

    def tearDown(self):
        self.tmp.cleanup()

    def write_raw(self, text):
        os.makedirs(os.path.dirname(self.path), exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            f.write(text)

    def test_missing_file_reads_zero(self):
        self.assertEqual(HighScoreStore(self.path).load(), 0)

    def test_save_then_load(self):
        store = HighScoreStore(self.path)
        store.save(42)
        self.assertEqual(store.load(), 42)
        self.assertEqual(HighScoreStore(self.path).load(), 42)

    def test_uses_fixed_key(self):
        HighScoreStore(self.path).save(7)
        with open(self.path, encoding="utf-8") as f:
            self.assertEqual(json.load(f), {HIGH_SCORE_KEY: 7})

    def test_other_keys_preserved(self):
        self.write_raw(json.dumps({"other": 3}))
        HighScoreStore(self.path).save(9)
        with open(self.path, encoding="utf-8") as f:
            data = json.load(f)
        self.assertEqual(data["other"], 3)
        self.assertEqual(data[HIGH_SCORE_KEY], 9)

    def test_corrupt_file_reads_zero(self):
        self.write_raw("{not json")
        self.assertEqual(HighScoreStore(self.path).load(), 0)

    def test_wrong_shape_reads_zero(self):
        self.write_raw("[1, 2, 3]")
        self.assertEqual(HighScoreStore(self.path).load(), 0)
        self.write_raw(json.dumps({HIGH_SCORE_KEY: "lots"}))
        self.assertEqual(HighScoreStore(self.path).load(), 0)
        self.write_raw(json.dumps({HIGH_SCORE_KEY: -5}))
        self.assertEqual(HighScoreStore(self.path).load(), 0)

    def test_infinite_value_reads_zero(self):
        """json reads Infinity and 1e999 as float('inf'), which int() rejects."""
        self.write_raw('{"%s": Infinity}' % HIGH_SCORE_KEY)
        self.assertEqual(HighScoreStore(self.path).load(), 0)
        self.write_raw('{"%s": 1e999}' % HIGH_SCORE_KEY)
        self.assertEqual(HighScoreStore(self.path).load(), 0)
        self.write_raw('{"%s": -Infinity}' % HIGH_SCORE_KEY)
        self.assertEqual(HighScoreStore(self.path).load(), 0)

    def test_infinite_value_does_not_break_simulation(self):
        self.write_raw('{"%s": Infinity}' % HIGH_SCORE_KEY)
        sim = RaceSimulation(high_score_store=HighScoreStore(self.path))
        self.assertEqual(sim.high_score, 0)

    def test_home_override_read_at_construction(self):
        home = os.path.join(self.tmp.name, "home")
        with mock.patch.dict(os.environ, {"STREET_RACER_HOME": home}):
            store = HighScoreStore()
        self.assertEqual(store.path, os.path.join(home, "highscore.json"))
        store.save(5)
        self.assertEqual(HighScoreStore(os.path.join(home, "highscore.json")).load(), 5)

    def test_numeric_string_accepted(self):
        self.write_raw(json.dumps({HIGH_SCORE_KEY: "15"}))
        self.assertEqual(HighScoreStore(self.path).load(), 15)

    def test_custom_key(self):
        store = HighScoreStore(self.path, key="nightMode")
        store.save(4)
        self.assertEqual(store.load(), 4)
        self.assertEqual(HighScoreStore(self.path).load(), 0)

    def test_write_failure_warns(self):
        blocker = os.path.join(self.tmp.name, "blocker")
        with open(blocker, "w") as f:
            f.write("")
        store = HighScoreStore(os.path.join(blocker, "highscore.json"))
        with mock.patch("sys.stderr", new_callable=io.StringIO) as err:
            store.save(10)
        self.assertIn("could not save high score", err.getvalue())
        self.assertEqual(store.load(), 0)


if __name__ == "__main__":
    unittest.main()
