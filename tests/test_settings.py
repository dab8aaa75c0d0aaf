"""test_settings.py - _settings.json persistence."""

import json
import os
import tempfile
import unittest

from mvtext.settings import Settings


class TestSettings(unittest.TestCase):

    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.path = os.path.join(self._tmp.name, "_settings.json")

    def tearDown(self):
        self._tmp.cleanup()

    def test_missing_file_gives_defaults(self):
        self.assertEqual(Settings.load(self.path), Settings())

    def test_round_trip(self):
        s = Settings(model="gemma3:12b", target_language="German", workers=4)
        s.save(self.path)
        self.assertEqual(Settings.load(self.path), s)

    def test_unknown_keys_ignored(self):
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump({"model": "x", "dark_mode": True}, f)
        s = Settings.load(self.path)
        self.assertEqual(s.model, "x")
        self.assertEqual(s.workers, Settings().workers)

    def test_corrupt_file(self):
        for content in ("{oops", "[1, 2]"):
            with self.subTest(content=content):
                with open(self.path, "w", encoding="utf-8") as f:
                    f.write(content)
                self.assertEqual(Settings.load(self.path), Settings())


if __name__ == '__main__':
    unittest.main()
