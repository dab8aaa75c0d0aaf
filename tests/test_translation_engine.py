"""test_translation_engine.py - unit translation, workers and the threaded engine."""

import unittest
from unittest import mock

from PyQt6.QtCore import QCoreApplication, QTimer

from mvtext.errors import TranslationError
from mvtext.project_model import ExtractedUnit
from mvtext.translation_engine import (
    TranslationEngine, TranslationWorker, field_for, translate_unit, translate_units,
)


def fake_client(fail_on=()):
    client = mock.Mock()
    client.origin = "ollama:test"

    def translate(text, field=""):
        if text in fail_on:
            raise TranslationError("Ollama API error: timeout")
        return text.upper()

    client.translate.side_effect = translate
    return client


def units(*texts):
    return [ExtractedUnit(i + 1, t, "data/Items.json", f"[{i + 1}].name")
            for i, t in enumerate(texts)]


class TestFieldFor(unittest.TestCase):

    def test_kinds(self):
        def kind(path):
            return field_for(ExtractedUnit(1, "x", "f.json", path))
        self.assertEqual(kind("[1].description"), "description")
        self.assertEqual(kind("terms.messages.actorDamage"), "actorDamage")
        self.assertEqual(kind("[1].list[3].parameters[0]"), "dialog")
        self.assertEqual(kind("[1].list[0].parameters[4]"), "speaker_name")
        self.assertEqual(kind("[1].list[2].parameters[0][1]"), "choice")
        self.assertEqual(kind("a..b"), "")


class TestTranslateUnits(unittest.TestCase):

    def test_success_and_failure(self):
        results = translate_units(fake_client(fail_on={"b"}), units("a", "b", "c"))
        self.assertEqual([r.translated_text for r in results], ["A", "", "C"])
        self.assertEqual([r.error is None for r in results], [True, False, True])
        self.assertTrue(all(r.origin == "ollama:test" for r in results))
        self.assertEqual(results[1].text_to_write, "b")

    def test_field_hint_is_passed(self):
        client = fake_client()
        translate_unit(client, units("a")[0])
        client.translate.assert_called_once_with("a", field="name")


class TestTranslationWorker(unittest.TestCase):

    def test_run_emits_per_unit(self):
        worker = TranslationWorker(fake_client(fail_on={"b"}), units("a", "b"))
        done, errors, finished = [], [], []
        worker.unit_done.connect(done.append)
        worker.error.connect(lambda where, msg: errors.append(where))
        worker.finished.connect(lambda: finished.append(True))
        worker.run()

        self.assertEqual([u.translated_text for u in done], ["A", ""])
        self.assertEqual(errors, ["data/Items.json:[2].name"])
        self.assertEqual(finished, [True])
        self.assertEqual(len(worker.results), 2)

    def test_cancel(self):
        worker = TranslationWorker(fake_client(), units("a", "b"))
        worker.cancel()
        worker.run()
        self.assertEqual(worker.results, [])


class TestTranslationEngine(unittest.TestCase):

    @classmethod
    def setUpClass(cls):
        cls.app = QCoreApplication.instance() or QCoreApplication([])

    def test_split_chunks(self):
        chunks = TranslationEngine._split_chunks(list(range(7)), 3)
        self.assertEqual(chunks, [[0, 1, 2], [3, 4], [5, 6]])
        self.assertEqual(TranslationEngine._split_chunks([1, 2], 1), [[1, 2]])

    def test_empty_batch_finishes_immediately(self):
        engine = TranslationEngine(fake_client())
        finished = []
        engine.finished.connect(lambda: finished.append(True))
        engine.translate_batch([])
        self.assertEqual(finished, [True])
        self.assertEqual(engine.results, [])

    def test_threaded_batch_keeps_input_order(self):
        engine = TranslationEngine(fake_client(fail_on={"c"}), num_workers=3)
        done = []
        engine.finished.connect(lambda: done.append(True))
        engine.finished.connect(self.app.quit)
        QTimer.singleShot(10000, self.app.quit)  # safety net

        engine.translate_batch(units("a", "b", "c", "d", "e"))
        if not done:
            self.app.exec()

        self.assertEqual(done, [True])
        self.assertEqual([r.translated_text for r in engine.results], ["A", "B", "", "D", "E"])
        self.assertFalse(engine.is_running)


if __name__ == '__main__':
    unittest.main()
