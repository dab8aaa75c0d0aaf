"""test_records.py - record-array extraction and both reconstructor variants."""

import json
import unittest

from helpers import ACTORS, CLASSES, fresh, unit

from mvtext.errors import DocumentParseError
from mvtext.records import (
    RecordFields, extract_record_array, reconstruct_at_root,
    reconstruct_by_id, reconstruct_by_path_index,
)

ACTOR_FIELDS = RecordFields("Actors.json", ("name", "nickname", "profile", "note"))


class TestExtractRecordArray(unittest.TestCase):

    def test_paths_use_array_index_and_declared_order(self):
        units = extract_record_array(fresh(ACTORS), "data/Actors.json", ACTOR_FIELDS)
        self.assertEqual(
            [(u.record_id, u.path, u.text) for u in units],
            [(1, "[1].name", "ハロルド"),
             (1, "[1].profile", "勇者の末裔。"),
             (2, "[2].name", "テレーゼ"),
             (2, "[2].nickname", "魔女"),
             (2, "[2].note", "<tag>")],
        )
        self.assertTrue(all(u.source_file == "data/Actors.json" for u in units))

    def test_skips_blank_text_null_slots_and_id_zero(self):
        doc = [None, {"id": 0, "name": "placeholder"}, {"id": 3, "name": " \t\n"},
               {"id": 4, "name": 7}, "junk", {"name": "no id"}]
        self.assertEqual(extract_record_array(doc, "x.json", ACTOR_FIELDS), [])

    def test_list_fan_out_accessor(self):
        fields = RecordFields("Classes.json", ("name", "note", "learnings[].note"))
        units = extract_record_array(fresh(CLASSES), "data/Classes.json", fields)
        self.assertEqual([u.path for u in units], ["[1].name", "[1].learnings[0].note"])

    def test_non_array_document(self):
        with self.assertRaises(DocumentParseError):
            extract_record_array({"id": 1}, "x.json", ACTOR_FIELDS)


class TestReconstructById(unittest.TestCase):

    def test_example_relative_path(self):
        original = '[null, {"id":1,"name":"Cat","note":""}]'
        result = reconstruct_by_id(original, [unit(1, "name", "Gato", "Cat")])
        self.assertEqual(json.loads(result.text), [None, {"id": 1, "name": "Gato", "note": ""}])
        self.assertTrue(result.ok)

    def test_error_falls_back_to_original_text(self):
        original = '[null, {"id":1,"name":"Ice"}, {"id":2,"name":"Fire"}]'
        result = reconstruct_by_id(original, [
            unit(2, "name", "BROKEN", "Fire", error="timeout")])
        self.assertEqual(json.loads(result.text)[2]["name"], "Fire")

    def test_empty_translation_keeps_original(self):
        result = reconstruct_by_id('[null, {"id":1,"name":"Cat"}]', [unit(1, "name", "", "Cat")])
        self.assertEqual(json.loads(result.text)[1]["name"], "Cat")

    def test_leading_index_is_ignored(self):
        original = '[null, {"id":5,"name":"A"}, {"id":1,"name":"B"}]'
        result = reconstruct_by_id(original, [unit(1, "[1].name", "Bee", "B")])
        doc = json.loads(result.text)
        self.assertEqual(doc[1]["name"], "A")
        self.assertEqual(doc[2]["name"], "Bee")

    def test_unknown_id_is_skipped_with_diagnostic(self):
        original = '[null, {"id":1,"name":"Cat"}]'
        result = reconstruct_by_id(original, [unit(9, "name", "Perro", "Dog")])
        self.assertEqual(json.loads(result.text), json.loads(original))
        self.assertEqual(len(result.diagnostics), 1)
        self.assertEqual(result.diagnostics[0].record_id, 9)

    def test_one_bad_unit_does_not_stop_the_rest(self):
        original = '[null, {"id":1,"name":"Cat","note":"n"}, {"id":2,"name":"Dog"}]'
        with self.assertLogs("mvtext.records", level="WARNING"):
            result = reconstruct_by_id(original, [
                unit(1, "name", "Gato", "Cat"),
                unit(1, "nickname", "x"),
                unit(1, "a..b", "x"),
                unit(2, "name", "Perro", "Dog"),
            ])
        doc = json.loads(result.text)
        self.assertEqual((doc[1]["name"], doc[2]["name"]), ("Gato", "Perro"))
        self.assertNotIn("nickname", doc[1])
        self.assertEqual(len(result.diagnostics), 2)

    def test_id_zero_and_records_without_id_never_match(self):
        original = '[null, {"name":"Cat"}, {"id":1,"name":"Dog"}]'
        with self.assertLogs("mvtext.records", level="WARNING"):
            result = reconstruct_by_id(original, [unit(0, "name", "X")])
        self.assertEqual(json.loads(result.text), json.loads(original))
        self.assertEqual(len(result.diagnostics), 1)
        self.assertEqual(result.diagnostics[0].record_id, 0)

    def test_non_string_text_is_skipped(self):
        original = '[null, {"id":1,"name":"Cat"}, {"id":2,"name":"Dog"}]'
        with self.assertLogs("mvtext.records", level="WARNING"):
            result = reconstruct_by_id(original, [
                unit(1, "name", "", original_text=None, error="e"),
                unit(2, "name", 5),
            ])
        self.assertEqual(json.loads(result.text), json.loads(original))
        self.assertEqual(len(result.diagnostics), 2)

    def test_empty_unit_list_round_trips(self):
        result = reconstruct_by_id(json.dumps(ACTORS), [])
        self.assertEqual(json.loads(result.text), ACTORS)

    def test_parse_failures_are_fatal(self):
        with self.assertRaises(DocumentParseError):
            reconstruct_by_id("[null, {", [])
        with self.assertRaises(DocumentParseError):
            reconstruct_by_id('{"id": 1}', [])

    def test_output_is_pretty_printed_unicode(self):
        result = reconstruct_by_id('[null, {"id":1,"name":"猫"}]', [])
        self.assertIn("猫", result.text)
        self.assertIn("\n  ", result.text)


class TestReconstructByPathIndex(unittest.TestCase):

    def test_writes_at_index(self):
        result = reconstruct_by_path_index(json.dumps(CLASSES), [
            unit(1, "[1].name", "Hero", "勇者"),
            unit(1, "[1].learnings[0].note", "First skill", "最初の技"),
        ])
        doc = json.loads(result.text)
        self.assertEqual(doc[1]["name"], "Hero")
        self.assertEqual(doc[1]["learnings"][0]["note"], "First skill")
        self.assertTrue(result.ok)

    def test_id_mismatch_leaves_document_unchanged(self):
        original = '[null, {"id":1,"name":"Cat"}, {"id":2,"name":"Dog"}]'
        result = reconstruct_by_path_index(original, [unit(2, "[1].name", "Perro", "Dog")])
        self.assertEqual(json.loads(result.text), json.loads(original))
        self.assertIn("Mismatched id", result.diagnostics[0].message)

    def test_bad_index_forms(self):
        original = '[null, {"id":1,"name":"Cat"}]'
        result = reconstruct_by_path_index(original, [
            unit(1, "name", "x"),          # no leading index
            unit(1, "[0].name", "x"),      # null slot
            unit(1, "[7].name", "x"),      # out of range
            unit(1, "[1]", "x"),           # nothing after the index
        ])
        self.assertEqual(json.loads(result.text), json.loads(original))
        self.assertEqual(len(result.diagnostics), 4)

    def test_record_without_id_is_patched_by_position(self):
        result = reconstruct_by_path_index('[null, {"name":"Cat"}]', [unit(3, "[1].name", "Gato")])
        self.assertEqual(json.loads(result.text)[1]["name"], "Gato")

    def test_accepts_parsed_document(self):
        doc = [None, {"id": 1, "name": "Cat"}]
        result = reconstruct_by_path_index(doc, [unit(1, "[1].name", "Gato")])
        self.assertIs(result.document, doc)
        self.assertEqual(doc[1]["name"], "Gato")


class TestReconstructAtRoot(unittest.TestCase):

    def test_root_relative_paths(self):
        original = '{"gameTitle":"旅","terms":{"basic":["レベル"]}}'
        result = reconstruct_at_root(original, [
            unit(0, "gameTitle", "Journey"),
            unit(0, "terms.basic[0]", "Level"),
            unit(0, "terms.basic[3]", "nope"),
        ])
        doc = json.loads(result.text)
        self.assertEqual(doc, {"gameTitle": "Journey", "terms": {"basic": ["Level"]}})
        self.assertEqual(len(result.diagnostics), 1)


if __name__ == '__main__':
    unittest.main()
