import unittest
import json
import shutil
import tempfile
import sys
from pathlib import Path
from unittest.mock import patch

from PySide6.QtCore import QCoreApplication

# Add src to path
project_root = Path(__file__).parent.parent
sys.path.append(str(project_root / "src"))

from keyschool.services.catalog_service import (
    CATALOG_UPPER_BOUND,
    CatalogService,
    LearnableProgression,
    build_learnable_items,
    parse_progressions,
)
from keyschool.services.formula_tables import CHORD, MODE


def setUpModule():
    global _app
    _app = QCoreApplication.instance() or QCoreApplication([])


def _printed(mock_print) -> str:
    return "\n".join(" ".join(str(a) for a in c.args) for c in mock_print.call_args_list)


class TestLearnableItems(unittest.TestCase):
    def setUp(self):
        self.items = build_learnable_items()

    def _count(self, formula_name):
        return sum(1 for i in self.items if i.formula_name == formula_name)

    def test_every_item_stays_in_range(self):
        for item in self.items:
            self.assertLessEqual(max(item.notes), CATALOG_UPPER_BOUND, item.name)
            self.assertGreaterEqual(item.root_note, 48)
            self.assertLessEqual(item.root_note, 83)

    def test_notes_follow_formula(self):
        c_maj7 = next(i for i in self.items if i.name == "CMaj7" and i.root_note == 48)
        self.assertEqual(c_maj7.notes, (48, 52, 55, 59))
        self.assertEqual(c_maj7.kind, CHORD)
        d_dorian = next(i for i in self.items if i.name == "D Dorian" and i.root_note == 62)
        self.assertEqual(d_dorian.notes, (62, 64, 65, 67, 69, 71, 72))
        self.assertEqual(d_dorian.kind, MODE)

    def test_top_of_range_is_clamped_not_clipped(self):
        # Triads fit for every root, 13ths stop once root + 21 passes C7
        self.assertEqual(self._count("Maj"), 36)
        self.assertEqual(self._count("Dom9"), 35)
        self.assertEqual(self._count("Dom13"), 28)
        self.assertFalse(any(i.root_note == 83 and i.formula_name == "Dom13" for i in self.items))
        self.assertEqual(len(self.items), 1149)

    def test_items_are_immutable(self):
        with self.assertRaises(Exception):
            self.items[0].root_note = 0


class TestParseProgressions(unittest.TestCase):
    def test_resolves_chords_and_union(self):
        dataset = {"Pop": [{"name": "Doo-Wop", "chords": ["C", "Am", "F", "G"],
                            "difficulty": "Beginner", "comment": "I-vi-IV-V"}]}
        [prog] = parse_progressions(dataset)
        self.assertIsInstance(prog, LearnableProgression)
        self.assertEqual(prog.genre, "Pop")
        self.assertEqual(prog.chord_symbols, ("C", "Am", "F", "G"))
        self.assertEqual(prog.root_note, 48)
        self.assertEqual(prog.notes, (48, 52, 53, 55, 57, 59, 60, 62, 64))
        self.assertEqual(prog.chord_notes(1), (57, 60, 64))
        self.assertEqual(len(prog), 4)
        self.assertEqual(prog.difficulty, "Beginner")
        self.assertEqual(prog.comment, "I-vi-IV-V")

    def test_legacy_chords_key(self):
        [prog] = parse_progressions({"Jazz": [{"name": "ii-V", "chords_C": ["Dm7", "G7"]}]})
        self.assertEqual(prog.chord_symbols, ("Dm7", "G7"))
        self.assertEqual(prog.root_note, 50)

    def test_malformed_symbols_degrade_with_warning(self):
        with patch("builtins.print") as mock_print:
            [prog] = parse_progressions({"Odd": [{"name": "Typos", "chords": ["Cxyz", "Q"]}]})
        self.assertEqual(prog.chord_notes(0), (48, 52, 55))
        self.assertEqual(prog.chord_notes(1), (48, 52, 55))
        output = _printed(mock_print)
        self.assertIn("unknown chord quality in 'Cxyz'", output)
        self.assertIn("cannot read root of 'Q'", output)

    def test_empty_progressions_are_skipped(self):
        with patch("builtins.print"):
            result = parse_progressions({"Pop": [{"name": "Nothing", "chords": []}]})
        self.assertEqual(result, [])


class TestCatalogService(unittest.TestCase):
    def setUp(self):
        self.test_dir = Path(tempfile.mkdtemp())
        self.resources_dir = self.test_dir / "resources"
        self.resources_dir.mkdir()
        self.dataset_file = self.resources_dir / "progressions.json"
        self.sample = {
            "Pop": [{"name": "Doo-Wop", "chords": ["C", "Am", "F", "G"], "difficulty": "Beginner", "comment": ""}],
            "Jazz": [{"name": "ii-V-I", "chords": ["Dm7", "G7", "Cmaj7"], "difficulty": "Intermediate", "comment": ""}],
        }
        with open(self.dataset_file, "w", encoding="utf-8") as f:
            json.dump(self.sample, f)

    def tearDown(self):
        shutil.rmtree(self.test_dir, ignore_errors=True)

    def test_loads_dataset(self):
        service = CatalogService(self.resources_dir)
        self.assertEqual(service.progressionCount, 2)
        self.assertEqual(service.itemCount, len(build_learnable_items()))
        self.assertEqual(service.genres, ["Jazz", "Pop"])

    def test_missing_dataset_gives_no_progressions(self):
        self.dataset_file.unlink()
        with patch("builtins.print") as mock_print:
            service = CatalogService(self.resources_dir)
        self.assertEqual(service.progressions, ())
        self.assertGreater(len(service.items), 0)
        self.assertIn("not found", _printed(mock_print))

    def test_unreadable_dataset_gives_no_progressions(self):
        self.dataset_file.write_text("{not json", encoding="utf-8")
        with patch("builtins.print"):
            service = CatalogService(self.resources_dir)
        self.assertEqual(service.progressions, ())

    def test_find_item_prefers_lowest_octave(self):
        service = CatalogService(self.resources_dir)
        self.assertEqual(service.find_item("CMaj7").root_note, 48)
        self.assertEqual(service.find_item("CMaj7", octave=4).root_note, 60)
        self.assertEqual(service.find_item("D Dorian").kind, MODE)
        self.assertIsNone(service.find_item("H Major"))

    def test_find_progression(self):
        service = CatalogService(self.resources_dir)
        self.assertEqual(service.find_progression("ii-V-I").genre, "Jazz")
        self.assertIsNone(service.find_progression("ii-V-I", genre="Pop"))

    def test_grouping(self):
        service = CatalogService(self.resources_dir)

        by_root = service.group_items("rootNote")
        self.assertEqual(list(by_root), sorted(by_root))
        self.assertTrue(all(i.kind == CHORD for group in by_root.values() for i in group))
        roots = [i.root_note for i in by_root["C"]]
        self.assertEqual(roots, sorted(roots))

        by_mode = service.group_items("modeType")
        self.assertEqual(set(by_mode), {"Ionian", "Dorian", "Phrygian", "Lydian", "Mixolydian", "Aeolian", "Locrian"})

        by_type = service.group_items("chordType")
        self.assertIn("Maj7", by_type)

        by_genre = service.group_items("genre")
        self.assertEqual(list(by_genre), ["Jazz", "Pop"])

        with self.assertRaises(ValueError):
            service.group_items("colour")

    def test_reload_emits_catalog_changed(self):
        service = CatalogService(self.resources_dir)
        calls = []
        service.catalogChanged.connect(lambda: calls.append(True))
        service.reload()
        self.assertEqual(calls, [True])


class TestBundledDataset(unittest.TestCase):
    def test_bundled_progressions_parse_cleanly(self):
        with patch("builtins.print") as mock_print:
            service = CatalogService(project_root / "src" / "resources")
        self.assertNotIn("WARNING", _printed(mock_print))
        self.assertGreater(len(service.progressions), 0)
        for prog in service.progressions:
            for index in range(len(prog)):
                self.assertTrue(prog.chord_notes(index))


if __name__ == "__main__":
    unittest.main()
