import unittest
import sys
from pathlib import Path

# Add src to path
project_root = Path(__file__).parent.parent
sys.path.append(str(project_root / "src"))

from keyschool.services.catalog_service import build_learnable_items
from keyschool.services.chord_recognizer import ChordLabel, interval_signature, recognize
from keyschool.services.formula_tables import CHORD, RECOGNITION_TABLE
from keyschool.services.note_codec import note_name


class TestRecognizeBasics(unittest.TestCase):
    def test_empty(self):
        self.assertEqual(recognize([]), ChordLabel("", ()))

    def test_single_note(self):
        for note in (21, 60, 61, 108):
            name = note_name(note)
            self.assertEqual(recognize([note]), ChordLabel(name, (name,)))

    def test_same_pitch_class_in_two_octaves_is_custom(self):
        # Only a single struck note is named directly; octaves match no formula
        self.assertEqual(recognize([60, 72]), ChordLabel("Custom", ("C",)))
        self.assertEqual(recognize([48, 60, 84]), ChordLabel("Custom", ("C",)))

    def test_display_notes_are_unique_and_ascending(self):
        label = recognize([67, 64, 60, 72])
        self.assertEqual(label.display_notes, ("C", "E", "G"))
        self.assertEqual(label.to_dict(), {"name": "C", "notes": ["C", "E", "G"]})

    def test_custom_when_nothing_matches(self):
        label = recognize([60, 61, 62])
        self.assertEqual(label.name, "Custom")
        self.assertEqual(label.display_notes, ("C", "C#", "D"))

    def test_interval_signature(self):
        self.assertEqual(interval_signature([0, 4, 9], 9), [0, 3, 7])


class TestTriads(unittest.TestCase):
    def test_major_triads_have_no_suffix(self):
        for r in range(12):
            notes = [60 + r, 60 + (r + 4) % 12, 60 + (r + 7) % 12]
            self.assertEqual(recognize(notes).name, note_name(r), f"root {r}")

    def test_minor_triads_use_m(self):
        for r in range(12):
            notes = [60 + r, 60 + (r + 3) % 12, 60 + (r + 7) % 12]
            self.assertEqual(recognize(notes).name, note_name(r) + "m", f"root {r}")

    def test_octave_and_order_invariance(self):
        reference = recognize([60, 64, 67])
        self.assertEqual(recognize([79, 48, 64]), reference)
        self.assertEqual(recognize([67, 76, 36]), reference)
        self.assertEqual(recognize([64, 67, 60, 72, 84]), reference)

    def test_flat_spelling(self):
        self.assertEqual(recognize([61, 65, 68], prefer_flats=True).name, "Db")


class TestRecognitionOrder(unittest.TestCase):
    def test_other_formula_names_pass_through(self):
        self.assertEqual(recognize([60, 64, 67, 70]).name, "CDom7")
        self.assertEqual(recognize([60, 64, 67, 71]).name, "CMaj7")
        self.assertEqual(recognize([62, 65, 68]).name, "DDim")
        self.assertEqual(recognize([60, 67]).name, "C5")

    def test_extended_chords_are_matched_by_pitch_class(self):
        self.assertEqual(recognize([60, 64, 67, 70, 74]).name, "CDom9")
        self.assertEqual(recognize([48, 62, 64, 67, 71]).name, "CMaj9")

    def test_lowest_pitch_class_root_wins_ambiguous_sets(self):
        # A minor seventh holds the same pitch classes as C6
        self.assertEqual(recognize([57, 60, 64, 67]).name, "CMaj6")
        # G sus4 (G C D) reads as C sus2
        self.assertEqual(recognize([55, 60, 62]).name, "CSus2")

    def test_modes_beat_thirteenth_chords_of_equal_length(self):
        c_major_scale = [60, 62, 64, 65, 67, 69, 71]
        self.assertEqual(recognize(c_major_scale).name, "C Ionian")
        # D Dorian shares the C major pitch classes; C is tried first
        d_dorian = [62, 64, 65, 67, 69, 71, 72]
        self.assertEqual(recognize(d_dorian).name, "C Ionian")

    def test_table_is_longest_first(self):
        lengths = [len(f) for f in RECOGNITION_TABLE]
        self.assertEqual(lengths, sorted(lengths, reverse=True))
        self.assertEqual(RECOGNITION_TABLE[0].name, "Ionian")


class TestCatalogRoundTrip(unittest.TestCase):
    # Shapes whose rotations never match another formula, so the root survives
    UNAMBIGUOUS = {"Maj": "", "Min": "m", "Dim": "Dim", "Maj7": "Maj7", "Dom7": "Dom7", "Dom9": "Dom9"}

    def test_catalog_chords_recognize_with_their_root(self):
        checked = 0
        for item in build_learnable_items():
            if item.kind != CHORD or item.formula_name not in self.UNAMBIGUOUS:
                continue
            expected = note_name(item.root_note) + self.UNAMBIGUOUS[item.formula_name]
            self.assertEqual(recognize(item.notes).name, expected, item.name)
            checked += 1
        self.assertGreater(checked, 0)


if __name__ == "__main__":
    unittest.main()
