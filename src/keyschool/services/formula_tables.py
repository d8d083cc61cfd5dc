"""
Formula tables: the static chord and mode shapes every other service reads.

Offsets are semitones above an implicit root at 0. Extended chords reach past
the octave (9ths, 11ths, 13ths), so the recognizer compares against the
pitch-class reduction of each formula rather than the raw offsets.
"""
from dataclasses import dataclass
from typing import Dict, List, Tuple

CHORD = "Chord"
MODE = "Mode"


@dataclass(frozen=True)
class Formula:
    name: str
    offsets: Tuple[int, ...]
    kind: str = CHORD

    @property
    def pitch_classes(self) -> Tuple[int, ...]:
        """Root-normalized signature: offsets mod 12, unique, ascending."""
        return tuple(sorted({offset % 12 for offset in self.offsets}))

    def __len__(self) -> int:
        return len(self.offsets)


# Declaration order matters: it breaks ties between equal-length formulas.
CHORD_FORMULAS: Dict[str, Tuple[int, ...]] = {
    "Maj": (0, 4, 7),
    "Min": (0, 3, 7),
    "Dim": (0, 3, 6),
    "Aug": (0, 4, 8),
    "Sus2": (0, 2, 7),
    "Sus4": (0, 5, 7),
    "Maj7": (0, 4, 7, 11),
    "Min7": (0, 3, 7, 10),
    "Dom7": (0, 4, 7, 10),
    "Dim7": (0, 3, 6, 9),
    "Half-Dim7": (0, 3, 6, 10),
    "MinMaj7": (0, 3, 7, 11),
    "AugMaj7": (0, 4, 8, 11),
    "Aug7": (0, 4, 8, 10),
    "Maj6": (0, 4, 7, 9),
    "Min6": (0, 3, 7, 9),
    "Dom9": (0, 4, 7, 10, 14),
    "Maj9": (0, 4, 7, 11, 14),
    "Min9": (0, 3, 7, 10, 14),
    "Dom11": (0, 4, 7, 10, 14, 17),
    "Maj11": (0, 4, 7, 11, 14, 17),
    "Min11": (0, 3, 7, 10, 14, 17),
    "Dom13": (0, 4, 7, 10, 14, 17, 21),
    "Maj13": (0, 4, 7, 11, 14, 17, 21),
    "Min13": (0, 3, 7, 10, 14, 17, 21),
    "5": (0, 7),  # Power chord
}

MODE_FORMULAS: Dict[str, Tuple[int, ...]] = {
    "Ionian": (0, 2, 4, 5, 7, 9, 11),
    "Dorian": (0, 2, 3, 5, 7, 9, 10),
    "Phrygian": (0, 1, 3, 5, 7, 8, 10),
    "Lydian": (0, 2, 4, 6, 7, 9, 11),
    "Mixolydian": (0, 2, 4, 5, 7, 9, 10),
    "Aeolian": (0, 2, 3, 5, 7, 8, 10),
    "Locrian": (0, 1, 3, 5, 6, 8, 10),
}

DEFAULT_FORMULA_NAME = "Maj"

# Idiosyncratic full chord symbols found in hand-authored progression data.
# Checked before any suffix parsing.
SYMBOL_ALIASES: Dict[str, str] = {
    "G13": "Dom13",
    "E7#9": "Dom7",
    "C6/9": "Maj6",
}

# Conventional lead-sheet spellings, tried in order after an exact table hit fails.
SHORTHAND_SUFFIXES: List[Tuple[str, str]] = [
    ("maj7", "Maj7"),
    ("M7", "Maj7"),
    ("m7", "Min7"),
    ("m", "Min"),
    ("M", "Maj"),
    ("min", "Min"),
    ("7", "Dom7"),
    ("9", "Dom9"),
    ("11", "Dom11"),
    ("13", "Dom13"),
    ("6", "Maj6"),
    ("m6", "Min6"),
    ("m9", "Min9"),
    ("m11", "Min11"),
    ("m13", "Min13"),
    ("maj9", "Maj9"),
    ("maj11", "Maj11"),
    ("maj13", "Maj13"),
    ("mMaj7", "MinMaj7"),
    ("mmaj7", "MinMaj7"),
    ("m7b5", "Half-Dim7"),
    ("ø", "Half-Dim7"),
    ("ø7", "Half-Dim7"),
    ("dim", "Dim"),
    ("°", "Dim"),
    ("dim7", "Dim7"),
    ("°7", "Dim7"),
    ("aug", "Aug"),
    ("+", "Aug"),
    ("+7", "Aug7"),
    ("sus", "Sus4"),
    ("sus2", "Sus2"),
    ("sus4", "Sus4"),
]


def _build_formulas(table: Dict[str, Tuple[int, ...]], kind: str) -> Tuple[Formula, ...]:
    return tuple(Formula(name, offsets, kind) for name, offsets in table.items())


CHORDS: Tuple[Formula, ...] = _build_formulas(CHORD_FORMULAS, CHORD)
MODES: Tuple[Formula, ...] = _build_formulas(MODE_FORMULAS, MODE)

_BY_NAME: Dict[str, Formula] = {f.name: f for f in CHORDS}
_BY_NAME_LOWER: Dict[str, Formula] = {f.name.lower(): f for f in CHORDS}

# Modes are declared ahead of chords so a 7-note set reads as a mode before a 13th.
# sorted() is stable, so equal lengths keep this declaration order.
RECOGNITION_TABLE: Tuple[Formula, ...] = tuple(sorted(MODES + CHORDS, key=lambda f: -len(f)))


def chord_formula(name: str) -> Formula | None:
    """Exact (case-sensitive) chord formula lookup."""
    return _BY_NAME.get(name)


def chord_formula_casefold(name: str) -> Formula | None:
    return _BY_NAME_LOWER.get(name.lower())


def default_formula() -> Formula:
    return _BY_NAME[DEFAULT_FORMULA_NAME]
