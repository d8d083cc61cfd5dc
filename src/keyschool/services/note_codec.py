"""
Note/Name codec: converts between absolute MIDI note numbers, note names and
chord symbols such as "Dm7" or "F#maj7".

Everything here is lenient on purpose: a symbol that cannot be fully parsed
still resolves to *something* (root C, major triad). parse_chord_symbol()
reports which parts fell back so callers can warn about authoring mistakes.
"""
from dataclasses import dataclass
from typing import Iterable, List, Tuple

from keyschool.services.formula_tables import (  # type: ignore
    Formula,
    SHORTHAND_SUFFIXES,
    SYMBOL_ALIASES,
    chord_formula,
    chord_formula_casefold,
    default_formula,
)

NOTES_PER_OCTAVE = 12
SYMBOL_BASE_NOTE = 48  # C3; chord symbols carry no octave, so they are anchored here

SHARP_NAMES = ["C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B"]
FLAT_NAMES = ["C", "Db", "D", "Eb", "E", "F", "Gb", "G", "Ab", "A", "Bb", "B"]

_LETTER_PITCH_CLASSES = {"C": 0, "D": 2, "E": 4, "F": 5, "G": 7, "A": 9, "B": 11}


@dataclass(frozen=True)
class ParsedSymbol:
    symbol: str
    root_pitch_class: int
    suffix: str
    formula: Formula
    root_recognized: bool
    formula_recognized: bool

    @property
    def root_note(self) -> int:
        return SYMBOL_BASE_NOTE + self.root_pitch_class

    @property
    def notes(self) -> Tuple[int, ...]:
        return tuple(self.root_note + offset for offset in self.formula.offsets)


def pitch_class(note: int) -> int:
    return note % NOTES_PER_OCTAVE


def octave_of(note: int) -> int:
    return note // NOTES_PER_OCTAVE - 1


def note_name(note: int, prefer_flats: bool = False) -> str:
    """Convert a MIDI note number to its name without octave (60 -> "C")."""
    names = FLAT_NAMES if prefer_flats else SHARP_NAMES
    return names[pitch_class(note)]


def note_name_with_octave(note: int, prefer_flats: bool = False) -> str:
    """60 -> "C4", 61 -> "C#4" (or "Db4")."""
    return f"{note_name(note, prefer_flats)}{octave_of(note)}"


def pitch_class_set(notes: Iterable[int]) -> List[int]:
    """Unique pitch classes of a note collection, ascending."""
    return sorted({pitch_class(n) for n in notes})


def _split_root(symbol: str) -> Tuple[int, str, bool]:
    if not symbol or symbol[0].upper() not in _LETTER_PITCH_CLASSES:
        return 0, symbol, False

    pc = _LETTER_PITCH_CLASSES[symbol[0].upper()]
    rest = symbol[1:]
    if rest[:1] == "#":
        pc += 1
        rest = rest[1:]
    elif rest[:1] == "b":
        pc -= 1
        rest = rest[1:]
    return pc % NOTES_PER_OCTAVE, rest, True


def _resolve_formula(symbol: str, suffix: str) -> Tuple[Formula, bool]:
    # 1. Whole-symbol aliases for spellings the suffix rules can't express
    alias = SYMBOL_ALIASES.get(symbol)
    if alias is not None:
        return chord_formula(alias) or default_formula(), True

    # 2. Exact formula table name ("Maj7", "Sus4", "5")
    exact = chord_formula(suffix)
    if exact is not None:
        return exact, True

    # 3. Conventional shorthand ("m7", "maj7", "m"), then table names in any case
    for shorthand, formula_name in SHORTHAND_SUFFIXES:
        if suffix == shorthand:
            return chord_formula(formula_name) or default_formula(), True
    if suffix:
        folded = chord_formula_casefold(suffix)
        if folded is not None:
            return folded, True

    # 4. Plain major triad. An empty suffix ("C") is a legitimate major chord.
    return default_formula(), suffix == ""


def parse_chord_symbol(symbol: str) -> ParsedSymbol:
    cleaned = (symbol or "").strip()
    root_pc, suffix, root_ok = _split_root(cleaned)
    formula, formula_ok = _resolve_formula(cleaned, suffix)
    return ParsedSymbol(
        symbol=cleaned,
        root_pitch_class=root_pc,
        suffix=suffix,
        formula=formula,
        root_recognized=root_ok,
        formula_recognized=formula_ok,
    )


def root_of(symbol: str) -> int:
    """Absolute root note of a chord symbol, anchored at C3 ("Dm7" -> 50)."""
    return parse_chord_symbol(symbol).root_note


def formula_of(symbol: str) -> Formula:
    return parse_chord_symbol(symbol).formula


def notes_of(symbol: str) -> Tuple[int, ...]:
    """Absolute notes of a chord symbol ("Am" -> (57, 60, 64))."""
    return parse_chord_symbol(symbol).notes
