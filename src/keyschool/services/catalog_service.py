"""
CatalogService: builds the browsable list of things a user can practise.

Single chords and modes come from the formula tables (every root across three
octaves), progressions come from the bundled genre -> progression dataset.
Both lists are built once and never mutated afterwards.
"""
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Tuple, Union
from PySide6.QtCore import QObject, Property, Signal, Slot  # type: ignore

from keyschool.services.formula_tables import CHORD, CHORDS, MODE, MODES  # type: ignore
from keyschool.services.note_codec import (  # type: ignore
    SYMBOL_BASE_NOTE,
    note_name,
    octave_of,
    parse_chord_symbol,
)

CATALOG_ROOT_MIN = 48   # C3
CATALOG_ROOT_MAX = 83   # B5
CATALOG_UPPER_BOUND = 96  # C7, highest populated key

GROUPINGS = ("rootNote", "chordType", "modeType", "genre")


@dataclass(frozen=True)
class LearnableItem:
    name: str
    kind: str
    root_note: int
    notes: Tuple[int, ...]
    formula_name: str = ""

    @property
    def octave(self) -> int:
        return octave_of(self.root_note)


@dataclass(frozen=True)
class Progression:
    name: str
    chord_symbols: Tuple[str, ...]
    difficulty: str = ""
    comment: str = ""


@dataclass(frozen=True)
class LearnableProgression:
    name: str
    genre: str
    chord_symbols: Tuple[str, ...]
    notes: Tuple[int, ...]
    root_note: int
    difficulty: str = ""
    comment: str = ""
    _chord_notes: Tuple[Tuple[int, ...], ...] = field(default=(), repr=False, compare=False)

    def __post_init__(self):
        if len(self._chord_notes) != len(self.chord_symbols):
            resolved = tuple(parse_chord_symbol(symbol).notes for symbol in self.chord_symbols)
            object.__setattr__(self, "_chord_notes", resolved)

    def __len__(self) -> int:
        return len(self.chord_symbols)

    def chord_notes(self, index: int) -> Tuple[int, ...]:
        """Resolved absolute notes of the chord at a step."""
        return self._chord_notes[index]


SelectableItem = Union[LearnableItem, LearnableProgression]


def build_learnable_items(root_min: int = CATALOG_ROOT_MIN,
                          root_max: int = CATALOG_ROOT_MAX,
                          upper_bound: int = CATALOG_UPPER_BOUND) -> List[LearnableItem]:
    """Every (root, formula) pair whose notes stay at or below upper_bound."""
    items: List[LearnableItem] = []
    for root in range(root_min, root_max + 1):
        root_name = note_name(root)
        for formula in CHORDS + MODES:
            notes = tuple(root + offset for offset in formula.offsets)
            if max(notes) > upper_bound:
                continue
            if formula.kind == CHORD:
                name = f"{root_name}{formula.name}"
            else:
                name = f"{root_name} {formula.name}"
            items.append(LearnableItem(name, formula.kind, root, notes, formula.name))
    return items


def build_progression(genre: str, progression: Progression) -> LearnableProgression:
    chord_notes = []
    for symbol in progression.chord_symbols:
        parsed = parse_chord_symbol(symbol)
        if not parsed.root_recognized:
            print(f"CatalogService: WARNING — '{progression.name}' ({genre}): cannot read root of '{symbol}', using C")
        if not parsed.formula_recognized:
            print(f"CatalogService: WARNING — '{progression.name}' ({genre}): unknown chord quality in '{symbol}', using major triad")
        chord_notes.append(parsed.notes)

    union = sorted({n for notes in chord_notes for n in notes})
    root = parse_chord_symbol(progression.chord_symbols[0]).root_note if chord_notes else SYMBOL_BASE_NOTE
    return LearnableProgression(
        name=progression.name,
        genre=genre,
        chord_symbols=progression.chord_symbols,
        notes=tuple(union),
        root_note=root,
        difficulty=progression.difficulty,
        comment=progression.comment,
        _chord_notes=tuple(chord_notes),
    )


def parse_progressions(dataset: Dict[str, List[dict]]) -> List[LearnableProgression]:
    """
    Turn the raw genre -> [record] mapping into LearnableProgressions.

    Records carry "name", "chords" (older files use "chords_C"), "difficulty"
    and "comment". Unknown chord symbols degrade to a major triad with a
    warning; records without chords are skipped.
    """
    result: List[LearnableProgression] = []
    for genre, records in dataset.items():
        for record in records:
            symbols = record.get("chords", record.get("chords_C", []))
            name = str(record.get("name", "Untitled"))
            if not symbols:
                print(f"CatalogService: WARNING — skipping progression '{name}' ({genre}) with no chords")
                continue
            progression = Progression(
                name=name,
                chord_symbols=tuple(str(s) for s in symbols),
                difficulty=str(record.get("difficulty", "")),
                comment=str(record.get("comment", "")),
            )
            result.append(build_progression(genre, progression))
    return result


def _group_key(item: SelectableItem, grouping: str) -> str:
    if isinstance(item, LearnableProgression):
        return item.genre
    if grouping == "rootNote":
        return note_name(item.root_note)
    return item.formula_name


class CatalogService(QObject):
    catalogChanged = Signal()

    def __init__(self, resources_dir: Path, progressions_file: Path | None = None):
        super().__init__()
        self._resources_dir = resources_dir
        self._progressions_file = progressions_file or resources_dir / "progressions.json"
        self._items: Tuple[LearnableItem, ...] = ()
        self._progressions: Tuple[LearnableProgression, ...] = ()
        self.reload()

    # ── Loading ───────────────────────────────────────────────────────

    def _load_dataset(self) -> Dict[str, List[dict]]:
        if not self._progressions_file.exists():
            print(f"CatalogService: WARNING — {self._progressions_file} not found, no progressions available")
            return {}
        try:
            with open(self._progressions_file, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            print(f"CatalogService: Could not read {self._progressions_file}: {e}")
            return {}
        if not isinstance(data, dict):
            print(f"CatalogService: WARNING — {self._progressions_file} must map genre names to lists")
            return {}
        return data

    @Slot()
    def reload(self):
        self._items = tuple(build_learnable_items())
        self._progressions = tuple(parse_progressions(self._load_dataset()))
        genres = {p.genre for p in self._progressions}
        print(f"CatalogService: Loaded {len(self._items)} chords/modes and {len(self._progressions)} progressions across {len(genres)} genres")
        self.catalogChanged.emit()

    # ── Read-only views ───────────────────────────────────────────────

    @property
    def items(self) -> Tuple[LearnableItem, ...]:
        return self._items

    @property
    def chords(self) -> List[LearnableItem]:
        return [i for i in self._items if i.kind == CHORD]

    @property
    def modes(self) -> List[LearnableItem]:
        return [i for i in self._items if i.kind == MODE]

    @property
    def progressions(self) -> Tuple[LearnableProgression, ...]:
        return self._progressions

    @property
    def genres(self) -> List[str]:
        return sorted({p.genre for p in self._progressions})

    @Property(int, notify=catalogChanged)
    def itemCount(self) -> int:
        return len(self._items)

    @Property(int, notify=catalogChanged)
    def progressionCount(self) -> int:
        return len(self._progressions)

    # ── Lookup ────────────────────────────────────────────────────────

    def find_item(self, name: str, octave: int | None = None) -> LearnableItem | None:
        """Lowest-rooted item with this name, or the one in the given octave."""
        for item in self._items:
            if item.name == name and (octave is None or item.octave == octave):
                return item
        return None

    def find_progression(self, name: str, genre: str | None = None) -> LearnableProgression | None:
        for progression in self._progressions:
            if progression.name == name and (genre is None or progression.genre == genre):
                return progression
        return None

    def group_items(self, grouping: str) -> Dict[str, List[SelectableItem]]:
        """
        Group catalog entries the way the learn menus present them.

        "rootNote" / "chordType" group chords, "modeType" groups modes and
        "genre" groups progressions. Keys come back sorted, members ordered by
        root note.
        """
        if grouping not in GROUPINGS:
            raise ValueError(f"Unknown grouping '{grouping}', expected one of {GROUPINGS}")

        source: List[SelectableItem]
        if grouping == "genre":
            source = list(self._progressions)
        elif grouping == "modeType":
            source = list(self.modes)
        else:
            source = list(self.chords)

        grouped: Dict[str, List[SelectableItem]] = {}
        for item in source:
            grouped.setdefault(_group_key(item, grouping), []).append(item)
        return {key: sorted(grouped[key], key=lambda i: i.root_note) for key in sorted(grouped)}
