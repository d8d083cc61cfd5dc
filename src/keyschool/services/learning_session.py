from dataclasses import dataclass
from typing import FrozenSet, List, Set, Tuple
from PySide6.QtCore import QObject, Property, Signal, Slot  # type: ignore

from keyschool.services.catalog_service import (  # type: ignore
    LearnableItem,
    LearnableProgression,
    SelectableItem,
)
from keyschool.services.chord_recognizer import EMPTY_LABEL, ChordLabel, recognize  # type: ignore
from keyschool.services.note_codec import pitch_class_set  # type: ignore

TRIGGER_CONTINUOUS = "continuous"  # evaluate after every note-on / note-off
TRIGGER_RELEASE = "release"        # evaluate what was struck once every key is up
ADVANCE_TRIGGERS = (TRIGGER_CONTINUOUS, TRIGGER_RELEASE)

STATE_IDLE = "Idle"
STATE_ACTIVE = "Active"
STATE_COMPLETED = "Completed"


@dataclass(frozen=True)
class ProgressionState:
    current_chord_index: int = 0
    completed: bool = False


class LearningSessionService(QObject):
    """
    Tracks one learner's practice target against their live key presses.

    Owns the held-note set, the current selection (a single chord/mode or a
    progression) and the position inside a progression. Every note event
    refreshes the chord label and, for an unfinished progression, checks the
    held pitch classes against the current target chord.
    """
    heldNotesChanged = Signal()
    chordLabelChanged = Signal(str, list)     # name, display notes
    selectionChanged = Signal()
    progressionChanged = Signal(int, bool)    # current index, completed
    chordSuccess = Signal(str)                # chord symbol / item name that was matched
    progressionCompleted = Signal(str)        # progression name

    def __init__(self, advance_trigger: str = TRIGGER_CONTINUOUS, prefer_flats: bool = False):
        super().__init__()
        if advance_trigger not in ADVANCE_TRIGGERS:
            raise ValueError(f"advance_trigger must be one of {ADVANCE_TRIGGERS}, got '{advance_trigger}'")
        self._advance_trigger = advance_trigger
        self._prefer_flats = prefer_flats

        self._held_notes: Set[int] = set()
        self._struck_since_release: Set[int] = set()
        self._label: ChordLabel = EMPTY_LABEL

        self._current_item: SelectableItem | None = None
        self._progression_state = ProgressionState()
        self._is_correct_chord = False

    # ── Python accessors ──────────────────────────────────────────────

    @property
    def advance_trigger(self) -> str:
        return self._advance_trigger

    @property
    def current_item(self) -> SelectableItem | None:
        return self._current_item

    @property
    def held_notes(self) -> FrozenSet[int]:
        return frozenset(self._held_notes)

    @property
    def chord_label(self) -> ChordLabel:
        return self._label

    @property
    def progression_state(self) -> ProgressionState:
        return self._progression_state

    @property
    def state(self) -> str:
        if self._current_item is None:
            return STATE_IDLE
        if self._progression_state.completed:
            return STATE_COMPLETED
        return STATE_ACTIVE

    # ── Properties for QML ────────────────────────────────────────────

    @Property(list, notify=heldNotesChanged)
    def heldNotes(self) -> list:
        return sorted(self._held_notes)

    @Property(str, notify=chordLabelChanged)
    def chordName(self) -> str:
        return self._label.name

    @Property(list, notify=chordLabelChanged)
    def chordNotes(self) -> list:
        return list(self._label.display_notes)

    @Property(list, notify=progressionChanged)
    def targetNotes(self) -> list:
        return list(self.notes_to_highlight())

    @Property(str, notify=selectionChanged)
    def currentItemName(self) -> str:
        return self._current_item.name if self._current_item is not None else ""

    @Property(int, notify=progressionChanged)
    def currentChordIndex(self) -> int:
        return self._progression_state.current_chord_index

    @Property(int, notify=selectionChanged)
    def progressionLength(self) -> int:
        if isinstance(self._current_item, LearnableProgression):
            return len(self._current_item)
        return 0

    @Property(bool, notify=progressionChanged)
    def isProgressionComplete(self) -> bool:
        return self._progression_state.completed

    @Property(bool, notify=progressionChanged)
    def isCorrectChord(self) -> bool:
        return self._is_correct_chord

    @Property(str, notify=progressionChanged)
    def progressionPositionText(self) -> str:
        item = self._current_item
        if not isinstance(item, LearnableProgression):
            return ""
        if self._progression_state.completed:
            return "Complete!"
        return f"Chord {self._progression_state.current_chord_index + 1} of {len(item)}"

    # ── Selection ─────────────────────────────────────────────────────

    def select(self, item: SelectableItem | None):
        """Switch practice target. None returns the session to Idle."""
        if item is not None and not isinstance(item, (LearnableItem, LearnableProgression)):
            raise TypeError(f"Cannot learn {type(item).__name__}")
        self._current_item = item
        self._progression_state = ProgressionState()
        self._struck_since_release = set(self._held_notes)
        self._is_correct_chord = False
        print(f"LearningSession: Selected {item.name if item is not None else 'nothing'}")
        self.selectionChanged.emit()
        self._emit_progression()

    @Slot()
    def clear_selection(self):
        self.select(None)

    @Slot()
    def restart(self):
        """Back to the first chord of the current progression."""
        self._progression_state = ProgressionState()
        self._struck_since_release = set(self._held_notes)
        self._is_correct_chord = False
        self._emit_progression()

    # ── Input ─────────────────────────────────────────────────────────

    @Slot(int, int)
    def note_on(self, note: int, velocity: int = 100):
        if note in self._held_notes:
            return
        self._held_notes.add(note)
        self._struck_since_release.add(note)
        self._on_held_notes_changed()

    @Slot(int)
    def note_off(self, note: int):
        if note not in self._held_notes:
            return
        self._held_notes.discard(note)
        self._on_held_notes_changed()

    @Slot(int, bool, int)
    def handle_midi_note(self, pitch: int, is_on: bool, velocity: int = 100):
        """Entry point for decoded MIDI input."""
        if is_on:
            self.note_on(pitch, velocity)
        else:
            self.note_off(pitch)

    def _on_held_notes_changed(self):
        self._label = recognize(self._held_notes, self._prefer_flats)
        self.heldNotesChanged.emit()
        self.chordLabelChanged.emit(self._label.name, list(self._label.display_notes))
        if self._is_correct_chord:
            # isCorrectChord notifies through progressionChanged
            self._is_correct_chord = False
            self._emit_progression()

        if self._advance_trigger == TRIGGER_CONTINUOUS:
            self._evaluate(self._held_notes)
        elif not self._held_notes:
            struck = self._struck_since_release
            self._struck_since_release = set()
            self._evaluate(struck)

    # ── Targets & evaluation ──────────────────────────────────────────

    def notes_to_highlight(self) -> Tuple[int, ...]:
        item = self._current_item
        if item is None:
            return ()
        if isinstance(item, LearnableItem):
            return item.notes
        if isinstance(item, LearnableProgression):
            if self._progression_state.completed:
                return ()
            return item.chord_notes(self._progression_state.current_chord_index)
        raise TypeError(f"Unsupported selection {type(item).__name__}")

    def _evaluate(self, played: Set[int]):
        item = self._current_item
        if not isinstance(item, LearnableProgression) or self._progression_state.completed:
            return
        if not played:
            return

        index = self._progression_state.current_chord_index
        target = item.chord_notes(index)
        played_pcs: List[int] = pitch_class_set(played)
        if played_pcs != pitch_class_set(target):
            return

        symbol = item.chord_symbols[index]
        print(f"LearningSession: SUCCESS! {symbol} ({index + 1}/{len(item)}) in '{item.name}'")
        self._is_correct_chord = True
        self.chordSuccess.emit(symbol)

        if index < len(item) - 1:
            self._progression_state = ProgressionState(index + 1, False)
            self._emit_progression()
        else:
            self._progression_state = ProgressionState(index, True)
            print(f"LearningSession: Progression '{item.name}' complete")
            self._emit_progression()
            self.progressionCompleted.emit(item.name)

    def _emit_progression(self):
        self.progressionChanged.emit(self._progression_state.current_chord_index,
                                     self._progression_state.completed)
