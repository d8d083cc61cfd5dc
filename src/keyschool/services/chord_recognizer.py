from dataclasses import dataclass
from typing import Dict, Iterable, List, Tuple

from keyschool.services.formula_tables import MODE, RECOGNITION_TABLE, Formula  # type: ignore
from keyschool.services.note_codec import NOTES_PER_OCTAVE, note_name, pitch_class_set  # type: ignore

CUSTOM_LABEL = "Custom"

# Formula names that read differently in a chord label
_LABEL_SUFFIXES = {"Maj": "", "": "", "Min": "m"}


@dataclass(frozen=True)
class ChordLabel:
    name: str
    display_notes: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, object]:
        return {"name": self.name, "notes": list(self.display_notes)}


EMPTY_LABEL = ChordLabel("", ())


def interval_signature(pitch_classes: Iterable[int], root: int) -> List[int]:
    """Offsets of every pitch class above a candidate root, ascending."""
    return sorted((pc - root + NOTES_PER_OCTAVE) % NOTES_PER_OCTAVE for pc in pitch_classes)


def label_for(root_pc: int, formula: Formula, prefer_flats: bool = False) -> str:
    root_name = note_name(root_pc, prefer_flats)
    if formula.kind == MODE:
        return f"{root_name} {formula.name}"
    return root_name + _LABEL_SUFFIXES.get(formula.name, formula.name)


def recognize(notes: Iterable[int], prefer_flats: bool = False) -> ChordLabel:
    """
    Name whatever is being held.

    Every pitch class is tried as the root in ascending order, and for each
    root the formulas are searched longest-first. The first exact match wins,
    so ambiguous sets (C6 vs Am7) always resolve to the lowest pitch-class root.
    """
    notes = list(notes)
    if not notes:
        return EMPTY_LABEL
    if len(notes) == 1:
        name = note_name(notes[0], prefer_flats)
        return ChordLabel(name, (name,))

    pcs = pitch_class_set(notes)
    display = tuple(note_name(pc, prefer_flats) for pc in pcs)
    for root in pcs:
        signature = tuple(interval_signature(pcs, root))
        for formula in RECOGNITION_TABLE:
            if len(formula.pitch_classes) == len(signature) and formula.pitch_classes == signature:
                return ChordLabel(label_for(root, formula, prefer_flats), display)

    return ChordLabel(CUSTOM_LABEL, display)
