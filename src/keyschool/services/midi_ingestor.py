import mido  # type: ignore
import pretty_midi  # type: ignore
from PySide6.QtCore import QObject, Signal, Slot  # type: ignore
from dataclasses import dataclass
from typing import Dict, Iterable, List, Sequence

NOTE_ON = 0x90
NOTE_OFF = 0x80


@dataclass(frozen=True)
class NoteEvent:
    pitch: int
    is_on: bool
    velocity: int = 0
    time: float = 0.0


def decode_midi_message(message, time: float = 0.0) -> NoteEvent | None:
    """
    Reduce an incoming MIDI message to a note event.

    Accepts a mido.Message or the raw bytes of one. Note On with velocity 0 is
    the running-status way of saying Note Off; everything that isn't a note
    message is ignored.
    """
    if isinstance(message, mido.Message):
        if message.type == "note_on":
            return NoteEvent(message.note, message.velocity > 0, message.velocity, time)
        if message.type == "note_off":
            return NoteEvent(message.note, False, 0, time)
        return None

    data = list(message)
    if len(data) < 2:
        return None
    status = data[0] & 0xF0
    if status == NOTE_ON:
        velocity = data[2] if len(data) > 2 else 0
        return NoteEvent(data[1], velocity > 0, velocity, time)
    if status == NOTE_OFF:
        return NoteEvent(data[1], False, 0, time)
    return None


class MidiIngestor(QObject):
    """Feeds the learning session from a live MIDI port or a MIDI file."""
    noteReceived = Signal(int, bool, int)  # pitch, is_on, velocity
    fileIngested = Signal(list)
    midiMetadata = Signal(dict)
    portChanged = Signal(str)

    def __init__(self):
        super().__init__()
        self._port = None
        self._port_name = ""

    # ── Live input ────────────────────────────────────────────────────

    @staticmethod
    def available_ports() -> List[str]:
        try:
            return list(mido.get_input_names())
        except Exception as e:
            print(f"MidiIngestor: Could not enumerate MIDI inputs: {e}")
            return []

    @property
    def port_name(self) -> str:
        return self._port_name

    @Slot(str, result=bool)
    def open_input(self, port_name: str = "") -> bool:
        """Open a MIDI input port (first available when no name is given)."""
        self.close_input()
        ports = self.available_ports()
        if not ports:
            print("MidiIngestor: No MIDI input ports found.")
            return False

        target = port_name or ports[0]
        if target not in ports:
            # Device names often carry a port index suffix; match on prefix
            matches = [p for p in ports if p.startswith(target)]
            if not matches:
                print(f"MidiIngestor: MIDI input '{target}' not found. Available: {ports}")
                return False
            target = matches[0]

        try:
            self._port = mido.open_input(target, callback=self._on_message)
        except Exception as e:
            print(f"MidiIngestor: Failed to open '{target}': {e}")
            self._port = None
            return False

        self._port_name = target
        print(f"MidiIngestor: MIDI input opened: {target}")
        self.portChanged.emit(target)
        return True

    @Slot()
    def close_input(self):
        if self._port is None:
            return
        try:
            self._port.close()
        finally:
            print(f"MidiIngestor: MIDI input closed: {self._port_name}")
            self._port = None
            self._port_name = ""
            self.portChanged.emit("")

    def _on_message(self, message):
        """Called on mido's backend thread; AppState connects noteReceived queued."""
        event = decode_midi_message(message)
        if event is not None:
            self.noteReceived.emit(event.pitch, event.is_on, event.velocity)

    # ── MIDI files ────────────────────────────────────────────────────

    @Slot(str, result=list)
    def ingest_file(self, file_path: str) -> List[NoteEvent]:
        try:
            print(f"MidiIngestor: Ingesting MIDI file: {file_path}")
            pm = pretty_midi.PrettyMIDI(file_path)
        except Exception as e:
            print(f"MidiIngestor: Error ingesting MIDI file: {e}")
            self.fileIngested.emit([])
            return []

        target_track = self._select_piano_track(pm)
        if not target_track:
            print("MidiIngestor: Warning: No suitable tracks found in MIDI file.")
            self.fileIngested.emit([])
            return []

        events = self._translate_to_events(target_track.notes)
        self.midiMetadata.emit({
            "duration": pm.get_end_time(),
            "instruments": [i.name for i in pm.instruments],
            "note_count": len(target_track.notes),
            "selected_track": target_track.name,
        })
        self.fileIngested.emit(events)
        print(f"MidiIngestor: Successfully processed {len(events)} note events.")
        return events

    def _select_piano_track(self, pm: pretty_midi.PrettyMIDI) -> pretty_midi.Instrument | None:
        """Heuristically select the track a pianist would play along with."""
        if not pm.instruments:
            return None

        # 1. Look for explicit Acoustic Grand Piano (program 0)
        for inst in pm.instruments:
            if not inst.is_drum and inst.program == 0:
                print(f"MidiIngestor: Selected acoustic grand piano track: {inst.name}")
                return inst

        # 2. Fallback: the non-drum track with the most notes
        best_track = None
        max_notes = 0
        for inst in pm.instruments:
            if not inst.is_drum and len(inst.notes) > max_notes:
                max_notes = len(inst.notes)
                best_track = inst

        if best_track is not None:
            print(f"MidiIngestor: Fallback track selected (most notes): {best_track.name}")
        return best_track

    def _translate_to_events(self, notes: Sequence[pretty_midi.Note]) -> List[NoteEvent]:
        """
        Split notes into on/off events. At equal times releases sort first.

        Overlapping notes of one pitch are merged: only the first press and
        the last release of the overlap are kept, so a replayed key is never
        let go while another copy of it is still sounding.
        """
        raw: List[NoteEvent] = []
        for note in notes:
            if note.end <= note.start:
                continue
            raw.append(NoteEvent(note.pitch, True, note.velocity, note.start))
            raw.append(NoteEvent(note.pitch, False, 0, note.end))
        raw.sort(key=lambda e: (e.time, e.is_on, e.pitch))

        events: List[NoteEvent] = []
        depth: Dict[int, int] = {}
        for event in raw:
            count = depth.get(event.pitch, 0)
            if event.is_on:
                depth[event.pitch] = count + 1
                if count == 0:
                    events.append(event)
            elif count > 0:
                depth[event.pitch] = count - 1
                if count == 1:
                    events.append(event)
        return events

    def replay(self, events: Iterable[NoteEvent], session) -> int:
        """Push events into a session in order, without real-time waits."""
        count = 0
        for event in events:
            session.handle_midi_note(event.pitch, event.is_on, event.velocity)
            count += 1
        return count
