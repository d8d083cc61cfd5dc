"""
KeySchool - Headless Entry Point

Wires the settings, catalog, MIDI input and learning session together and
prints what the learner is playing. A rendering front-end would bind to the
same AppState object instead of the console printer.
"""
from PySide6.QtCore import QCoreApplication, QObject, Property, Qt, QTimer, Slot  # type: ignore
import argparse
import signal
import sys
from pathlib import Path

# --- Frozen vs Dev Environment ---
if getattr(sys, 'frozen', False):
    project_root = Path(sys._MEIPASS)
else:
    project_root = Path(__file__).parent.parent

# Add local paths for imports
sys.path.append(str(project_root / "src"))

from keyschool.services.catalog_service import CatalogService  # type: ignore
from keyschool.services.learning_session import LearningSessionService  # type: ignore
from keyschool.services.midi_ingestor import MidiIngestor  # type: ignore
from keyschool.services.settings_service import SettingsService, load_env_file  # type: ignore


class AppState(QObject):
    def __init__(self, root: Path = project_root):
        super().__init__()
        self.settings = SettingsService(root)
        self.catalog = CatalogService(self.settings.resources_dir, self.settings.progressions_file)
        self.session = LearningSessionService(
            advance_trigger=self.settings.advanceTrigger,
            prefer_flats=self.settings.preferFlats,
        )
        self.midi_ingestor = MidiIngestor()

        # MIDI callbacks arrive on mido's backend thread; hop to the main thread
        self.midi_ingestor.noteReceived.connect(self.session.handle_midi_note, Qt.QueuedConnection)

        self.session.chordLabelChanged.connect(self._on_chord_label)
        self.session.chordSuccess.connect(self._on_chord_success)
        self.session.progressionChanged.connect(self._on_progression_changed)
        self.session.progressionCompleted.connect(self._on_progression_completed)

    # ── Selection helpers ─────────────────────────────────────────────

    @Slot(str, result=bool)
    def select_by_name(self, name: str) -> bool:
        """Select a chord/mode ("CMaj7", "D Dorian") or a progression by name."""
        item = self.catalog.find_item(name) or self.catalog.find_progression(name)
        if item is None:
            print(f"AppState: Nothing in the catalog is called '{name}'")
            return False
        self.session.select(item)
        targets = self.session.notes_to_highlight()
        print(f"AppState: Now learning {item.name}, play {list(targets)}")
        return True

    @Slot(result=bool)
    def connect_midi(self) -> bool:
        return self.midi_ingestor.open_input(self.settings.midiInput)

    @Slot(str, result=int)
    def replay_file(self, file_path: str) -> int:
        events = self.midi_ingestor.ingest_file(file_path)
        return self.midi_ingestor.replay(events, self.session)

    # ── Console feedback ──────────────────────────────────────────────

    @Slot(str, list)
    def _on_chord_label(self, name: str, notes: list):
        if notes:
            print(f"{' + '.join(notes)} = {name}")

    @Slot(str)
    def _on_chord_success(self, symbol: str):
        print(f"AppState: Correct! {symbol}")

    @Slot(int, bool)
    def _on_progression_changed(self, index: int, completed: bool):
        text = self.session.progressionPositionText
        if text and not completed:
            print(f"AppState: {text} -> {list(self.session.notes_to_highlight())}")

    @Slot(str)
    def _on_progression_completed(self, name: str):
        print(f"AppState: '{name}' complete. Select it again or restart to go another round.")

    @Property(QObject, constant=True)
    def learningSession(self):
        return self.session

    @Property(QObject, constant=True)
    def catalogService(self):
        return self.catalog

    @Property(QObject, constant=True)
    def settingsService(self):
        return self.settings


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="keyschool", description="Chord and progression practice engine.")
    parser.add_argument("--select", metavar="NAME", help="chord, mode or progression to practise")
    parser.add_argument("--replay", metavar="FILE", help="feed a MIDI file through the session and exit")
    parser.add_argument("--list-ports", action="store_true", help="list MIDI input ports and exit")
    parser.add_argument("--list-progressions", action="store_true", help="list progressions by genre and exit")
    return parser


def main(argv=None):
    load_env_file(project_root / ".env")
    args = build_arg_parser().parse_args(argv)

    if args.list_ports:
        for name in MidiIngestor.available_ports():
            print(name)
        return 0

    app = QCoreApplication.instance() or QCoreApplication(sys.argv[:1])
    app_state = AppState()

    if args.list_progressions:
        for genre, progressions in app_state.catalog.group_items("genre").items():
            print(f"{genre}:")
            for p in progressions:
                print(f"  {p.name}: {' - '.join(p.chord_symbols)} [{p.difficulty}]")
        return 0

    if args.select and not app_state.select_by_name(args.select):
        return 1

    if args.replay:
        count = app_state.replay_file(args.replay)
        print(f"AppState: Replayed {count} note events")
        return 0

    if not app_state.connect_midi():
        return 1

    # Let Ctrl+C through the Qt event loop
    signal.signal(signal.SIGINT, lambda *_: app.quit())
    timer = QTimer()
    timer.start(200)
    timer.timeout.connect(lambda: None)

    code = app.exec()
    app_state.midi_ingestor.close_input()
    return code


if __name__ == "__main__":
    sys.exit(main())
