import sys
from pathlib import Path

from PySide6.QtCore import QCoreApplication

# Add src to the path so we can import our logic
project_root = Path(__file__).parent.parent
sys.path.append(str(project_root / "src"))

from keyschool.services.catalog_service import CatalogService
from keyschool.services.learning_session import LearningSessionService
from keyschool.services.midi_ingestor import MidiIngestor


def on_metadata(meta):
    print("\n--- MIDI Metadata ---")
    for k, v in meta.items():
        print(f"{k}: {v}")


def main():
    if len(sys.argv) < 2:
        print("Usage: test_ingestor.py FILE.mid [PROGRESSION NAME]")
        sys.exit(1)

    test_file = Path(sys.argv[1])
    if not test_file.exists():
        print(f"Error: Could not find {test_file}")
        sys.exit(1)

    app = QCoreApplication(sys.argv[:1])
    catalog = CatalogService(project_root / "src" / "resources")
    session = LearningSessionService()
    ingestor = MidiIngestor()

    ingestor.midiMetadata.connect(on_metadata)
    session.chordLabelChanged.connect(lambda name, notes: notes and print(f"  {' + '.join(notes)} = {name}"))
    session.chordSuccess.connect(lambda symbol: print(f"  Correct! {symbol}"))

    if len(sys.argv) > 2:
        progression = catalog.find_progression(sys.argv[2])
        if progression is None:
            print(f"Error: No progression called '{sys.argv[2]}'")
            sys.exit(1)
        session.select(progression)

    print("Testing MidiIngestor...")
    events = ingestor.ingest_file(str(test_file))
    count = ingestor.replay(events, session)
    print(f"\nReplayed {count} events, final position: {session.progressionPositionText or 'n/a'}")


if __name__ == "__main__":
    main()
