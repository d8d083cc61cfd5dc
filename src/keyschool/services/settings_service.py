import os
from pathlib import Path
from PySide6.QtCore import QObject, Property, Slot, Signal  # type: ignore

from keyschool.services.learning_session import ADVANCE_TRIGGERS, TRIGGER_CONTINUOUS  # type: ignore

TRUTHY = ("true", "1", "yes", "on")


def _read_env_lines(env_file: Path) -> list:
    try:
        with open(env_file, "r", encoding="utf-8") as f:
            return f.readlines()
    except UnicodeDecodeError:
        with open(env_file, "r", encoding="utf-16") as f:
            return f.readlines()


def load_env_file(env_file: Path) -> int:
    """Copy KEY=VALUE pairs from a .env file into os.environ without overriding."""
    if not env_file.exists():
        return 0
    loaded = 0
    for line in _read_env_lines(env_file):
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, val = line.split("=", 1)
        key = key.strip()
        if key and key not in os.environ:
            os.environ[key] = val.strip().strip('"').strip("'")
            loaded += 1
    return loaded


class SettingsService(QObject):
    settingsChanged = Signal()

    def __init__(self, project_root: Path):
        super().__init__()
        self.project_root = project_root
        self.env_file = project_root / ".env"

    # ── Generic .env helpers ──────────────────────────────────────────

    def _get_env(self, key: str, default: str = "") -> str:
        return os.environ.get(key, default)

    def _set_env(self, key: str, val: str):
        if os.environ.get(key) == val:
            return
        os.environ[key] = val
        try:
            lines = _read_env_lines(self.env_file) if self.env_file.exists() else []

            new_lines = []
            found = False
            for line in lines:
                if line.strip().startswith(f"{key}="):
                    new_lines.append(f"{key}={val}\n")
                    found = True
                else:
                    new_lines.append(line)
            if not found:
                new_lines.append(f"{key}={val}\n")

            with open(self.env_file, "w", encoding="utf-8") as f:
                f.writelines(new_lines)
        except OSError as e:
            print(f"SettingsService: Failed to write {key} to .env: {e}")
        self.settingsChanged.emit()

    # ── MIDI Input ────────────────────────────────────────────────────

    @Property(str, notify=settingsChanged)
    def midiInput(self) -> str:
        return self._get_env("KEYSCHOOL_MIDI_INPUT", "")

    @midiInput.setter  # type: ignore
    def midiInput(self, val: str):
        self._set_env("KEYSCHOOL_MIDI_INPUT", val)

    # ── Note Spelling ─────────────────────────────────────────────────

    @Property(bool, notify=settingsChanged)
    def preferFlats(self) -> bool:
        return self._get_env("KEYSCHOOL_PREFER_FLATS", "false").lower() in TRUTHY

    @preferFlats.setter  # type: ignore
    def preferFlats(self, val: bool):
        self._set_env("KEYSCHOOL_PREFER_FLATS", "true" if val else "false")

    # ── Progression Advancement ───────────────────────────────────────

    @Property(str, notify=settingsChanged)
    def advanceTrigger(self) -> str:
        val = self._get_env("KEYSCHOOL_ADVANCE_TRIGGER", TRIGGER_CONTINUOUS).strip().lower()
        if val not in ADVANCE_TRIGGERS:
            print(f"SettingsService: WARNING — unknown KEYSCHOOL_ADVANCE_TRIGGER '{val}', using '{TRIGGER_CONTINUOUS}'")
            return TRIGGER_CONTINUOUS
        return val

    @advanceTrigger.setter  # type: ignore
    def advanceTrigger(self, val: str):
        if val not in ADVANCE_TRIGGERS:
            print(f"SettingsService: Ignoring invalid advance trigger '{val}'")
            return
        self._set_env("KEYSCHOOL_ADVANCE_TRIGGER", val)

    # ── Progression Dataset ───────────────────────────────────────────

    @property
    def resources_dir(self) -> Path:
        return self.project_root / "src" / "resources"

    @property
    def progressions_file(self) -> Path:
        custom = self._get_env("KEYSCHOOL_PROGRESSIONS_FILE", "")
        if custom:
            path = Path(custom)
            return path if path.is_absolute() else self.project_root / path
        return self.resources_dir / "progressions.json"

    @Slot(str)
    def setProgressionsFile(self, val: str):
        self._set_env("KEYSCHOOL_PROGRESSIONS_FILE", val)
