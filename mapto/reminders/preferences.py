"""
The single persisted reminder preference.
"""
import json
from pathlib import Path

from ..logging_config import reminder_logger

PREFERENCE_KEY = "mapto.notificationsEnabled"


class PreferenceStore:
    """Key/value JSON file. Only "enabled" is ever stored; disabling removes the key."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def _read(self) -> dict:
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {}
        except (OSError, ValueError) as e:
            reminder_logger.error("Failed to read reminder preference", error=e, path=str(self.path))
            return {}
        return data if isinstance(data, dict) else {}

    def is_enabled(self) -> bool:
        return self._read().get(PREFERENCE_KEY) == "true"

    def set_enabled(self, enabled: bool) -> None:
        data = self._read()
        if enabled:
            data[PREFERENCE_KEY] = "true"
        else:
            data.pop(PREFERENCE_KEY, None)

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(data), encoding="utf-8")
        except OSError as e:
            reminder_logger.error("Failed to persist reminder preference", error=e, path=str(self.path))
