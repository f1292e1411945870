"""
Persisted string preferences — a JSON file of key → string value.

The host app owns the contents (it writes the active work session here);
the tracker only reads. The file is re-read on every lookup so changes made
by the host while tracking is ACTIVE are picked up on the next tick.
"""

import json
import os
from pathlib import Path

from .config import log, PREFERENCES_FILE


class Preferences:
    def __init__(self, path=PREFERENCES_FILE):
        self._path = Path(path)

    @property
    def path(self):
        return self._path

    def _read_all(self):
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError, UnicodeDecodeError) as e:
            log.warning("Preferences unreadable (%s) — treating as empty", e)
            return {}
        if not isinstance(data, dict):
            log.warning("Preferences file is not a JSON object — treating as empty")
            return {}
        return data

    def get_string(self, key):
        """Return the string stored under key, or None."""
        value = self._read_all().get(key)
        return value if isinstance(value, str) else None

    def set_string(self, key, value):
        data = self._read_all()
        data[key] = value
        self._write_all(data)

    def _write_all(self, data):
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._path.with_suffix(self._path.suffix + ".tmp")
        tmp.write_text(json.dumps(data, indent=2), encoding="utf-8")
        os.replace(tmp, self._path)
