"""
FallbackLogger — diagnostic trail for fixes taken while no session exists.

One line per record: "<timestamp>: <latitude>, <longitude>". The file is
append-only and is never read back or replayed; it is not a retry queue.
A failed write is logged and dropped so reporting never stalls on disk.
"""

from datetime import datetime, timezone
from pathlib import Path

from .config import log, FALLBACK_LOG_FILE


def _now():
    return datetime.now(timezone.utc)


class FallbackLogger:
    def __init__(self, path=FALLBACK_LOG_FILE, clock=_now):
        self._path = Path(path)
        self._clock = clock

    @property
    def path(self):
        return self._path

    def format_line(self, fix):
        stamp = self._clock().astimezone(timezone.utc).strftime("%Y-%m-%d %H:%M:%S %z")
        return f"{stamp}: {fix.latitude}, {fix.longitude}\n"

    def record(self, fix) -> bool:
        """Append one line for fix. Returns False if the write failed."""
        line = self.format_line(fix)
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with open(self._path, "a", encoding="utf-8") as f:
                f.write(line)
        except OSError as e:
            log.warning("Fallback log write failed (%s): %s", self._path, e)
            return False
        log.info("No session — fix written to %s", self._path.name)
        return True
