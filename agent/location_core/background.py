"""
Background execution lease — keeps the process awake while tracking.

  Windows → SetThreadExecutionState(ES_CONTINUOUS | ES_SYSTEM_REQUIRED)
  Termux  → termux-wake-lock / termux-wake-unlock
  other   → nothing to hold; the lease is bookkeeping only

An optional budget (seconds) plays the role of the OS revoking extended
execution: when it runs out, on_expire(handle) is called once from a timer
thread and the lease is released. The lease is never renewed.
"""

import ctypes
import itertools
import os
import shutil
import subprocess
import sys
import threading

from .config import log

_ES_CONTINUOUS = 0x80000000
_ES_SYSTEM_REQUIRED = 0x00000001


class BackgroundTaskHandle:
    """Opaque token for one granted lease."""

    def __init__(self, task_id, name):
        self.task_id = task_id
        self.name = name
        self.timer = None
        self.active = True

    def __repr__(self):
        state = "active" if self.active else "ended"
        return f"<BackgroundTaskHandle #{self.task_id} {self.name} {state}>"


# ─── Platform keep-awake ─────────────────────────────────────────

def _is_termux():
    return "com.termux" in os.environ.get("PREFIX", "") and shutil.which("termux-wake-lock") is not None


def _hold_awake():
    """Ask the OS to keep running while backgrounded. Returns True if held."""
    if sys.platform == "win32":
        try:
            return bool(ctypes.windll.kernel32.SetThreadExecutionState(
                _ES_CONTINUOUS | _ES_SYSTEM_REQUIRED))
        except Exception as e:
            log.warning("SetThreadExecutionState failed: %s", e)
            return False
    if _is_termux():
        try:
            subprocess.run(["termux-wake-lock"], capture_output=True, timeout=10)
            return True
        except (OSError, subprocess.SubprocessError) as e:
            log.warning("termux-wake-lock failed: %s", e)
            return False
    return False


def _release_awake():
    if sys.platform == "win32":
        try:
            ctypes.windll.kernel32.SetThreadExecutionState(_ES_CONTINUOUS)
        except Exception as e:
            log.warning("SetThreadExecutionState reset failed: %s", e)
        return
    if _is_termux():
        try:
            subprocess.run(["termux-wake-unlock"], capture_output=True, timeout=10)
        except (OSError, subprocess.SubprocessError) as e:
            log.warning("termux-wake-unlock failed: %s", e)


# ─── Lease manager ───────────────────────────────────────────────

class BackgroundExecution:
    def __init__(self, budget_sec=None, hold=_hold_awake, release=_release_awake):
        self.budget_sec = budget_sec
        self._hold = hold
        self._release = release
        self._ids = itertools.count(1)
        self._lock = threading.Lock()
        self._active = set()

    @property
    def active_count(self) -> int:
        with self._lock:
            return len(self._active)

    def begin(self, name, on_expire):
        """Grant a lease. on_expire(handle) fires if the budget runs out first."""
        handle = BackgroundTaskHandle(next(self._ids), name)
        with self._lock:
            first = not self._active
            self._active.add(handle.task_id)
        if first:
            held = self._hold()
            log.info("Background task '%s' started (keep-awake=%s)", name, "on" if held else "n/a")

        if self.budget_sec is not None:
            def expire():
                if not handle.active:
                    return
                log.warning("Background task '%s' budget of %ss exhausted", name, self.budget_sec)
                try:
                    on_expire(handle)
                finally:
                    self.end(handle)

            handle.timer = threading.Timer(self.budget_sec, expire)
            handle.timer.daemon = True
            handle.timer.start()
        return handle

    def end(self, handle):
        """Release a lease. Ending an already-ended handle does nothing."""
        if handle is None:
            return
        with self._lock:
            if not handle.active:
                return
            handle.active = False
            self._active.discard(handle.task_id)
            last = not self._active
        if handle.timer is not None:
            handle.timer.cancel()
            handle.timer = None
        if last:
            self._release()
        log.info("Background task '%s' ended", handle.name)
