"""
TrackingController — IDLE ⇄ ACTIVE lifecycle of background location reporting.

  IDLE   --start()-->      ACTIVE  lease + location updates + 30s timer
  ACTIVE --tick-->         ACTIVE  report last fix (send / fallback / skip)
  ACTIVE --stop()-->       IDLE    timer cancelled, updates stopped, lease ended
  ACTIVE --lease expiry--> IDLE    same cleanup, forced by the OS budget

All transitions and ticks run on the MainLoop thread. start()/stop() block
until the transition is done, so once stop() returns no further tick fires.
Sends already in flight are left to finish on their own.
"""

import enum

from .config import log
from .constants import REPORT_INTERVAL_SEC, ACCURACY_HUNDRED_METERS, BACKGROUND_TASK_NAME
from .mainloop import LoopStopped
from .models import TrackingState


class ReportOutcome(enum.Enum):
    NO_FIX = "no_fix"
    SENT = "sent"
    FALLBACK = "fallback"


class TrackingController:
    def __init__(self, source, sessions, reporter, fallback, background, loop,
                 interval_sec=REPORT_INTERVAL_SEC, accuracy=ACCURACY_HUNDRED_METERS):
        self._source = source
        self._sessions = sessions
        self._reporter = reporter
        self._fallback = fallback
        self._background = background
        self._loop = loop
        self._interval_ms = int(interval_sec * 1000)
        self._accuracy = accuracy

        self._state = TrackingState.IDLE
        self._timer_id = None
        self._lease = None
        self._subscription = None
        self.fixes_received = 0
        self.last_send = None       # Future of the most recent send, for observers

    # ─── Introspection ───────────────────────────────────────

    @property
    def state(self):
        return self._state

    @property
    def is_active(self) -> bool:
        return self._state is TrackingState.ACTIVE

    @property
    def timer_armed(self) -> bool:
        return self._timer_id is not None

    @property
    def lease(self):
        return self._lease

    # ─── Commands (any thread) ───────────────────────────────

    def start(self):
        self._loop.call(self._start)

    def stop(self):
        self._loop.call(self._stop)

    # ─── Transitions (loop thread) ───────────────────────────

    def _start(self):
        if self._state is TrackingState.ACTIVE:
            log.info("Tracking already active — start ignored")
            return

        log.info("Background location tracking starting...")
        self._lease = self._background.begin(BACKGROUND_TASK_NAME, self._on_lease_expired)
        try:
            self._subscription = self._source.subscribe(self._on_fix)
            self._source.start(self._accuracy)
        except Exception as e:
            log.error("Background location tracking failed to start: %s", e)
            self._teardown()
            raise
        self._state = TrackingState.ACTIVE
        self._schedule_tick()
        log.info("Background location tracking active (every %ds)", self._interval_ms // 1000)

    def _stop(self):
        if self._state is TrackingState.IDLE:
            log.info("Tracking not active — stop ignored")
            return
        log.info("Background location tracking stopping...")
        self._teardown()
        log.info("Background location tracking stopped")

    def _teardown(self):
        if self._timer_id is not None:
            self._loop.after_cancel(self._timer_id)
            self._timer_id = None
        self._source.stop()
        if self._subscription is not None:
            self._subscription.cancel()
            self._subscription = None
        lease, self._lease = self._lease, None
        self._background.end(lease)
        self._state = TrackingState.IDLE

    def _on_lease_expired(self, handle):
        # Timer thread → loop thread; returns once cleanup is done.
        try:
            self._loop.call(lambda: self._expire(handle))
        except LoopStopped:
            log.info("Background execution expired after shutdown — nothing to clean up")

    def _expire(self, handle):
        if self._state is TrackingState.IDLE or handle is not self._lease:
            log.debug("Ignoring expiry of stale lease %r", handle)
            return
        log.warning("Background execution expired — tracking forced to IDLE")
        self._teardown()

    def _on_fix(self, fix):
        # Provider thread → loop thread.
        self._loop.post(self._count_fix)

    def _count_fix(self):
        self.fixes_received += 1

    # ─── Timer ───────────────────────────────────────────────

    def _schedule_tick(self):
        self._timer_id = self._loop.after(self._interval_ms, self._tick)

    def _tick(self):
        if self._state is not TrackingState.ACTIVE:
            return
        self._schedule_tick()
        try:
            self.report()
        except Exception as e:
            log.error("Report tick error: %s", e, exc_info=True)

    def report(self):
        """One reporting step. Returns the ReportOutcome."""
        fix = self._source.last_fix
        if fix is None:
            log.info("No location available yet — nothing to report")
            return ReportOutcome.NO_FIX

        log.info("Reporting location — %s, %s", fix.latitude, fix.longitude)
        session = self._sessions.current()
        if session is None:
            log.info("No active work session — recording fix locally")
            self._fallback.record(fix)
            return ReportOutcome.FALLBACK

        self.last_send = self._reporter.send(session, fix)
        return ReportOutcome.SENT
