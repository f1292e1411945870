"""
MainLoop — the single thread that owns all tracking state.

Same shape as a Tk root: after(ms, fn) / after_cancel(id) for timers,
post(fn) for work handed over from other threads, and call(fn) to run fn on
the loop and wait for its result. Commands, timer ticks, location callbacks
and lease expiry all go through here, so no two of them interleave.

Without a loop thread (tests, or before start()), call() runs inline and
run_pending() drives timers and posted work by hand.
"""

import heapq
import itertools
import threading
import time
from collections import deque
from concurrent.futures import CancelledError, Future

from .config import log


class LoopStopped(RuntimeError):
    """call() could not run because the loop has quit."""


class MainLoop:
    def __init__(self, clock=time.monotonic):
        self._clock = clock
        self._cond = threading.Condition()
        self._ready = deque()
        self._timers = []           # heap of (deadline, seq, timer_id)
        self._callbacks = {}        # timer_id → fn, absent once cancelled/fired
        self._seq = itertools.count(1)
        self._pending_calls = set()  # futures of call()s waiting on the loop
        self._thread = None
        self._running = False

    # ─── Scheduling ──────────────────────────────────────────

    def after(self, ms, fn):
        """Run fn once, ms milliseconds from now. Returns a timer id."""
        with self._cond:
            seq = next(self._seq)
            timer_id = f"after#{seq}"
            heapq.heappush(self._timers, (self._clock() + ms / 1000.0, seq, timer_id))
            self._callbacks[timer_id] = fn
            self._cond.notify()
        return timer_id

    def after_cancel(self, timer_id):
        with self._cond:
            self._callbacks.pop(timer_id, None)

    def post(self, fn):
        """Queue fn to run on the loop as soon as possible."""
        with self._cond:
            self._ready.append(fn)
            self._cond.notify()

    def call(self, fn):
        """Run fn on the loop and return its result (re-raising its error).

        Raises LoopStopped if the loop quits before fn gets to run.
        """
        if self._thread is None or self.in_loop_thread():
            return fn()

        future = Future()

        def run():
            if not future.set_running_or_notify_cancel():
                return
            try:
                future.set_result(fn())
            except BaseException as e:
                future.set_exception(e)

        with self._cond:
            if not self._running:
                raise LoopStopped("main loop is not running")
            self._ready.append(run)
            self._pending_calls.add(future)
            self._cond.notify()
        try:
            return future.result()
        except CancelledError:
            raise LoopStopped("main loop stopped before the call ran") from None
        finally:
            with self._cond:
                self._pending_calls.discard(future)

    def in_loop_thread(self) -> bool:
        return threading.current_thread() is self._thread

    @property
    def pending_timers(self) -> int:
        with self._cond:
            return len(self._callbacks)

    # ─── Running ─────────────────────────────────────────────

    def run_pending(self) -> int:
        """Run posted work and every timer due now. Returns how many ran."""
        with self._cond:
            batch = list(self._ready)
            self._ready.clear()
            now = self._clock()
            while self._timers and self._timers[0][0] <= now:
                _, _, timer_id = heapq.heappop(self._timers)
                fn = self._callbacks.pop(timer_id, None)
                if fn is not None:
                    batch.append(fn)

        for fn in batch:
            try:
                fn()
            except Exception as e:
                log.error("Main loop callback error: %s", e, exc_info=True)
        return len(batch)

    def _next_wait(self):
        # Caller holds self._cond.
        if self._ready:
            return 0.0
        while self._timers and self._timers[0][2] not in self._callbacks:
            heapq.heappop(self._timers)
        if not self._timers:
            return None
        return max(0.0, self._timers[0][0] - self._clock())

    def run(self):
        """Block running callbacks until quit()."""
        if self._thread is None:
            self._thread = threading.current_thread()
            self._running = True
        try:
            while True:
                with self._cond:
                    if not self._running:
                        break
                    wait = self._next_wait()
                    if wait is None or wait > 0:
                        self._cond.wait(wait)
                    if not self._running:
                        break
                self.run_pending()
        finally:
            self._thread = None

    def start(self):
        """Run the loop on a daemon thread."""
        thread = threading.Thread(target=self.run, name="main-loop", daemon=True)
        self._thread = thread
        self._running = True
        thread.start()
        return thread

    def quit(self):
        """Stop the loop. call()s that have not started yet raise LoopStopped."""
        with self._cond:
            self._running = False
            pending = list(self._pending_calls)
            self._cond.notify_all()
        for future in pending:
            future.cancel()     # no-op for a call already running

    def join(self, timeout=None):
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)
