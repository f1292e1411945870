"""
LocationSource — wraps an OS location provider and keeps the last known fix.

Providers push fixes from their own thread whenever the OS produces one.
The source overwrites its single "last fix" slot and forwards the fix to one
registered sink. Provider errors and authorization changes are logged only:
they never start or stop sampling, and the controller simply finds no fix.

Backends:
  TermuxLocationProvider → Android via `termux-location` (Termux:API)
  StaticLocationProvider → fixed position from config (desk installs, demos)
"""

import enum
import json
import subprocess
import threading
import time

from .config import log
from .constants import ACCURACY_HUNDRED_METERS
from .models import LocationFix, format_timestamp


class AuthorizationStatus(enum.Enum):
    NOT_DETERMINED = "not_determined"
    AUTHORIZED_ALWAYS = "authorized_always"
    AUTHORIZED_WHEN_IN_USE = "authorized_when_in_use"
    DENIED = "denied"
    RESTRICTED = "restricted"


# ─── Provider base ───────────────────────────────────────────────

class LocationProvider:
    """OS location backend. Reports to a delegate from any thread:
    on_location(fix), on_error(error), on_authorization_change(status)."""

    def __init__(self):
        self.desired_accuracy = ACCURACY_HUNDRED_METERS
        self.allows_background_updates = False
        self.pauses_automatically = True
        self.authorization = AuthorizationStatus.NOT_DETERMINED
        self._delegate = None

    def set_delegate(self, delegate):
        self._delegate = delegate

    def start_updating(self):
        raise NotImplementedError

    def stop_updating(self):
        raise NotImplementedError

    # Helpers for subclasses
    def _emit_fix(self, fix):
        if self._delegate is not None:
            self._delegate.on_location(fix)

    def _emit_error(self, error):
        if self._delegate is not None:
            self._delegate.on_error(error)

    def _set_authorization(self, status):
        if status == self.authorization:
            return
        self.authorization = status
        if self._delegate is not None:
            self._delegate.on_authorization_change(status)


class _PollingProvider(LocationProvider):
    """Runs _poll_once() on a worker thread until stop_updating()."""

    def __init__(self, poll_interval=10.0):
        super().__init__()
        self.poll_interval = poll_interval
        self._thread = None
        self._stop_event = threading.Event()

    def start_updating(self):
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop_event = threading.Event()
        self._thread = threading.Thread(
            target=self._run, args=(self._stop_event,),
            name=type(self).__name__, daemon=True,
        )
        self._thread.start()

    def stop_updating(self):
        self._stop_event.set()
        self._thread = None

    def _run(self, stop_event):
        while not stop_event.is_set():
            try:
                delay = self._poll_once()
            except Exception as e:
                self._emit_error(e)
                delay = self.poll_interval
            stop_event.wait(delay if delay is not None else self.poll_interval)

    def _poll_once(self):
        raise NotImplementedError


# ─── Termux (Android) ────────────────────────────────────────────

class TermuxLocationProvider(_PollingProvider):
    """
    Polls `termux-location -p <provider> -r once`.
    Hundred-metre class (or coarser) uses the network provider; finer uses GPS.
    With pauses_automatically on, polling backs off while stationary.
    """

    MAX_PAUSED_INTERVAL = 300.0
    STATIONARY_POLLS = 3

    def __init__(self, command="termux-location", poll_interval=10.0, request_timeout=20.0):
        super().__init__(poll_interval)
        self.command = command
        self.request_timeout = request_timeout
        self._last_coords = None
        self._stationary_count = 0

    @property
    def provider_name(self):
        return "network" if self.desired_accuracy >= ACCURACY_HUNDRED_METERS else "gps"

    def _poll_once(self):
        fix = self.request_fix()
        if fix is None:
            return self.poll_interval
        self._emit_fix(fix)
        return self._next_delay(fix)

    def request_fix(self):
        """Run one termux-location request. Returns a LocationFix or None."""
        try:
            proc = subprocess.run(
                [self.command, "-p", self.provider_name, "-r", "once"],
                capture_output=True, text=True, timeout=self.request_timeout,
            )
        except FileNotFoundError:
            self._set_authorization(AuthorizationStatus.RESTRICTED)
            self._emit_error(RuntimeError(f"{self.command} not found (is Termux:API installed?)"))
            return None
        except subprocess.TimeoutExpired:
            self._emit_error(TimeoutError(f"{self.command} gave no fix within {self.request_timeout}s"))
            return None

        if proc.returncode != 0 or not proc.stdout.strip():
            message = (proc.stderr or "").strip() or f"exit code {proc.returncode}"
            if "permission" in message.lower():
                self._set_authorization(AuthorizationStatus.DENIED)
            self._emit_error(RuntimeError(message))
            return None

        try:
            data = json.loads(proc.stdout)
        except ValueError as e:
            self._emit_error(ValueError(f"Unparseable location output: {e}"))
            return None

        if "API_ERROR" in data:
            message = str(data["API_ERROR"])
            if "permission" in message.lower():
                self._set_authorization(AuthorizationStatus.DENIED)
            self._emit_error(RuntimeError(message))
            return None

        fix = parse_termux_fix(data)
        if fix is None:
            self._emit_error(ValueError("Location output without coordinates"))
            return None
        self._set_authorization(AuthorizationStatus.AUTHORIZED_ALWAYS)
        return fix

    def _next_delay(self, fix):
        if not self.pauses_automatically:
            return self.poll_interval
        coords = (round(fix.latitude, 4), round(fix.longitude, 4))
        if coords == self._last_coords:
            self._stationary_count += 1
        else:
            self._stationary_count = 0
        self._last_coords = coords
        if self._stationary_count < self.STATIONARY_POLLS:
            return self.poll_interval
        factor = 2 ** (self._stationary_count - self.STATIONARY_POLLS + 1)
        return min(self.poll_interval * factor, self.MAX_PAUSED_INTERVAL)


def parse_termux_fix(data, now=None):
    """termux-location JSON → LocationFix. Missing speed/heading read as -1."""
    lat = data.get("latitude")
    lon = data.get("longitude")
    if lat is None or lon is None:
        return None
    now = time.time() if now is None else now
    elapsed_ms = data.get("elapsedMs") or 0
    return LocationFix(
        latitude=float(lat),
        longitude=float(lon),
        accuracy_meters=float(data.get("accuracy", -1.0)),
        altitude_meters=float(data.get("altitude", 0.0)),
        speed_mps=float(data.get("speed", -1.0)),
        heading_degrees=float(data.get("bearing", -1.0)),
        timestamp=format_timestamp(now - elapsed_ms / 1000.0),
    )


# ─── Static (configured position) ────────────────────────────────

class StaticLocationProvider(_PollingProvider):
    def __init__(self, latitude, longitude, accuracy=ACCURACY_HUNDRED_METERS,
                 altitude=0.0, poll_interval=10.0):
        super().__init__(poll_interval)
        self.latitude = float(latitude)
        self.longitude = float(longitude)
        self.accuracy = float(accuracy)
        self.altitude = float(altitude)

    def start_updating(self):
        self._set_authorization(AuthorizationStatus.AUTHORIZED_ALWAYS)
        super().start_updating()

    def _poll_once(self):
        self._emit_fix(LocationFix(
            latitude=self.latitude,
            longitude=self.longitude,
            accuracy_meters=self.accuracy,
            altitude_meters=self.altitude,
            speed_mps=0.0,
            heading_degrees=-1.0,
            timestamp=format_timestamp(),
        ))
        return self.poll_interval


def create_provider(config):
    """Pick the provider named by config["locationProvider"]."""
    kind = (config.get("locationProvider") or "termux").lower()
    if kind == "termux":
        return TermuxLocationProvider()
    if kind == "static":
        where = config.get("staticLocation") or {}
        if "latitude" not in where or "longitude" not in where:
            raise ValueError("locationProvider 'static' needs staticLocation.latitude/longitude")
        return StaticLocationProvider(
            where["latitude"], where["longitude"],
            accuracy=where.get("accuracy", ACCURACY_HUNDRED_METERS),
            altitude=where.get("altitude", 0.0),
        )
    raise ValueError(f"Unknown locationProvider: {kind!r}")


# ─── Source ──────────────────────────────────────────────────────

class Subscription:
    def __init__(self, source, sink):
        self._source = source
        self.sink = sink

    def cancel(self):
        self._source._unsubscribe(self)


class LocationSource:
    """
    Owns the provider and the single "last known fix" slot.
    The slot survives stop(): the next start may report it until a newer
    fix arrives, the same as an OS cached location.
    """

    def __init__(self, provider):
        self._provider = provider
        self._provider.set_delegate(self)
        self._lock = threading.Lock()
        self._last_fix = None
        self._subscription = None
        self._running = False

    @property
    def provider(self):
        return self._provider

    @property
    def last_fix(self):
        with self._lock:
            return self._last_fix

    @property
    def is_running(self) -> bool:
        return self._running

    def subscribe(self, sink):
        """Register the single sink. Replaces any previous one."""
        subscription = Subscription(self, sink)
        with self._lock:
            self._subscription = subscription
        return subscription

    def _unsubscribe(self, subscription):
        with self._lock:
            if self._subscription is subscription:
                self._subscription = None

    def start(self, accuracy_hint=ACCURACY_HUNDRED_METERS):
        if self._running:
            return
        self._provider.desired_accuracy = accuracy_hint
        self._provider.allows_background_updates = True
        self._provider.pauses_automatically = False
        self._provider.start_updating()
        self._running = True
        log.info("Location updates started (%s, accuracy=%.0fm)",
                 type(self._provider).__name__, accuracy_hint)

    def stop(self):
        if not self._running:
            return
        self._provider.stop_updating()
        self._running = False
        log.info("Location updates stopped")

    # ─── Provider delegate (any thread) ──────────────────────

    def on_location(self, fix):
        if not self._running:
            # A request still in flight when stop() was called.
            log.debug("Dropping fix delivered after stop")
            return
        with self._lock:
            self._last_fix = fix
            subscription = self._subscription
        log.debug("Location updated — %s, %s", fix.latitude, fix.longitude)
        if subscription is not None:
            try:
                subscription.sink(fix)
            except Exception as e:
                log.error("Location sink error: %s", e, exc_info=True)

    def on_error(self, error):
        log.warning("Location error: %s", error)

    def on_authorization_change(self, status):
        if status in (AuthorizationStatus.AUTHORIZED_ALWAYS, AuthorizationStatus.AUTHORIZED_WHEN_IN_USE):
            log.info("Location permission granted (%s)", status.value)
        elif status in (AuthorizationStatus.DENIED, AuthorizationStatus.RESTRICTED):
            log.warning("Location permission denied (%s)", status.value)
        else:
            log.info("Location permission not determined")
