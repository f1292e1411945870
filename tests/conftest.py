"""Shared fakes: clock, location provider, HTTP session, background lease."""

from __future__ import annotations

import json

import pytest

from location_core.background import BackgroundTaskHandle
from location_core.controller import TrackingController
from location_core.fallback import FallbackLogger
from location_core.location import LocationProvider, LocationSource
from location_core.mainloop import MainLoop
from location_core.models import LocationFix
from location_core.preferences import Preferences
from location_core.reporter import NetworkReporter
from location_core.session_store import SessionStore


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeProvider(LocationProvider):
    def __init__(self) -> None:
        super().__init__()
        self.updating = False
        self.start_calls = 0
        self.stop_calls = 0

    def start_updating(self) -> None:
        self.updating = True
        self.start_calls += 1

    def stop_updating(self) -> None:
        self.updating = False
        self.stop_calls += 1

    def push(self, fix: LocationFix) -> None:
        self._emit_fix(fix)


class FakeResponse:
    def __init__(self, status_code: int, text: str = "") -> None:
        self.status_code = status_code
        self.text = text


class FakeHTTP:
    def __init__(self, status_code: int = 200, error: Exception | None = None) -> None:
        self.status_code = status_code
        self.error = error
        self.calls: list[dict] = []

    def post(self, url, data=None, headers=None, timeout=None):
        self.calls.append({
            "url": url,
            "body": json.loads(data) if data else None,
            "headers": dict(headers or {}),
            "timeout": timeout,
        })
        if self.error is not None:
            raise self.error
        return FakeResponse(self.status_code, "denied" if self.status_code != 200 else "")


class FakeBackground:
    def __init__(self) -> None:
        self.begun: list[BackgroundTaskHandle] = []
        self.ended: list[BackgroundTaskHandle] = []
        self._expiry = {}

    def begin(self, name, on_expire):
        handle = BackgroundTaskHandle(len(self.begun) + 1, name)
        self.begun.append(handle)
        self._expiry[handle.task_id] = on_expire
        return handle

    def end(self, handle):
        if handle is None or not handle.active:
            return
        handle.active = False
        self.ended.append(handle)

    def expire(self, handle) -> None:
        self._expiry[handle.task_id](handle)
        self.end(handle)

    @property
    def active_count(self) -> int:
        return sum(1 for h in self.begun if h.active)


class RecordingReporter:
    def __init__(self) -> None:
        self.sent = []

    def send(self, session, fix):
        self.sent.append((session, fix))
        return None


class RecordingFallback:
    def __init__(self) -> None:
        self.records = []

    def record(self, fix) -> bool:
        self.records.append(fix)
        return True


def make_fix(**overrides) -> LocationFix:
    values = dict(
        latitude=41.0,
        longitude=29.0,
        accuracy_meters=10.0,
        altitude_meters=5.0,
        speed_mps=0.0,
        heading_degrees=0.0,
        timestamp="2024-01-01T00:00:00Z",
    )
    values.update(overrides)
    return LocationFix(**values)


def session_blob(session_id: str = "abc", token: str = "T") -> str:
    return json.dumps({"session": {"id": session_id, "status": "active"}, "token": token})


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def loop(clock: FakeClock) -> MainLoop:
    return MainLoop(clock=clock)


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def prefs(tmp_path) -> Preferences:
    return Preferences(tmp_path / "preferences.json")


@pytest.fixture
def pipeline(loop, provider, prefs):
    """A controller wired to recording collaborators."""
    source = LocationSource(provider)
    background = FakeBackground()
    reporter = RecordingReporter()
    fallback = RecordingFallback()
    controller = TrackingController(
        source=source,
        sessions=SessionStore(prefs),
        reporter=reporter,
        fallback=fallback,
        background=background,
        loop=loop,
        interval_sec=30,
    )

    class Pipeline:
        pass

    p = Pipeline()
    p.controller = controller
    p.source = source
    p.provider = provider
    p.background = background
    p.reporter = reporter
    p.fallback = fallback
    p.prefs = prefs
    p.loop = loop
    return p


@pytest.fixture
def fake_http() -> FakeHTTP:
    return FakeHTTP()


@pytest.fixture
def reporter(fake_http: FakeHTTP) -> NetworkReporter:
    return NetworkReporter("http://tracker.test", http=fake_http, timeout=5)


@pytest.fixture
def fallback_logger(tmp_path) -> FallbackLogger:
    from datetime import datetime, timezone

    return FallbackLogger(
        tmp_path / "Documents" / "gps_debug.log",
        clock=lambda: datetime(2024, 1, 1, 12, 30, 0, tzinfo=timezone.utc),
    )
