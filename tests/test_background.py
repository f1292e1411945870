from __future__ import annotations

import threading

from location_core.background import BackgroundExecution


def _manager(budget=None):
    events = []
    manager = BackgroundExecution(
        budget_sec=budget,
        hold=lambda: events.append("hold") or True,
        release=lambda: events.append("release"),
    )
    return manager, events


def test_begin_and_end_hold_and_release_keep_awake() -> None:
    manager, events = _manager()

    handle = manager.begin("LocationTracking", lambda h: None)
    assert handle.active
    assert manager.active_count == 1

    manager.end(handle)
    manager.end(handle)

    assert not handle.active
    assert manager.active_count == 0
    assert events == ["hold", "release"]


def test_end_none_is_noop() -> None:
    manager, events = _manager()

    manager.end(None)

    assert events == []


def test_budget_expiry_calls_back_and_releases() -> None:
    manager, events = _manager(budget=0.05)
    expired = threading.Event()
    seen = []

    def on_expire(handle):
        seen.append(handle)
        expired.set()

    handle = manager.begin("LocationTracking", on_expire)

    assert expired.wait(timeout=5)
    assert seen == [handle]
    # end() runs right after the callback on the timer thread.
    for _ in range(100):
        if not handle.active:
            break
        threading.Event().wait(0.01)
    assert not handle.active
    assert events == ["hold", "release"]


def test_ended_lease_never_expires() -> None:
    manager, _ = _manager(budget=0.05)
    expired = threading.Event()

    handle = manager.begin("LocationTracking", lambda h: expired.set())
    manager.end(handle)

    assert not expired.wait(timeout=0.3)
