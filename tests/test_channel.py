from __future__ import annotations

import io

import pytest

from location_core.channel import MethodChannel, MethodNotImplemented
from location_core.models import TrackingState
from location_core.runner import serve_commands


def test_channel_dispatches_start_and_stop(pipeline) -> None:
    channel = MethodChannel(pipeline.controller)

    assert channel.handle("startBackgroundLocationTracking") is None
    assert pipeline.controller.state is TrackingState.ACTIVE

    assert channel.handle("stopBackgroundLocationTracking") is None
    assert pipeline.controller.state is TrackingState.IDLE


def test_unknown_method_is_not_implemented(pipeline) -> None:
    channel = MethodChannel(pipeline.controller)

    with pytest.raises(MethodNotImplemented):
        channel.handle("scheduleBackgroundTasks")
    assert pipeline.controller.state is TrackingState.IDLE


def test_serve_commands_reads_until_quit(pipeline, capsys) -> None:
    channel = MethodChannel(pipeline.controller)
    stream = io.StringIO("startBackgroundLocationTracking\n\nbogus\nquit\nstopBackgroundLocationTracking\n")

    assert serve_commands(channel, stream) is True

    assert pipeline.controller.state is TrackingState.ACTIVE
    out = capsys.readouterr().out
    assert "ok" in out
    assert "not implemented: bogus" in out


def test_serve_commands_returns_false_on_eof(pipeline) -> None:
    channel = MethodChannel(pipeline.controller)

    assert serve_commands(channel, io.StringIO("")) is False
