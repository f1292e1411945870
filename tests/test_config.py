from __future__ import annotations

import json

from location_core.config import DEFAULT_CONFIG, get_config, load_config, save_config
from location_core.models import format_timestamp


def test_defaults_when_no_config_file(tmp_path) -> None:
    config = get_config(tmp_path / "config.json")

    assert config == {**DEFAULT_CONFIG, "serverUrl": DEFAULT_CONFIG["serverUrl"].rstrip("/")}
    assert config["reportIntervalSec"] == 30
    assert config["desiredAccuracyMeters"] == 100.0


def test_config_file_overrides_defaults(tmp_path) -> None:
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"serverUrl": "https://api.example/", "reportIntervalSec": 15}))

    config = get_config(path)

    assert config["serverUrl"] == "https://api.example"
    assert config["reportIntervalSec"] == 15
    assert config["locationProvider"] == "termux"


def test_invalid_config_reads_as_none(tmp_path) -> None:
    path = tmp_path / "config.json"
    path.write_text("{broken")
    assert load_config(path) is None

    path.write_text("[1, 2]")
    assert load_config(path) is None


def test_save_then_load(tmp_path) -> None:
    path = tmp_path / "nested" / "config.json"

    save_config({"autoStart": True}, path)

    assert load_config(path) == {"autoStart": True}


def test_format_timestamp_is_utc_with_z() -> None:
    from datetime import datetime, timedelta, timezone

    local = datetime(2024, 1, 1, 3, 0, 0, 123456, tzinfo=timezone(timedelta(hours=3)))

    assert format_timestamp(local) == "2024-01-01T00:00:00Z"
    assert format_timestamp(0) == "1970-01-01T00:00:00Z"
