"""
Paths, logging setup, config load/save, safe_print.
"""

import os
import json
import sys
import logging
from pathlib import Path

from .constants import (
    REPORT_INTERVAL_SEC, REQUEST_TIMEOUT_SEC, ACCURACY_HUNDRED_METERS,
    DEFAULT_SERVER_URL, FALLBACK_LOG_NAME,
)


# ─── Paths ───────────────────────────────────────────────────────
# One config/state per user per machine. QUICKCITY_TRACKER_HOME overrides.
_FOLDER_NAME = "QuickCityTracker"

if os.environ.get("QUICKCITY_TRACKER_HOME"):
    BASE_DIR = Path(os.environ["QUICKCITY_TRACKER_HOME"])
elif sys.platform == "win32":
    BASE_DIR = Path(os.environ.get("APPDATA", Path.home() / "AppData" / "Roaming")) / _FOLDER_NAME
else:
    BASE_DIR = Path.home() / ".local" / "share" / "quickcity-tracker"

CONFIG_FILE = BASE_DIR / "config.json"
LOG_FILE = BASE_DIR / "tracker.log"
PREFERENCES_FILE = BASE_DIR / "preferences.json"
DOCUMENTS_DIR = BASE_DIR / "Documents"
FALLBACK_LOG_FILE = DOCUMENTS_DIR / FALLBACK_LOG_NAME


# ─── Safe print (no crash when there is no console) ──────────────

def safe_print(*args, **kwargs):
    try:
        print(*args, **kwargs)
    except Exception:
        pass


# ─── Logging ─────────────────────────────────────────────────────

log = logging.getLogger("tracker")

_LOG_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"


def setup_logging(log_file=LOG_FILE, level=logging.INFO):
    """Log to file (truncated past 1 MB) and to stdout."""
    log_file = Path(log_file)
    log_file.parent.mkdir(parents=True, exist_ok=True)
    try:
        if log_file.exists() and log_file.stat().st_size > 1_000_000:
            log_file.write_text("")
    except OSError:
        pass

    logging.basicConfig(
        filename=str(log_file),
        level=level,
        format=_LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
        encoding="utf-8",
    )

    if not any(getattr(h, "_tracker_console", False) for h in log.handlers):
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(level)
        console_handler.setFormatter(logging.Formatter(_LOG_FORMAT))
        console_handler._tracker_console = True
        log.addHandler(console_handler)
    return log


# ─── Config Management ──────────────────────────────────────────

DEFAULT_CONFIG = {
    "serverUrl": DEFAULT_SERVER_URL,
    "reportIntervalSec": REPORT_INTERVAL_SEC,
    "desiredAccuracyMeters": ACCURACY_HUNDRED_METERS,
    "requestTimeoutSec": REQUEST_TIMEOUT_SEC,
    "backgroundBudgetSec": None,       # None → the OS never revokes the lease
    "locationProvider": "termux",      # "termux" | "static"
    "staticLocation": None,            # {"latitude": .., "longitude": ..} for "static"
    "autoStart": False,
}


def load_config(path=CONFIG_FILE):
    """Load config from disk. Returns dict or None."""
    path = Path(path)
    if path.exists():
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
            return data if isinstance(data, dict) else None
        except (json.JSONDecodeError, IOError):
            return None
    return None


def get_config(path=CONFIG_FILE):
    """Defaults overlaid with whatever config.json provides."""
    config = dict(DEFAULT_CONFIG)
    loaded = load_config(path)
    if loaded:
        config.update({k: v for k, v in loaded.items() if v is not None})
    config["serverUrl"] = str(config["serverUrl"]).rstrip("/")
    return config


def save_config(config, path=CONFIG_FILE):
    """Save config dict to disk."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(config, f, indent=2)
    log.info("Config saved to %s", path)
