"""
location_core — Background Location Reporting Agent v1.0
=========================================================
Architecture: single-owner main loop. Zero busy-wait.

  constants.py     → Version, cadence, accuracy class, keys, endpoints
  config.py        → Paths, logging, config load/save
  http_client.py   → HTTP session with pooling + CA bundle (no retries)
  models.py        → Session, LocationFix, TrackingState
  preferences.py   → Persisted string key/value store
  session_store.py → SessionStore (active work session + token)
  location.py      → LocationSource + provider backends (termux, static)
  fallback.py      → FallbackLogger (append-only diagnostic trail)
  reporter.py      → NetworkReporter (authenticated location-update POST)
  background.py    → BackgroundExecution lease (keep-awake + expiry)
  mainloop.py      → MainLoop (after/cancel/post/call on one thread)
  controller.py    → TrackingController (IDLE ⇄ ACTIVE state machine)
  channel.py       → MethodChannel (start/stop commands from the host)
  runner.py        → main() + auto-restart wrapper
"""
