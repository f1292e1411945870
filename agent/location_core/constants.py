"""
Constants: version, reporting cadence, accuracy classes, keys and endpoints.
"""

AGENT_VERSION = "1.0.0"

# ─── Reporting ───────────────────────────────────────────────────
REPORT_INTERVAL_SEC = 30          # One location-update every 30s while ACTIVE
REQUEST_TIMEOUT_SEC = 60          # Same as the mobile HTTP stack's default

# ─── Location accuracy classes (metres) ─────────────────────────
ACCURACY_TEN_METERS = 10.0
ACCURACY_HUNDRED_METERS = 100.0   # Cadence drives frequency, not precision

# ─── Persisted session ──────────────────────────────────────────
SESSION_KEY = "active_work_session"

# ─── Server ──────────────────────────────────────────────────────
DEFAULT_SERVER_URL = "http://212.91.237.42"
LOCATION_UPDATE_PATH = "/api/work-sessions/{session_id}/location-update"

# ─── Host boundary ──────────────────────────────────────────────
CHANNEL_NAME = "com.quickcity.mobile/background"
METHOD_START = "startBackgroundLocationTracking"
METHOD_STOP = "stopBackgroundLocationTracking"

BACKGROUND_TASK_NAME = "LocationTracking"
FALLBACK_LOG_NAME = "gps_debug.log"
