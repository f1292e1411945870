"""
SessionStore — read-only view of the host app's active work session.

Stored under SESSION_KEY as a JSON string:
    {"session": {"id": "<id>", ...}, "token": "<bearer token>", ...}

A missing key, invalid JSON or missing/non-string fields all mean
"no session" — an expected state, never an error.
"""

import json
from typing import Optional

from .config import log
from .constants import SESSION_KEY
from .models import Session


def parse_session(raw) -> Optional[Session]:
    """Extract a Session from the persisted JSON string, or None."""
    if not raw:
        return None
    try:
        data = json.loads(raw)
    except (TypeError, ValueError):
        log.debug("Session blob is not valid JSON")
        return None
    if not isinstance(data, dict):
        return None

    info = data.get("session")
    token = data.get("token")
    if not isinstance(info, dict) or not isinstance(token, str):
        return None
    session_id = info.get("id")
    if not isinstance(session_id, str):
        return None
    return Session(id=session_id, token=token)


class SessionStore:
    def __init__(self, preferences, key=SESSION_KEY):
        self._preferences = preferences
        self._key = key

    def current(self) -> Optional[Session]:
        return parse_session(self._preferences.get_string(self._key))
