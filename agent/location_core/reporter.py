"""
NetworkReporter — POSTs one location-update per call to the work-session API.

send() is fire-and-forget: it starts a short-lived daemon thread and returns
a Future that resolves to None on HTTP 200 or fails with a ReportError.
The outcome is logged either way; there is no retry and nothing is buffered.
"""

import json
import threading
from concurrent.futures import Future
from urllib.parse import quote

import requests

from .config import log
from .constants import LOCATION_UPDATE_PATH, REQUEST_TIMEOUT_SEC
from . import http_client


# ─── Errors ──────────────────────────────────────────────────────

class ReportError(Exception):
    """A single location-update could not be delivered."""


class PayloadEncodingError(ReportError):
    pass


class TransportError(ReportError):
    pass


class HTTPStatusError(ReportError):
    def __init__(self, status_code, body=""):
        super().__init__(f"HTTP {status_code}")
        self.status_code = status_code
        self.body = body


# ─── Request building ────────────────────────────────────────────

def build_payload(fix):
    return {
        "latitude": fix.latitude,
        "longitude": fix.longitude,
        "accuracy": fix.accuracy_meters,
        "timestamp": fix.timestamp,
        "altitude": fix.altitude_meters,
        "speed": fix.speed_mps,
        "heading": fix.heading_degrees,
    }


def build_url(server_url, session_id):
    path = LOCATION_UPDATE_PATH.format(session_id=quote(session_id, safe=""))
    return server_url.rstrip("/") + path


def encode_payload(payload) -> bytes:
    """Strict JSON: NaN/inf (invalid speed or heading) are rejected."""
    try:
        return json.dumps(payload, allow_nan=False).encode("utf-8")
    except (TypeError, ValueError) as e:
        raise PayloadEncodingError(f"JSON encoding failed: {e}") from e


# ─── Reporter ────────────────────────────────────────────────────

class NetworkReporter:
    def __init__(self, server_url, http=None, timeout=REQUEST_TIMEOUT_SEC):
        self._server_url = server_url.rstrip("/")
        self._http = http
        self._timeout = timeout

    @property
    def server_url(self):
        return self._server_url

    def _session(self):
        return self._http if self._http is not None else http_client.http

    def deliver(self, session, fix):
        """Blocking POST. Returns None on HTTP 200, raises ReportError otherwise."""
        url = build_url(self._server_url, session.id)
        body = encode_payload(build_payload(fix))
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {session.token}",
        }

        try:
            resp = self._session().post(url, data=body, headers=headers, timeout=self._timeout)
        except requests.RequestException as e:
            raise TransportError(str(e)) from e

        if resp.status_code != 200:
            raise HTTPStatusError(resp.status_code, (resp.text or "")[:200])

    def send(self, session, fix) -> Future:
        """Deliver on a daemon thread. Never blocks the caller."""
        future = Future()
        future.set_running_or_notify_cancel()

        def do_send():
            try:
                self.deliver(session, fix)
            except ReportError as e:
                _log_failure(session, e)
                future.set_exception(e)
            except Exception as e:
                log.error("Location send crashed: %s", e, exc_info=True)
                future.set_exception(ReportError(str(e)))
            else:
                log.info("Location sent | session=%s | %.6f, %.6f",
                         session.id, fix.latitude, fix.longitude)
                future.set_result(None)

        threading.Thread(target=do_send, name="location-send", daemon=True).start()
        return future


def _log_failure(session, error):
    if isinstance(error, HTTPStatusError) and error.status_code == 401:
        log.error("Location update REJECTED (401) — session %s token may be expired", session.id)
    elif isinstance(error, HTTPStatusError):
        log.warning("Location update failed: HTTP %d — %s", error.status_code, error.body)
    elif isinstance(error, PayloadEncodingError):
        log.warning("Location update skipped: %s", error)
    else:
        log.warning("Location update network error: %s", error)
