"""
HTTP session with connection pooling and an explicit CA bundle.

Location updates are best-effort: a failed POST is logged and dropped, the
next tick sends a fresh fix. The adapter therefore never retries.
"""

import os

import certifi
import requests
from requests.adapters import HTTPAdapter


def _get_ca_bundle():
    """Get the CA bundle path.

    Priority: env var → certifi.
    """
    env_ca = os.environ.get("REQUESTS_CA_BUNDLE") or os.environ.get("SSL_CERT_FILE")
    if env_ca and os.path.isfile(env_ca):
        return env_ca
    return certifi.where()


def create_session():
    """Create a new requests.Session with connection pooling and SSL."""
    session = requests.Session()
    adapter = HTTPAdapter(
        pool_connections=1,
        pool_maxsize=4,
        max_retries=0,
    )
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    session.verify = _get_ca_bundle()
    return session


def reset_session(session):
    """Close and recreate the HTTP session (fixes stale connections)."""
    try:
        session.close()
    except Exception:
        pass
    return create_session()


# Global shared session
http = create_session()
