"""
Plain data carried through the pipeline: Session, LocationFix, TrackingState.
"""

import enum
from dataclasses import dataclass
from datetime import datetime, timezone


class TrackingState(enum.Enum):
    IDLE = "idle"
    ACTIVE = "active"


@dataclass(frozen=True)
class Session:
    """Active work session as persisted by the host app."""
    id: str
    token: str

    def __repr__(self):
        # Never put the bearer token in logs.
        return f"Session(id={self.id!r}, token=***)"


@dataclass(frozen=True)
class LocationFix:
    latitude: float
    longitude: float
    accuracy_meters: float
    altitude_meters: float
    speed_mps: float
    heading_degrees: float
    timestamp: str      # RFC 3339, UTC, e.g. "2024-01-01T00:00:00Z"


def format_timestamp(moment=None) -> str:
    """ISO-8601 in UTC with a trailing Z and whole seconds."""
    if moment is None:
        moment = datetime.now(timezone.utc)
    elif isinstance(moment, (int, float)):
        moment = datetime.fromtimestamp(moment, tz=timezone.utc)
    elif moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return (
        moment.astimezone(timezone.utc)
        .replace(microsecond=0)
        .isoformat()
        .replace("+00:00", "Z")
    )
