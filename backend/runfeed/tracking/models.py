"""Value types used by the run tracker.

Everything here is immutable except ``RunAccumulator``, which is owned by a
single ``RunTracker`` for the lifetime of one recording session.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional


class RecordingState(str, Enum):
    idle = "idle"
    recording = "recording"
    paused = "paused"
    stopped = "stopped"


@dataclass(frozen=True)
class GeoPoint:
    latitude: float
    longitude: float

    def to_dict(self) -> dict:
        return {"latitude": self.latitude, "longitude": self.longitude}


@dataclass(frozen=True)
class LocationSample:
    point: GeoPoint
    speed: float  # m/s, negative when the device has no estimate
    horizontal_accuracy: float  # meters, negative when invalid
    timestamp: datetime

    @classmethod
    def at(cls, latitude, longitude, speed=-1.0, horizontal_accuracy=-1.0, timestamp=None):
        return cls(
            point=GeoPoint(latitude, longitude),
            speed=speed,
            horizontal_accuracy=horizontal_accuracy,
            timestamp=timestamp or datetime.now(timezone.utc),
        )


@dataclass
class RunAccumulator:
    route: list[GeoPoint] = field(default_factory=list)
    total_distance_km: float = 0.0
    current_pace_min_per_km: float = 0.0
    last_accepted_sample: Optional[LocationSample] = None
    splits: list[float] = field(default_factory=list)
    next_split_threshold_km: float = 1.0
    time_of_last_split: float = 0.0
    elapsed_seconds: float = 0.0


@dataclass(frozen=True)
class TrackerSnapshot:
    """Read-only view handed to observers."""

    state: RecordingState
    total_distance_km: float
    current_pace_min_per_km: float
    elapsed_seconds: float
    splits: tuple[float, ...]
    route_points: int
    next_split_threshold_km: float


@dataclass(frozen=True)
class RunRecord:
    """Frozen result of one session, ready to be persisted."""

    id: str
    user_id: str
    distance_km: float
    duration_seconds: float
    route: tuple[GeoPoint, ...]
    avg_pace: Optional[float]
    splits: tuple[float, ...]
    created_at: datetime
