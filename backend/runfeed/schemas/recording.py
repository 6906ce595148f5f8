from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from runfeed.schemas.activity import ActivityRead
from runfeed.tracking.models import RecordingState


class SampleIn(BaseModel):
    latitude: float
    longitude: float
    speed: float = -1.0  # m/s, negative when unknown
    horizontal_accuracy: float = -1.0  # meters, negative when invalid
    timestamp: Optional[datetime] = None


class SamplesIn(BaseModel):
    samples: list[SampleIn] = Field(min_length=1)


class TickIn(BaseModel):
    count: int = Field(default=1, ge=1, le=3600)


class TrackerStatus(BaseModel):
    state: RecordingState
    total_distance_km: float
    current_pace_min_per_km: float
    pace: str
    elapsed_seconds: float
    clock: str  # "MM:SS"
    splits: list[float]
    route_points: int
    next_split_threshold_km: float


class StopOut(BaseModel):
    saved: bool
    status: TrackerStatus
    avg_pace: Optional[float] = None
    activity: Optional[ActivityRead] = None
    error: Optional[str] = None
