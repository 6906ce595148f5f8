from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class RoutePoint(BaseModel):
    latitude: float
    longitude: float


class ActivityRead(BaseModel):
    """Persisted run as shown in the feed."""

    id: str
    user_id: str
    username: str
    distance_km: float
    duration_seconds: float
    duration: str  # "HH:MM:SS"
    route_points: list[RoutePoint] = []
    created_at: datetime
    likes: int = 0
    avg_pace: Optional[float] = None
    pace: str  # e.g. "5:30/km" or "--:--"
    note: Optional[str] = None
    splits: list[float] = []
    user_profile_image_base64: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class NoteUpdate(BaseModel):
    note: str


class LikeRead(BaseModel):
    activity_id: str
    likes: int
    liked: bool


class CommentCreate(BaseModel):
    text: str = Field(min_length=1)


class CommentRead(BaseModel):
    id: str
    activity_id: str
    user_id: str
    username: str
    text: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class NotificationRead(BaseModel):
    id: str
    from_user_id: str
    from_username: str
    type: str
    activity_id: str
    is_read: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class UnreadCount(BaseModel):
    unread: int
