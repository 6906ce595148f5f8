from sqlalchemy import Column, DateTime, Float, ForeignKey, Integer, String, Text, UniqueConstraint
from runfeed.db import Base, JSONType
from runfeed.models.user import new_id


class Activity(Base):
    __tablename__ = "activities"

    id = Column(String(32), primary_key=True, default=new_id)
    user_id = Column(String(32), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    # Display name snapshot at the time the run was saved
    username = Column(String, nullable=False)

    distance_km = Column(Float, nullable=False)
    duration_seconds = Column(Float, nullable=False)
    route_points = Column(JSONType, nullable=False, default=list)  # [{latitude, longitude}]
    splits = Column(JSONType, nullable=False, default=list)        # seconds per km

    # None when no distance was covered
    avg_pace = Column(Float, nullable=True)
    note = Column(String, nullable=True)
    likes = Column(Integer, nullable=False, default=0, server_default="0")

    # Owner avatar snapshot (base64)
    user_profile_image_base64 = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, index=True)


class ActivityLike(Base):
    __tablename__ = "activity_likes"
    __table_args__ = (UniqueConstraint("activity_id", "user_id", name="uq_activity_like"),)

    id = Column(String(32), primary_key=True, default=new_id)
    activity_id = Column(String(32), ForeignKey("activities.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String(32), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
