import uuid

from sqlalchemy import Column, DateTime, Float, String, Text
from sqlalchemy.sql import func
from runfeed.db import Base


def new_id() -> str:
    return uuid.uuid4().hex


class User(Base):
    __tablename__ = "users"

    id = Column(String(32), primary_key=True, default=new_id)

    username = Column(String, nullable=False)
    email = Column(String, nullable=False, unique=True, index=True)
    password_hash = Column(String, nullable=False)

    # Lifetime distance in km; only ever changed with an atomic SQL increment
    total_distance_km = Column(Float, nullable=False, default=0.0, server_default="0")

    bio = Column(String, nullable=True)
    # Avatar stored as text (base64)
    profile_image_base64 = Column(Text, nullable=True)

    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
