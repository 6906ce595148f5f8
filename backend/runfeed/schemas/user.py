from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class UserRegister(BaseModel):
    email: str = Field(min_length=3)
    password: str = Field(min_length=6)
    username: str = Field(min_length=1)


class UserLogin(BaseModel):
    email: str
    password: str


class ProfileUpdate(BaseModel):
    username: str = Field(min_length=1)
    bio: Optional[str] = None
    # base64 encoded image; omitted keeps the current avatar
    profile_image_base64: Optional[str] = None

    model_config = ConfigDict(extra="ignore")


class UserRead(BaseModel):
    """Profile returned to clients (never includes credentials)."""

    id: str
    username: str
    email: str
    total_distance_km: float
    bio: Optional[str] = None
    profile_image_base64: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class TokenRead(BaseModel):
    token: str
    token_type: str = "bearer"
    user: UserRead


class UserPublic(BaseModel):
    """Profile as seen by other users."""

    id: str
    username: str
    total_distance_km: float
    bio: Optional[str] = None
    profile_image_base64: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)
