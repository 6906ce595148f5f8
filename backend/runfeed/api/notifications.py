from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from runfeed.api.deps import get_current_user
from runfeed.db import get_db
from runfeed.models.user import User
from runfeed.schemas.activity import NotificationRead, UnreadCount
from runfeed.services import activities as store

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("/", response_model=list[NotificationRead])
def list_notifications(
    limit: Optional[int] = Query(None, ge=1, le=100),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    # Newest first
    return store.list_notifications(db, user.id, limit=limit)


@router.get("/unread_count", response_model=UnreadCount)
def unread_count(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return UnreadCount(unread=store.unread_count(db, user.id))


@router.post("/mark_read")
def mark_all_read(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    updated = store.mark_all_read(db, user.id)
    return {"message": "Notifications marked as read", "updated": updated}
