from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from runfeed.api.deps import get_current_user
from runfeed.core.time_utils import format_pace, seconds_to_hhmmss
from runfeed.db import get_db
from runfeed.errors import NotFoundError, PermissionDeniedError
from runfeed.models.activity import Activity
from runfeed.models.user import User
from runfeed.schemas.activity import (
    ActivityRead,
    CommentCreate,
    CommentRead,
    LikeRead,
    NoteUpdate,
)
from runfeed.services import activities as store

router = APIRouter(prefix="/activities", tags=["activities"])


def to_activity_read(a: Activity) -> ActivityRead:
    return ActivityRead(
        id=a.id,
        user_id=a.user_id,
        username=a.username,
        distance_km=a.distance_km,
        duration_seconds=a.duration_seconds,
        duration=seconds_to_hhmmss(a.duration_seconds),
        route_points=a.route_points or [],
        created_at=a.created_at,
        likes=a.likes or 0,
        avg_pace=a.avg_pace,
        pace=format_pace(a.avg_pace, "/km"),
        note=a.note,
        splits=a.splits or [],
        user_profile_image_base64=a.user_profile_image_base64,
    )


def _get_or_404(db: Session, activity_id: str) -> Activity:
    try:
        return store.get_activity(db, activity_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.get("/feed", response_model=list[ActivityRead])
def list_feed(
    limit: Optional[int] = Query(None, ge=1, le=100),
    offset: int = Query(0, ge=0),
    _: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Most recent runs from everyone, newest first.

      GET /activities/feed?limit=20&offset=20
    """
    return [to_activity_read(a) for a in store.list_feed(db, limit=limit, offset=offset)]


@router.get("/user/{user_id}", response_model=list[ActivityRead])
def list_user_activities(
    user_id: str,
    _: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return [to_activity_read(a) for a in store.list_user_activities(db, user_id)]


@router.get("/{activity_id}", response_model=ActivityRead)
def get_activity(
    activity_id: str,
    _: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return to_activity_read(_get_or_404(db, activity_id))


@router.delete("/{activity_id}")
def delete_activity(
    activity_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        store.delete_activity(db, activity_id, user.id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except PermissionDeniedError as e:
        raise HTTPException(status_code=403, detail=str(e))
    return {"message": "Activity deleted"}


@router.put("/{activity_id}/note", response_model=ActivityRead)
def update_note(
    activity_id: str,
    payload: NoteUpdate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        activity = store.update_note(db, activity_id, user.id, payload.note)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except PermissionDeniedError as e:
        raise HTTPException(status_code=403, detail=str(e))
    return to_activity_read(activity)


# --------- Likes --------- #

@router.post("/{activity_id}/like", response_model=LikeRead)
def like_activity(
    activity_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    _get_or_404(db, activity_id)
    likes, liked = store.like_activity(db, activity_id, user)
    return LikeRead(activity_id=activity_id, likes=likes, liked=liked)


@router.delete("/{activity_id}/like", response_model=LikeRead)
def unlike_activity(
    activity_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    _get_or_404(db, activity_id)
    likes, liked = store.unlike_activity(db, activity_id, user)
    return LikeRead(activity_id=activity_id, likes=likes, liked=liked)


# --------- Comments --------- #

@router.get("/{activity_id}/comments", response_model=list[CommentRead])
def list_comments(
    activity_id: str,
    since: Optional[datetime] = Query(None),
    _: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Comments oldest first; pass `since` to poll only for new ones."""
    _get_or_404(db, activity_id)
    return store.list_comments(db, activity_id, since=since)


@router.post("/{activity_id}/comments", response_model=CommentRead)
def add_comment(
    activity_id: str,
    payload: CommentCreate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    _get_or_404(db, activity_id)
    text = payload.text.strip()
    if not text:
        raise HTTPException(status_code=422, detail="Comment text must not be blank")
    return store.add_comment(db, activity_id, user, text)
