"""Persistence for finished runs and the social feed built on them.

Counter changes (lifetime distance, likes) are issued as SQL expressions
(``col = col + n``) so concurrent writers never lose an update, and every
multi-row write commits as one transaction or is rolled back.
"""
from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from runfeed.core.config import settings
from runfeed.errors import NotFoundError, PermissionDeniedError, PersistenceError
from runfeed.models.activity import Activity, ActivityLike
from runfeed.models.comment import Comment
from runfeed.models.notification import Notification
from runfeed.models.user import User
from runfeed.tracking.models import RunRecord

logger = logging.getLogger(__name__)

NOTIFY_LIKE = "like"
NOTIFY_COMMENT = "comment"


def _now():
    return datetime.now(timezone.utc)


@contextmanager
def _transaction(db: Session, action: str):
    try:
        yield
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("%s failed", action)
        raise PersistenceError(f"{action} failed") from e


def _add_lifetime_distance(db: Session, user_id: str, delta_km: float) -> None:
    db.query(User).filter(User.id == user_id).update(
        {User.total_distance_km: User.total_distance_km + delta_km},
        synchronize_session=False,
    )


def get_activity(db: Session, activity_id: str) -> Activity:
    activity = db.query(Activity).filter(Activity.id == activity_id).first()
    if not activity:
        raise NotFoundError("Activity not found")
    return activity


# --------- runs --------- #

def create_activity(db: Session, record: RunRecord, note: Optional[str] = None) -> Activity:
    """Store a finished run and add its distance to the owner's lifetime total."""
    user = db.query(User).filter(User.id == record.user_id).first()
    if not user:
        raise NotFoundError("User not found")

    activity = Activity(
        id=record.id,
        user_id=user.id,
        username=user.username,
        distance_km=record.distance_km,
        duration_seconds=record.duration_seconds,
        route_points=[p.to_dict() for p in record.route],
        splits=list(record.splits),
        avg_pace=record.avg_pace,
        note=note,
        likes=0,
        user_profile_image_base64=user.profile_image_base64,
        created_at=record.created_at,
    )
    with _transaction(db, f"saving run {record.id}"):
        db.add(activity)
        _add_lifetime_distance(db, user.id, record.distance_km)
    db.refresh(activity)
    logger.info("Saved run %s for user %s (%.2f km)", activity.id, user.id, activity.distance_km)
    return activity


def list_feed(db: Session, limit: Optional[int] = None, offset: int = 0) -> list[Activity]:
    limit = limit or settings.feed_page_size
    return (
        db.query(Activity)
        .order_by(Activity.created_at.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )


def list_user_activities(db: Session, user_id: str) -> list[Activity]:
    # Most recent first
    return (
        db.query(Activity)
        .filter(Activity.user_id == user_id)
        .order_by(Activity.created_at.desc())
        .all()
    )


def delete_activity(db: Session, activity_id: str, user_id: str) -> None:
    """Remove a run and take its distance back off the owner's total.

    Both effects commit together or neither does.
    """
    activity = get_activity(db, activity_id)
    if activity.user_id != user_id:
        raise PermissionDeniedError("Only the owner can delete a run")
    distance = activity.distance_km
    with _transaction(db, f"deleting run {activity_id}"):
        db.query(Comment).filter(Comment.activity_id == activity_id).delete(synchronize_session=False)
        db.query(ActivityLike).filter(ActivityLike.activity_id == activity_id).delete(synchronize_session=False)
        db.delete(activity)
        _add_lifetime_distance(db, user_id, -distance)
    logger.info("Deleted run %s (-%.2f km for %s)", activity_id, distance, user_id)


def update_note(db: Session, activity_id: str, user_id: str, note: str) -> Activity:
    activity = get_activity(db, activity_id)
    if activity.user_id != user_id:
        raise PermissionDeniedError("Only the owner can edit the note")
    with _transaction(db, f"updating note on {activity_id}"):
        activity.note = note
    db.refresh(activity)
    return activity


# --------- likes --------- #

def _notify(db: Session, recipient_id: str, kind: str, from_user: User, activity_id: str) -> None:
    if recipient_id == from_user.id:
        return
    db.add(
        Notification(
            user_id=recipient_id,
            from_user_id=from_user.id,
            from_username=from_user.username,
            type=kind,
            activity_id=activity_id,
            is_read=False,
            created_at=_now(),
        )
    )


def like_activity(db: Session, activity_id: str, user: User) -> tuple[int, bool]:
    """Like a run once per user; returns (likes, liked)."""
    activity = get_activity(db, activity_id)
    existing = (
        db.query(ActivityLike)
        .filter(ActivityLike.activity_id == activity_id, ActivityLike.user_id == user.id)
        .first()
    )
    if existing:
        return activity.likes, True
    try:
        with _transaction(db, f"liking {activity_id}"):
            db.add(ActivityLike(activity_id=activity_id, user_id=user.id))
            db.query(Activity).filter(Activity.id == activity_id).update(
                {Activity.likes: Activity.likes + 1}, synchronize_session=False
            )
            _notify(db, activity.user_id, NOTIFY_LIKE, user, activity_id)
    except PersistenceError as e:
        # Lost a race with a concurrent like from the same user
        if not isinstance(e.__cause__, IntegrityError):
            raise
    db.refresh(activity)
    return activity.likes, True


def unlike_activity(db: Session, activity_id: str, user: User) -> tuple[int, bool]:
    activity = get_activity(db, activity_id)
    with _transaction(db, f"unliking {activity_id}"):
        removed = (
            db.query(ActivityLike)
            .filter(ActivityLike.activity_id == activity_id, ActivityLike.user_id == user.id)
            .delete(synchronize_session=False)
        )
        if removed:
            db.query(Activity).filter(Activity.id == activity_id, Activity.likes > 0).update(
                {Activity.likes: Activity.likes - 1}, synchronize_session=False
            )
    db.refresh(activity)
    return activity.likes, False


def has_liked(db: Session, activity_id: str, user_id: str) -> bool:
    return (
        db.query(ActivityLike)
        .filter(ActivityLike.activity_id == activity_id, ActivityLike.user_id == user_id)
        .first()
        is not None
    )


# --------- comments --------- #

def add_comment(db: Session, activity_id: str, user: User, text: str) -> Comment:
    activity = get_activity(db, activity_id)
    comment = Comment(
        activity_id=activity_id,
        user_id=user.id,
        username=user.username,
        text=text,
        created_at=_now(),
    )
    with _transaction(db, f"commenting on {activity_id}"):
        db.add(comment)
        _notify(db, activity.user_id, NOTIFY_COMMENT, user, activity_id)
    db.refresh(comment)
    return comment


def list_comments(db: Session, activity_id: str, since: Optional[datetime] = None) -> list[Comment]:
    get_activity(db, activity_id)
    query = db.query(Comment).filter(Comment.activity_id == activity_id)
    if since is not None:
        query = query.filter(Comment.created_at > since)
    # Oldest first, like a chat thread
    return query.order_by(Comment.created_at.asc()).all()


# --------- notifications --------- #

def list_notifications(db: Session, user_id: str, limit: Optional[int] = None) -> list[Notification]:
    limit = limit or settings.notifications_limit
    return (
        db.query(Notification)
        .filter(Notification.user_id == user_id)
        .order_by(Notification.created_at.desc())
        .limit(limit)
        .all()
    )


def unread_count(db: Session, user_id: str) -> int:
    return (
        db.query(Notification)
        .filter(Notification.user_id == user_id, Notification.is_read.is_(False))
        .count()
    )


def mark_all_read(db: Session, user_id: str) -> int:
    with _transaction(db, f"marking notifications read for {user_id}"):
        updated = (
            db.query(Notification)
            .filter(Notification.user_id == user_id, Notification.is_read.is_(False))
            .update({Notification.is_read: True}, synchronize_session=False)
        )
    return updated
