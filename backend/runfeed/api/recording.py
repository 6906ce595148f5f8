"""HTTP session driver for live run recording.

Each signed-in user owns at most one ``RecordingSession``. The client
forwards its location updates to ``/samples`` and its 1 Hz timer to
``/tick``; ``/stop`` freezes the run and saves it to the feed.
"""
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from functools import partial

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from runfeed.api.activities import to_activity_read
from runfeed.api.deps import get_current_user
from runfeed.core.config import settings
from runfeed.core.time_utils import format_clock, format_pace
from runfeed.db import get_db
from runfeed.errors import InvalidTransitionError
from runfeed.models.user import User
from runfeed.schemas.recording import SamplesIn, StopOut, TickIn, TrackerStatus
from runfeed.services import activities as store
from runfeed.tracking.models import GeoPoint, LocationSample, TrackerSnapshot
from runfeed.tracking.session import RecordingSession, StopResult
from runfeed.tracking.sources import ManualLocationSource, ManualTimerSource
from runfeed.tracking.tracker import RunTracker

router = APIRouter(prefix="/recording", tags=["recording"])


class SessionRegistry:
    """Per-user recording sessions.

    Requests for one user are serialized through that user's lock, since
    FastAPI runs these endpoints on a threadpool and a tracker expects one
    caller at a time.
    """

    def __init__(self):
        self._sessions: dict[str, RecordingSession] = {}
        self._locks: dict[str, threading.Lock] = {}
        self._lock = threading.Lock()

    def _entry(self, user_id: str) -> tuple[RecordingSession, threading.Lock]:
        with self._lock:
            session = self._sessions.get(user_id)
            if session is None:
                session = RecordingSession(
                    user_id=user_id,
                    location_source=ManualLocationSource(),
                    timer_source=ManualTimerSource(),
                    tracker=RunTracker(route_max_points=settings.route_max_points),
                )
                self._sessions[user_id] = session
            lock = self._locks.setdefault(user_id, threading.Lock())
            return session, lock

    def get(self, user_id: str) -> RecordingSession:
        return self._entry(user_id)[0]

    @contextmanager
    def hold(self, user_id: str):
        session, lock = self._entry(user_id)
        with lock:
            yield session

    def discard(self, user_id: str) -> None:
        # Idle sessions hold no state worth keeping
        with self._lock:
            self._sessions.pop(user_id, None)

    def __contains__(self, user_id: str) -> bool:
        with self._lock:
            return user_id in self._sessions

    def clear(self) -> None:
        with self._lock:
            self._sessions.clear()
            self._locks.clear()


sessions = SessionRegistry()


def _status(snap: TrackerSnapshot) -> TrackerStatus:
    return TrackerStatus(
        state=snap.state,
        total_distance_km=snap.total_distance_km,
        current_pace_min_per_km=snap.current_pace_min_per_km,
        pace=format_pace(snap.current_pace_min_per_km),
        elapsed_seconds=snap.elapsed_seconds,
        clock=format_clock(snap.elapsed_seconds),
        splits=list(snap.splits),
        route_points=snap.route_points,
        next_split_threshold_km=snap.next_split_threshold_km,
    )


def _transition(action):
    try:
        return action()
    except InvalidTransitionError as e:
        raise HTTPException(status_code=409, detail=str(e))


def _stop_out(session: RecordingSession, result: StopResult) -> StopOut:
    return StopOut(
        saved=result.saved,
        status=_status(session.snapshot()),
        avg_pace=result.record.avg_pace,
        activity=to_activity_read(result.saved_as) if result.saved_as is not None else None,
        error=result.error,
    )


@router.get("/", response_model=TrackerStatus)
def get_status(user: User = Depends(get_current_user)):
    with sessions.hold(user.id) as session:
        return _status(session.snapshot())


@router.post("/start", response_model=TrackerStatus)
def start(user: User = Depends(get_current_user)):
    with sessions.hold(user.id) as session:
        return _status(_transition(session.start))


@router.post("/pause", response_model=TrackerStatus)
def pause(user: User = Depends(get_current_user)):
    with sessions.hold(user.id) as session:
        return _status(_transition(session.pause))


@router.post("/resume", response_model=TrackerStatus)
def resume(user: User = Depends(get_current_user)):
    with sessions.hold(user.id) as session:
        return _status(_transition(session.resume))


@router.post("/samples", response_model=TrackerStatus)
def push_samples(payload: SamplesIn, user: User = Depends(get_current_user)):
    """Feed location updates; ignored unless the session is recording."""
    with sessions.hold(user.id) as session:
        for s in payload.samples:
            session.location_source.push(
                LocationSample(
                    point=GeoPoint(s.latitude, s.longitude),
                    speed=s.speed,
                    horizontal_accuracy=s.horizontal_accuracy,
                    timestamp=s.timestamp or datetime.now(timezone.utc),
                )
            )
        return _status(session.snapshot())


@router.post("/tick", response_model=TrackerStatus)
def tick(payload: TickIn = TickIn(), user: User = Depends(get_current_user)):
    with sessions.hold(user.id) as session:
        session.timer_source.tick(payload.count)
        return _status(session.snapshot())


@router.post("/stop", response_model=StopOut)
def stop(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    with sessions.hold(user.id) as session:
        result = _transition(partial(session.stop, partial(store.create_activity, db)))
        return _stop_out(session, result)


@router.post("/save", response_model=StopOut)
def retry_save(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Retry persisting a stopped run whose first save failed."""
    with sessions.hold(user.id) as session:
        if session.pending_record is None:
            raise HTTPException(status_code=404, detail="No unsaved run")
        return _stop_out(session, session.retry_save(partial(store.create_activity, db)))


@router.post("/reset", response_model=TrackerStatus)
def reset(user: User = Depends(get_current_user)):
    with sessions.hold(user.id) as session:
        status = _status(_transition(session.reset))
        sessions.discard(user.id)
        return status
