from datetime import datetime, timedelta, timezone
import math
import random

from runfeed.db import Base, SessionLocal, engine
from runfeed.errors import DuplicateUserError
from runfeed.models.activity import Activity  # noqa: F401
from runfeed.models.auth_token import AuthToken  # noqa: F401
from runfeed.models.comment import Comment  # noqa: F401
from runfeed.models.notification import Notification  # noqa: F401
from runfeed.models.user import User
from runfeed.services import activities, identity
from runfeed.tracking.models import LocationSample
from runfeed.tracking.session import RecordingSession
from runfeed.tracking.sources import ManualLocationSource, ManualTimerSource

DEMO_USERS = [
    ("ploy@example.com", "Ploy"),
    ("nat@example.com", "Nat"),
]

# Roughly Lumphini Park, Bangkok
START_LAT, START_LON = 13.7307, 100.5418
M_PER_DEG_LAT = 111_320.0


def get_or_create_user(db, email: str, username: str) -> User:
    try:
        return identity.register(db, email, "password123", username)
    except DuplicateUserError:
        return db.query(User).filter(User.email == email).first()


def simulate_run(session: RecordingSession, distance_km: float, speed_mps: float):
    """Drive a session with one sample per second along a loop."""
    location, timer = session.location_source, session.timer_source
    session.start()
    seconds = int(distance_km * 1000 / speed_mps)
    radius_m = 400.0
    for t in range(seconds + 1):
        angle = (t * speed_mps) / radius_m
        lat = START_LAT + (radius_m * math.sin(angle)) / M_PER_DEG_LAT
        lon = START_LON + (radius_m * (1 - math.cos(angle))) / (
            M_PER_DEG_LAT * math.cos(math.radians(START_LAT))
        )
        jitter = random.uniform(-0.2, 0.2)
        location.push(LocationSample.at(lat, lon, speed=speed_mps + jitter, horizontal_accuracy=5.0))
        timer.tick()
    return session.stop()


def seed_demo_runs(db) -> None:
    """Record a few runs per demo user and have them like each other's."""
    users = [get_or_create_user(db, email, name) for email, name in DEMO_USERS]
    saved = []
    for user in users:
        for _ in range(3):
            session = RecordingSession(
                user_id=user.id,
                location_source=ManualLocationSource(),
                timer_source=ManualTimerSource(),
                save=lambda record: activities.create_activity(db, record),
            )
            result = simulate_run(
                session,
                distance_km=round(random.uniform(2.0, 6.0), 1),
                speed_mps=random.uniform(2.6, 3.4),
            )
            if result.saved:
                saved.append(result.saved_as)
            session.reset()

    # Spread runs over the past week so the feed has some order to it
    now = datetime.now(timezone.utc)
    for i, activity in enumerate(saved):
        activity.created_at = now - timedelta(hours=12 * i)
    db.commit()

    for activity in saved:
        for user in users:
            if user.id != activity.user_id:
                activities.like_activity(db, activity.id, user)

    print(f"Seeded {len(saved)} demo runs for {len(users)} users")


def main():
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        seed_demo_runs(db)
    finally:
        db.close()


if __name__ == "__main__":
    main()
