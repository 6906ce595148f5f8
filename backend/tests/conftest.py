import math
import os

# Use in-memory sqlite for tests; must be set before runfeed is imported
os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")
os.environ.setdefault("PASSWORD_ITERATIONS", "1000")

import pytest  # noqa: E402

from runfeed.core.constants import EARTH_RADIUS_M  # noqa: E402
from runfeed.tracking.models import LocationSample  # noqa: E402

# Meters per degree of latitude for the haversine earth radius
M_PER_DEG = EARTH_RADIUS_M * math.pi / 180.0

BASE_LAT = 13.7307
BASE_LON = 100.5418


def north_of(meters: float, lat: float = BASE_LAT) -> float:
    """Latitude `meters` north of `lat` (exact along a meridian)."""
    return lat + meters / M_PER_DEG


def sample_at(meters_north: float, speed: float = 3.0, accuracy: float = 5.0) -> LocationSample:
    return LocationSample.at(north_of(meters_north), BASE_LON, speed=speed, horizontal_accuracy=accuracy)


@pytest.fixture
def client():
    from fastapi.testclient import TestClient  # noqa: WPS433
    from runfeed.main import app  # noqa: WPS433
    from runfeed.db import Base, engine
    from runfeed.api.recording import sessions

    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    sessions.clear()
    return TestClient(app)


def signup(client, email: str, username: str = None, password: str = "secret123") -> dict:
    """Register a user and return auth headers plus the user payload."""
    r = client.post(
        "/auth/register",
        json={"email": email, "password": password, "username": username or email.split("@")[0]},
    )
    assert r.status_code == 200, r.text
    data = r.json()
    return {"headers": {"Authorization": f"Bearer {data['token']}"}, "user": data["user"]}


def sample_json(meters_north, speed=3.0, accuracy=5.0) -> dict:
    return {
        "latitude": north_of(meters_north),
        "longitude": BASE_LON,
        "speed": speed,
        "horizontal_accuracy": accuracy,
    }


def record_run(client, headers, meters=(0, 100), ticks=1) -> dict:
    """Start, feed samples/ticks, stop, and dismiss the summary."""
    assert client.post("/recording/start", headers=headers).status_code == 200
    r = client.post(
        "/recording/samples",
        json={"samples": [sample_json(m) for m in meters]},
        headers=headers,
    )
    assert r.status_code == 200, r.text
    client.post("/recording/tick", json={"count": ticks}, headers=headers)
    stop = client.post("/recording/stop", headers=headers)
    assert stop.status_code == 200, stop.text
    assert client.post("/recording/reset", headers=headers).status_code == 200
    return stop.json()
