import pytest
from sqlalchemy.exc import OperationalError

from conftest import record_run, signup


@pytest.fixture
def pair(client):
    owner = signup(client, "owner@example.com", "Owner")
    fan = signup(client, "fan@example.com", "Fan")
    run = record_run(client, owner["headers"], meters=(0, 400, 800))["activity"]
    return owner, fan, run


def unread(client, who):
    return client.get("/notifications/unread_count", headers=who["headers"]).json()["unread"]


def test_like_and_unlike(client, pair):
    owner, fan, run = pair
    url = f"/activities/{run['id']}/like"

    r = client.post(url, headers=fan["headers"])
    assert r.json() == {"activity_id": run["id"], "likes": 1, "liked": True}
    # liking twice does not double count
    assert client.post(url, headers=fan["headers"]).json()["likes"] == 1
    assert unread(client, owner) == 1

    # own like counts but does not notify
    assert client.post(url, headers=owner["headers"]).json()["likes"] == 2
    assert unread(client, owner) == 1

    assert client.delete(url, headers=fan["headers"]).json()["likes"] == 1
    # unliking again never goes below the real count
    assert client.delete(url, headers=fan["headers"]).json()["likes"] == 1
    assert client.get(f"/activities/{run['id']}", headers=fan["headers"]).json()["likes"] == 1


def test_like_missing_activity(client, pair):
    _, fan, _ = pair
    assert client.post("/activities/missing/like", headers=fan["headers"]).status_code == 404


def test_comments_are_oldest_first_and_notify_owner(client, pair):
    owner, fan, run = pair
    url = f"/activities/{run['id']}/comments"
    client.post(url, json={"text": "Nice pace!"}, headers=fan["headers"])
    client.post(url, json={"text": "See you Sunday"}, headers=fan["headers"])
    client.post(url, json={"text": "Thanks"}, headers=owner["headers"])

    comments = client.get(url, headers=owner["headers"]).json()
    assert [c["text"] for c in comments] == ["Nice pace!", "See you Sunday", "Thanks"]
    assert comments[0]["username"] == "Fan"

    since = comments[1]["created_at"]
    newer = client.get(url, params={"since": since}, headers=owner["headers"]).json()
    assert [c["text"] for c in newer] == ["Thanks"]

    assert unread(client, owner) == 2
    assert client.post(url, json={"text": "   "}, headers=fan["headers"]).status_code == 422


def test_notifications_list_and_mark_read(client, pair):
    owner, fan, run = pair
    client.post(f"/activities/{run['id']}/like", headers=fan["headers"])
    client.post(f"/activities/{run['id']}/comments", json={"text": "yo"}, headers=fan["headers"])

    items = client.get("/notifications/", headers=owner["headers"]).json()
    assert [n["type"] for n in items] == ["comment", "like"]
    assert all(n["from_username"] == "Fan" and not n["is_read"] for n in items)
    assert items[0]["activity_id"] == run["id"]

    r = client.post("/notifications/mark_read", headers=owner["headers"])
    assert r.json()["updated"] == 2
    assert unread(client, owner) == 0
    assert client.get("/notifications/", headers=fan["headers"]).json() == []


def test_feed_is_newest_first_and_paginated(client):
    h = signup(client, "many@example.com")["headers"]
    ids = [record_run(client, h)["activity"]["id"] for _ in range(3)]

    page1 = client.get("/activities/feed", params={"limit": 2}, headers=h).json()
    page2 = client.get("/activities/feed", params={"limit": 2, "offset": 2}, headers=h).json()
    assert [a["id"] for a in page1 + page2] == list(reversed(ids))


def test_note_update_owner_only(client, pair):
    owner, fan, run = pair
    url = f"/activities/{run['id']}/note"
    assert client.put(url, json={"note": "hot day"}, headers=fan["headers"]).status_code == 403
    r = client.put(url, json={"note": "hot day"}, headers=owner["headers"])
    assert r.status_code == 200
    assert r.json()["note"] == "hot day"


def test_delete_returns_distance_and_removes_comments(client, pair):
    owner, fan, run = pair
    client.post(f"/activities/{run['id']}/comments", json={"text": "hi"}, headers=fan["headers"])
    before = client.get("/auth/me", headers=owner["headers"]).json()["total_distance_km"]
    assert before == pytest.approx(0.8, rel=1e-6)

    assert client.delete(f"/activities/{run['id']}", headers=fan["headers"]).status_code == 403
    assert client.delete(f"/activities/{run['id']}", headers=owner["headers"]).status_code == 200

    after = client.get("/auth/me", headers=owner["headers"]).json()["total_distance_km"]
    assert after == pytest.approx(0.0, abs=1e-9)
    assert client.get(f"/activities/{run['id']}", headers=owner["headers"]).status_code == 404
    assert client.delete(f"/activities/{run['id']}", headers=owner["headers"]).status_code == 404


def test_delete_is_all_or_nothing(client, pair, monkeypatch):
    from runfeed.db import SessionLocal
    from runfeed.errors import PersistenceError
    from runfeed.models.activity import Activity
    from runfeed.models.user import User
    from runfeed.services import activities as store

    owner, _, run = pair

    def broken(*args, **kwargs):
        raise OperationalError("UPDATE users", {}, Exception("disk I/O error"))

    monkeypatch.setattr(store, "_add_lifetime_distance", broken)
    db = SessionLocal()
    try:
        with pytest.raises(PersistenceError):
            store.delete_activity(db, run["id"], owner["user"]["id"])
        assert db.query(Activity).filter(Activity.id == run["id"]).count() == 1
        user = db.query(User).filter(User.id == owner["user"]["id"]).one()
        assert user.total_distance_km == pytest.approx(0.8, rel=1e-6)
    finally:
        db.close()


def test_failed_save_can_be_retried(client, monkeypatch):
    from runfeed.services import activities as store

    h = signup(client, "retry@example.com")["headers"]
    client.post("/recording/start", headers=h)
    client.post(
        "/recording/samples",
        json={"samples": [{"latitude": 13.73, "longitude": 100.54, "speed": 3, "horizontal_accuracy": 5}]},
        headers=h,
    )

    real = store._add_lifetime_distance

    def broken(*args, **kwargs):
        raise OperationalError("UPDATE users", {}, Exception("database is locked"))

    monkeypatch.setattr(store, "_add_lifetime_distance", broken)
    out = client.post("/recording/stop", headers=h).json()
    assert out["saved"] is False
    assert out["activity"] is None
    assert "failed" in out["error"]
    assert client.get("/activities/feed", headers=h).json() == []

    monkeypatch.setattr(store, "_add_lifetime_distance", real)
    retry = client.post("/recording/save", headers=h).json()
    assert retry["saved"] is True
    assert len(client.get("/activities/feed", headers=h).json()) == 1
    assert client.post("/recording/save", headers=h).status_code == 404
