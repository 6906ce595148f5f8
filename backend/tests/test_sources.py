from datetime import datetime, timedelta, timezone

import gpxpy.gpx
import pytest

from conftest import BASE_LAT, BASE_LON, north_of, sample_at
from runfeed.errors import PersistenceError
from runfeed.tracking.models import LocationSample, RecordingState
from runfeed.tracking.session import RecordingSession
from runfeed.tracking.sources import (
    REPLAY_ACCURACY_M,
    GpxLocationSource,
    ManualLocationSource,
    ManualTimerSource,
    samples_from_fit,
)


def make_session(save=None) -> RecordingSession:
    return RecordingSession(
        user_id="runner-1",
        location_source=ManualLocationSource(),
        timer_source=ManualTimerSource(),
        save=save,
    )


def build_gpx(meters_per_point=10.5, points=121, seconds_per_point=3, hdop=None) -> str:
    gpx = gpxpy.gpx.GPX()
    track = gpxpy.gpx.GPXTrack()
    segment = gpxpy.gpx.GPXTrackSegment()
    gpx.tracks.append(track)
    track.segments.append(segment)
    t0 = datetime(2025, 1, 1, 6, 0, tzinfo=timezone.utc)
    for i in range(points):
        segment.points.append(
            gpxpy.gpx.GPXTrackPoint(
                latitude=north_of(i * meters_per_point),
                longitude=BASE_LON,
                time=t0 + timedelta(seconds=i * seconds_per_point),
                horizontal_dilution=hdop,
            )
        )
    return gpx.to_xml()


def test_subscription_cancel_stops_delivery():
    source = ManualLocationSource()
    got = []
    sub = source.subscribe(got.append)
    assert source.push(sample_at(0)) == 1
    sub.cancel()
    sub.cancel()
    assert source.push(sample_at(10)) == 0
    assert len(got) == 1
    assert source.subscriber_count == 0


def test_timer_tick_count():
    timer = ManualTimerSource()
    calls = []
    timer.subscribe(lambda: calls.append(1))
    timer.tick(5)
    assert len(calls) == 5
    with pytest.raises(ValueError):
        timer.tick(-1)


def test_session_subscribes_only_while_recording():
    session = make_session()
    assert not session.is_subscribed
    session.start()
    assert session.is_subscribed
    session.location_source.push(sample_at(0))
    session.location_source.push(sample_at(200))
    session.timer_source.tick(60)
    session.pause()
    assert not session.is_subscribed
    assert session.location_source.push(sample_at(900)) == 0
    session.timer_source.tick(30)
    snap = session.snapshot()
    assert snap.state == RecordingState.paused
    assert snap.elapsed_seconds == 60
    assert snap.total_distance_km == pytest.approx(0.2, rel=1e-6)

    session.resume()
    session.location_source.push(sample_at(950))
    session.location_source.push(sample_at(1050))
    assert session.snapshot().total_distance_km == pytest.approx(0.3, rel=1e-6)


def test_stop_hands_record_to_save_callback():
    saved = []
    session = make_session(save=lambda rec: saved.append(rec) or "row-1")
    session.start()
    session.location_source.push(sample_at(0))
    session.timer_source.tick(300)
    session.location_source.push(sample_at(1000.5))
    result = session.stop()
    assert result.saved
    assert result.saved_as == "row-1"
    assert saved == [result.record]
    assert result.record.splits == (300,)
    assert session.pending_record is None
    assert not session.is_subscribed

    session.reset()
    assert session.state == RecordingState.idle


def test_failed_save_keeps_record_pending_for_retry():
    attempts = []

    def flaky_save(record):
        attempts.append(record.id)
        if len(attempts) == 1:
            raise PersistenceError("database unavailable")
        return "ok"

    session = make_session(save=flaky_save)
    session.start()
    session.location_source.push(sample_at(0))
    session.location_source.push(sample_at(150))
    result = session.stop()
    assert not result.saved
    assert "database unavailable" in result.error
    assert session.pending_record is result.record
    # tracker state is untouched by the failure
    assert session.state == RecordingState.stopped

    retry = session.retry_save()
    assert retry.saved
    assert retry.record is result.record
    assert attempts == [result.record.id, result.record.id]
    assert session.pending_record is None


def test_retry_without_pending_record():
    with pytest.raises(ValueError):
        make_session().retry_save()


def test_gpx_replay_drives_distance_and_time():
    source = GpxLocationSource.from_string(build_gpx())
    assert len(source.samples) == 121
    # speed derived from consecutive points: 10.5 m / 3 s
    assert source.samples[0].speed < 0
    assert source.samples[1].speed == pytest.approx(3.5, rel=5e-3)

    timer = ManualTimerSource()
    session = RecordingSession("runner-1", source, timer)
    session.start()
    source.play(timer)
    snap = session.snapshot()
    assert snap.total_distance_km == pytest.approx(1.26, rel=1e-3)
    assert snap.elapsed_seconds == 360
    assert len(snap.splits) == 1
    # 1 km is crossed at point 96 -> 288 s
    assert snap.splits[0] == 288
    assert snap.current_pace_min_per_km == pytest.approx(16.6667 / 3.5, rel=5e-3)


def test_gpx_from_file(tmp_path):
    path = tmp_path / "run.gpx"
    path.write_text(build_gpx(points=5), encoding="utf-8")
    source = GpxLocationSource.from_file(str(path))
    assert [round(s.point.latitude, 6) for s in source.samples][0] == round(BASE_LAT, 6)
    assert len(source.samples) == 5


class _Field:
    def __init__(self, name, value):
        self.name = name
        self.value = value


class _FakeFit:
    """Minimal stand-in for fitparse.FitFile message access."""

    def __init__(self, records):
        self.records = records

    def get_messages(self, name):
        assert name == "record"
        return [[_Field(k, v) for k, v in r.items()] for r in self.records]


def test_fit_records_become_samples():
    to_semi = 2**31 / 180
    t0 = datetime(2025, 1, 1, 6, 0, tzinfo=timezone.utc)
    fit = _FakeFit([
        {"timestamp": t0, "position_lat": int(BASE_LAT * to_semi), "position_long": int(BASE_LON * to_semi), "enhanced_speed": 3.2},
        # indoor records without a fix are skipped
        {"timestamp": t0 + timedelta(seconds=1), "speed": 3.0},
        {"timestamp": t0 + timedelta(seconds=2), "position_lat": int(BASE_LAT * to_semi), "position_long": int(BASE_LON * to_semi), "speed": 2.9},
    ])
    samples = samples_from_fit(fit)
    assert len(samples) == 2
    assert samples[0].point.latitude == pytest.approx(BASE_LAT, abs=1e-6)
    assert samples[0].speed == 3.2
    assert samples[1].speed == 2.9
    assert samples[1].timestamp == t0 + timedelta(seconds=2)


def test_gpx_hdop_is_not_read_as_metres():
    # hdop 12 is a poor fix but has no unit; pace stays displayable
    source = GpxLocationSource.from_string(build_gpx(points=3, hdop=12.0))
    assert all(s.horizontal_accuracy == REPLAY_ACCURACY_M for s in source.samples)

    session = RecordingSession("runner-1", source, ManualTimerSource())
    session.start()
    source.play()
    assert session.snapshot().current_pace_min_per_km > 0


def test_sample_default_timestamp_is_utc():
    sample = LocationSample.at(BASE_LAT, BASE_LON)
    assert sample.timestamp.tzinfo is not None
    assert sample.timestamp.utcoffset() == timedelta(0)


def test_stop_uses_save_given_for_that_call():
    saved = []
    session = make_session()
    session.start()
    session.location_source.push(sample_at(0))
    session.location_source.push(sample_at(200))
    result = session.stop(lambda rec: saved.append(rec) or "row-2")
    assert result.saved_as == "row-2"
    assert saved == [result.record]
    # nothing is left attached to the session
    assert session.save is None
