"""Location and timer sources that feed a run tracker.

Sources deliver events to subscribed handlers; cancelling the returned
``Subscription`` stops delivery. Manual sources are pushed by hand (the HTTP
recording API and tests use them); GPX and FIT sources replay a recorded
activity file through the same interface.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Iterable, Optional, Protocol

import gpxpy
import gpxpy.gpx
from fitparse import FitFile

from runfeed.tracking.models import GeoPoint, LocationSample

logger = logging.getLogger(__name__)

# Replay files carry no accuracy in metres (GPX hdop is unitless); treat fixes as usable
REPLAY_ACCURACY_M = 0.0

SampleHandler = Callable[[LocationSample], None]
TickHandler = Callable[[], None]


class Subscription:
    def __init__(self, owner, handler):
        self._owner = owner
        self.handler = handler
        self.active = True

    def cancel(self) -> None:
        if self.active:
            self.active = False
            self._owner._remove(self)


class _Broadcaster:
    def __init__(self):
        self._subs: list[Subscription] = []

    def subscribe(self, handler) -> Subscription:
        sub = Subscription(self, handler)
        self._subs.append(sub)
        return sub

    def _remove(self, sub: Subscription) -> None:
        if sub in self._subs:
            self._subs.remove(sub)

    @property
    def subscriber_count(self) -> int:
        return len(self._subs)

    def _emit(self, *args) -> int:
        delivered = 0
        for sub in list(self._subs):
            if sub.active:
                sub.handler(*args)
                delivered += 1
        return delivered


class LocationSource(Protocol):
    def subscribe(self, handler: SampleHandler) -> Subscription: ...


class TimerSource(Protocol):
    def subscribe(self, handler: TickHandler) -> Subscription: ...


class ManualLocationSource(_Broadcaster):
    def push(self, sample: LocationSample) -> int:
        """Deliver one sample; returns how many handlers received it."""
        return self._emit(sample)


class ManualTimerSource(_Broadcaster):
    def tick(self, count: int = 1) -> int:
        if count < 0:
            raise ValueError("count must be >= 0")
        delivered = 0
        for _ in range(count):
            delivered = self._emit()
        return delivered


class ReplayLocationSource(ManualLocationSource):
    """Replays a fixed list of samples, driving a timer from their timestamps."""

    def __init__(self, samples: Iterable[LocationSample]):
        super().__init__()
        self.samples = list(samples)

    def play(self, timer: Optional[ManualTimerSource] = None) -> int:
        """Push every sample in order; returns the number of samples pushed.

        When a timer is given, whole seconds elapsed since the first sample
        are ticked before each sample so elapsed time tracks the recording.
        """
        start = None
        ticked = 0
        for sample in self.samples:
            if timer is not None and sample.timestamp is not None:
                if start is None:
                    start = sample.timestamp
                target = int((sample.timestamp - start).total_seconds())
                if target > ticked:
                    timer.tick(target - ticked)
                    ticked = target
            self.push(sample)
        return len(self.samples)


def samples_from_gpx(gpx: gpxpy.gpx.GPX) -> list[LocationSample]:
    samples = []
    prev = None
    for track in gpx.tracks:
        for segment in track.segments:
            for p in segment.points:
                speed = p.speed
                if speed is None and prev is not None:
                    speed = p.speed_between(prev)
                samples.append(
                    LocationSample(
                        point=GeoPoint(p.latitude, p.longitude),
                        speed=speed if speed is not None else -1.0,
                        horizontal_accuracy=REPLAY_ACCURACY_M,
                        timestamp=p.time,
                    )
                )
                prev = p
    return samples


class GpxLocationSource(ReplayLocationSource):
    @classmethod
    def from_string(cls, xml: str) -> "GpxLocationSource":
        return cls(samples_from_gpx(gpxpy.parse(xml)))

    @classmethod
    def from_file(cls, path: str) -> "GpxLocationSource":
        with open(path, "r", encoding="utf-8") as f:
            gpx = gpxpy.parse(f)
        source = cls(samples_from_gpx(gpx))
        logger.info("Loaded %d GPX samples from %s", len(source.samples), path)
        return source


def _semicircles_to_degrees(val):
    return val * (180 / 2**31) if val is not None else None


def samples_from_fit(fit: FitFile) -> list[LocationSample]:
    samples = []
    for record in fit.get_messages("record"):
        fields = {f.name: f.value for f in record}
        lat = _semicircles_to_degrees(fields.get("position_lat"))
        lon = _semicircles_to_degrees(fields.get("position_long"))
        if lat is None or lon is None:
            continue
        # Prefer enhanced fields when present
        speed = fields.get("enhanced_speed")
        if speed is None:
            speed = fields.get("speed")
        ts = fields.get("timestamp")
        samples.append(
            LocationSample(
                point=GeoPoint(lat, lon),
                speed=float(speed) if speed is not None else -1.0,
                horizontal_accuracy=REPLAY_ACCURACY_M,
                timestamp=ts if isinstance(ts, datetime) else None,
            )
        )
    return samples


class FitLocationSource(ReplayLocationSource):
    @classmethod
    def from_file(cls, path: str) -> "FitLocationSource":
        source = cls(samples_from_fit(FitFile(path)))
        logger.info("Loaded %d FIT samples from %s", len(source.samples), path)
        return source
