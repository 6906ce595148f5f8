"""Distance, pace and split derivation for one recording session.

The tracker is a synchronous state machine::

    idle --start--> recording --pause--> paused --resume--> recording
    recording|paused --stop--> stopped --reset--> idle

It is fed ``LocationSample`` objects and 1 Hz ticks by a session driver and
never performs I/O itself.
"""
from __future__ import annotations

import logging
import math
import uuid
from datetime import datetime, timezone
from typing import Callable, Optional

from runfeed.core.constants import (
    KM_M,
    MAX_PLAUSIBLE_PACE_MIN_PER_KM,
    PACE_FACTOR,
    SPLIT_KM,
)
from runfeed.core.time_utils import compute_avg_pace
from runfeed.errors import InvalidTransitionError
from runfeed.tracking.geo import haversine_m, is_valid_coordinate, thin_route
from runfeed.tracking.models import (
    LocationSample,
    RecordingState,
    RunAccumulator,
    RunRecord,
    TrackerSnapshot,
)

logger = logging.getLogger(__name__)

Listener = Callable[[TrackerSnapshot], None]


def instantaneous_pace(speed, horizontal_accuracy) -> float:
    """Pace in min/km for one sample, or 0 when the reading is unusable."""
    if speed is None or horizontal_accuracy is None:
        return 0.0
    if not (speed > 0 and horizontal_accuracy >= 0):
        return 0.0
    pace = PACE_FACTOR / speed
    if pace < MAX_PLAUSIBLE_PACE_MIN_PER_KM:
        return pace
    return 0.0


class RunTracker:
    def __init__(self, route_max_points: Optional[int] = None):
        if route_max_points is not None and route_max_points < 2:
            raise ValueError("route_max_points must be >= 2")
        self.route_max_points = route_max_points
        self._state = RecordingState.idle
        self._acc: Optional[RunAccumulator] = None
        self._last_record: Optional[RunRecord] = None
        self._listeners: list[Listener] = []

    # --------- observation --------- #

    @property
    def state(self) -> RecordingState:
        return self._state

    @property
    def last_record(self) -> Optional[RunRecord]:
        return self._last_record

    def snapshot(self) -> TrackerSnapshot:
        acc = self._acc
        if acc is not None:
            return TrackerSnapshot(
                state=self._state,
                total_distance_km=acc.total_distance_km,
                current_pace_min_per_km=acc.current_pace_min_per_km,
                elapsed_seconds=acc.elapsed_seconds,
                splits=tuple(acc.splits),
                route_points=len(acc.route),
                next_split_threshold_km=acc.next_split_threshold_km,
            )
        rec = self._last_record if self._state == RecordingState.stopped else None
        if rec is not None:
            return TrackerSnapshot(
                state=self._state,
                total_distance_km=rec.distance_km,
                current_pace_min_per_km=0.0,
                elapsed_seconds=rec.duration_seconds,
                splits=rec.splits,
                route_points=len(rec.route),
                next_split_threshold_km=math.floor(rec.distance_km) + SPLIT_KM,
            )
        return TrackerSnapshot(
            state=self._state,
            total_distance_km=0.0,
            current_pace_min_per_km=0.0,
            elapsed_seconds=0.0,
            splits=(),
            route_points=0,
            next_split_threshold_km=SPLIT_KM,
        )

    def add_listener(self, listener: Listener) -> Callable[[], None]:
        """Register a change callback; returns a function that unregisters it."""
        self._listeners.append(listener)

        def _remove():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _remove

    def _notify(self) -> None:
        if not self._listeners:
            return
        snap = self.snapshot()
        for listener in list(self._listeners):
            listener(snap)

    def _require(self, command: str, *allowed: RecordingState) -> None:
        if self._state not in allowed:
            raise InvalidTransitionError(
                f"cannot {command} while {self._state.value}"
            )

    # --------- transitions --------- #

    def start(self) -> None:
        self._require("start", RecordingState.idle)
        self._acc = RunAccumulator(next_split_threshold_km=SPLIT_KM)
        self._last_record = None
        self._state = RecordingState.recording
        logger.info("Recording started")
        self._notify()

    def pause(self) -> None:
        self._require("pause", RecordingState.recording)
        self._acc.current_pace_min_per_km = 0.0
        self._state = RecordingState.paused
        logger.info(
            "Recording paused at %.3f km / %ss",
            self._acc.total_distance_km,
            int(self._acc.elapsed_seconds),
        )
        self._notify()

    def resume(self) -> None:
        self._require("resume", RecordingState.paused)
        # The next sample must not bridge the distance covered while paused.
        self._acc.last_accepted_sample = None
        self._state = RecordingState.recording
        logger.info("Recording resumed")
        self._notify()

    def stop(
        self,
        user_id: str,
        record_id: Optional[str] = None,
        created_at: Optional[datetime] = None,
    ) -> RunRecord:
        self._require("stop", RecordingState.recording, RecordingState.paused)
        acc = self._acc
        acc.current_pace_min_per_km = 0.0
        record = RunRecord(
            id=record_id or uuid.uuid4().hex,
            user_id=user_id,
            distance_km=acc.total_distance_km,
            duration_seconds=acc.elapsed_seconds,
            route=tuple(acc.route),
            avg_pace=compute_avg_pace(acc.elapsed_seconds, acc.total_distance_km),
            splits=tuple(acc.splits),
            created_at=created_at or datetime.now(timezone.utc),
        )
        self._acc = None
        self._last_record = record
        self._state = RecordingState.stopped
        logger.info(
            "Recording stopped: %.3f km in %ss, %d splits",
            record.distance_km,
            int(record.duration_seconds),
            len(record.splits),
        )
        self._notify()
        return record

    def reset(self) -> None:
        self._require("reset", RecordingState.stopped, RecordingState.idle)
        self._acc = None
        self._last_record = None
        self._state = RecordingState.idle
        self._notify()

    # --------- inputs --------- #

    def on_tick(self) -> None:
        if self._state != RecordingState.recording:
            return
        self._acc.elapsed_seconds += 1
        self._notify()

    def on_sample(self, sample: LocationSample) -> None:
        if self._state != RecordingState.recording:
            return
        point = sample.point
        if not is_valid_coordinate(point.latitude, point.longitude):
            logger.debug("Ignoring sample with invalid coordinates: %s", point)
            return

        acc = self._acc
        acc.current_pace_min_per_km = instantaneous_pace(
            sample.speed, sample.horizontal_accuracy
        )

        acc.route.append(point)
        if self.route_max_points is not None and len(acc.route) > self.route_max_points:
            acc.route = thin_route(acc.route, self.route_max_points)

        prev = acc.last_accepted_sample
        if prev is not None:
            delta_m = haversine_m(
                prev.point.latitude,
                prev.point.longitude,
                point.latitude,
                point.longitude,
            )
            acc.total_distance_km += delta_m / KM_M
        acc.last_accepted_sample = sample

        self._record_splits(acc)
        self._notify()

    def _record_splits(self, acc: RunAccumulator) -> None:
        # A single jump may cross several boundaries; each one gets a split.
        while acc.total_distance_km >= acc.next_split_threshold_km:
            acc.splits.append(acc.elapsed_seconds - acc.time_of_last_split)
            acc.time_of_last_split = acc.elapsed_seconds
            acc.next_split_threshold_km += SPLIT_KM
            logger.debug(
                "Split %d recorded: %ss", len(acc.splits), int(acc.splits[-1])
            )
