"""Recording session driver.

Owns one ``RunTracker`` and wires it to a location source and a timer
source: subscriptions are opened while recording and cancelled on pause or
stop, so neither source keeps feeding a tracker that is not recording. On
stop the frozen ``RunRecord`` is handed to a save callback (the persistence
collaborator); a failed save keeps the record pending for a retry instead of
touching the tracker.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional

from runfeed.errors import PersistenceError
from runfeed.tracking.models import RecordingState, RunRecord, TrackerSnapshot
from runfeed.tracking.sources import LocationSource, Subscription, TimerSource
from runfeed.tracking.tracker import RunTracker

logger = logging.getLogger(__name__)

SaveCallback = Callable[[RunRecord], Any]


@dataclass(frozen=True)
class StopResult:
    record: RunRecord
    saved: bool
    saved_as: Any = None
    error: Optional[str] = None


class RecordingSession:
    def __init__(
        self,
        user_id: str,
        location_source: LocationSource,
        timer_source: TimerSource,
        save: Optional[SaveCallback] = None,
        tracker: Optional[RunTracker] = None,
    ):
        self.user_id = user_id
        self.location_source = location_source
        self.timer_source = timer_source
        self.save = save
        self.tracker = tracker or RunTracker()
        self.pending_record: Optional[RunRecord] = None
        self._location_sub: Optional[Subscription] = None
        self._timer_sub: Optional[Subscription] = None

    @property
    def state(self) -> RecordingState:
        return self.tracker.state

    def snapshot(self) -> TrackerSnapshot:
        return self.tracker.snapshot()

    @property
    def is_subscribed(self) -> bool:
        return self._location_sub is not None or self._timer_sub is not None

    def _subscribe(self) -> None:
        if self._location_sub is None:
            self._location_sub = self.location_source.subscribe(self.tracker.on_sample)
        if self._timer_sub is None:
            self._timer_sub = self.timer_source.subscribe(self.tracker.on_tick)

    def _unsubscribe(self) -> None:
        if self._location_sub is not None:
            self._location_sub.cancel()
            self._location_sub = None
        if self._timer_sub is not None:
            self._timer_sub.cancel()
            self._timer_sub = None

    def start(self) -> TrackerSnapshot:
        self.tracker.start()
        self.pending_record = None
        self._subscribe()
        return self.snapshot()

    def pause(self) -> TrackerSnapshot:
        self.tracker.pause()
        self._unsubscribe()
        return self.snapshot()

    def resume(self) -> TrackerSnapshot:
        self.tracker.resume()
        self._subscribe()
        return self.snapshot()

    def stop(self, save: Optional[SaveCallback] = None) -> StopResult:
        """Freeze the run and persist it with ``save``, or the session default."""
        record = self.tracker.stop(self.user_id)
        self._unsubscribe()
        self.pending_record = record
        return self._save(record, save or self.save)

    def retry_save(self, save: Optional[SaveCallback] = None) -> StopResult:
        if self.pending_record is None:
            raise ValueError("no pending run to save")
        return self._save(self.pending_record, save or self.save)

    def _save(self, record: RunRecord, save: Optional[SaveCallback]) -> StopResult:
        if save is None:
            return StopResult(record=record, saved=False)
        try:
            saved_as = save(record)
        except PersistenceError as e:
            logger.error("Saving run %s failed: %s", record.id, e)
            return StopResult(record=record, saved=False, error=str(e))
        self.pending_record = None
        return StopResult(record=record, saved=True, saved_as=saved_as)

    def reset(self) -> TrackerSnapshot:
        """Discard the finished summary and return to idle."""
        self.tracker.reset()
        self._unsubscribe()
        self.pending_record = None
        return self.snapshot()
