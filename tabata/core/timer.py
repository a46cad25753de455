from __future__ import annotations

import itertools
import logging
from enum import Enum
from typing import Callable

from PyQt6.QtCore import QObject, pyqtSignal

from tabata.core.advancer import TimerTransitionEvent, advance
from tabata.core.phases import TimerStatus, initial_status
from tabata.core.scheduler import POLL_INTERVAL_MS, TimerScheduler, TransitionEventQueue
from tabata.core.workout import InvalidWorkoutError, Workout, validate_workout


logger = logging.getLogger(__name__)


class RunState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    FINISHED = "finished"


class WorkoutTimer(TimerScheduler):
    """Workout engine: one status, one workout snapshot, one event queue."""

    status_changed = pyqtSignal(object)

    def __init__(
        self,
        clock: Callable[[], float] | None = None,
        interval_ms: int = POLL_INTERVAL_MS,
        parent: QObject | None = None,
    ) -> None:
        super().__init__(clock=clock, interval_ms=interval_ms, parent=parent)
        self._status = initial_status()
        self._workout: Workout | None = None
        self._run_state = RunState.IDLE
        self._queue: TransitionEventQueue[TimerTransitionEvent] = TransitionEventQueue()
        self._event_ids = itertools.count(1)

    @property
    def run_state(self) -> RunState:
        return self._run_state

    @property
    def is_paused(self) -> bool:
        return self._run_state == RunState.PAUSED

    @property
    def is_active(self) -> bool:
        return self._run_state in {RunState.RUNNING, RunState.PAUSED}

    @property
    def workout(self) -> Workout | None:
        return self._workout

    def get_status(self) -> TimerStatus:
        return self._status

    def drain_events(self) -> list[TimerTransitionEvent]:
        return self._queue.drain()

    def pending_events(self) -> int:
        return len(self._queue)

    def start(self, workout: Workout, now: float | None = None) -> bool:
        if self.is_active:
            logger.info("Ignoring start: a run is already in progress")
            return False
        try:
            validate_workout(workout)
        except InvalidWorkoutError as exc:
            logger.warning("Cannot start workout %r: %s", workout.name, exc)
            return False
        if now is None:
            now = self.now()
        self._workout = workout
        self._status = initial_status()
        self._queue.clear()
        self._queue.push([self._event_for(self._status, now)])
        self._run_state = RunState.RUNNING
        self._begin(now)
        logger.info("Started workout %r: %d sets x %d rounds", workout.name, workout.sets, len(workout.rounds))
        self.transitions_ready.emit()
        self.status_changed.emit(self._status)
        return True

    def pause(self, now: float | None = None) -> None:
        if self._run_state != RunState.RUNNING:
            return
        self.poll(now)
        if self._run_state != RunState.RUNNING:
            # the settling poll finished the workout
            return
        self.halt()
        self._run_state = RunState.PAUSED
        logger.info("Paused with %ds left in %s", self._status.time_left_in_phase, self._status.phase.value)
        self.status_changed.emit(self._status)

    def resume(self, now: float | None = None) -> None:
        if self._run_state != RunState.PAUSED:
            return
        self._run_state = RunState.RUNNING
        self._begin(now)
        logger.info("Resumed in %s", self._status.phase.value)
        self.status_changed.emit(self._status)

    def stop(self) -> None:
        self.halt()
        self._queue.clear()
        self._status = initial_status()
        self._workout = None
        if self._run_state != RunState.IDLE:
            logger.info("Stopped workout run")
        self._run_state = RunState.IDLE
        self.status_changed.emit(self._status)

    def reset(self) -> None:
        self.stop()

    def _catch_up(self, elapsed_seconds: int, now: float) -> bool:
        if self._workout is None or self._run_state != RunState.RUNNING:
            return False
        previous = self._status
        self._status, events = advance(previous, self._workout, elapsed_seconds, now, self._event_ids)
        if events:
            self._queue.push(events)
            logger.debug("Crossed %d phase boundaries in %ds", len(events), elapsed_seconds)
        if self._status.workout_completed:
            self.halt()
            self._run_state = RunState.FINISHED
            logger.info("Workout %r completed", self._workout.name)
        if self._status != previous:
            self.status_changed.emit(self._status)
        return bool(events)

    def _event_for(self, status: TimerStatus, now: float) -> TimerTransitionEvent:
        return TimerTransitionEvent(
            id=next(self._event_ids),
            phase=status.phase,
            set=status.current_set,
            round_index=status.current_round_index,
            occurred_at=now,
        )
