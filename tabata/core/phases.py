from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum

from tabata.core.workout import Workout


PREPARE_TIME = 5


class TimerPhase(str, Enum):
    PREPARE = "prepare"
    WORK = "work"
    REST = "rest"
    SET_REST = "set_rest"
    FINISHED = "finished"


@dataclass(frozen=True)
class TimerStatus:
    phase: TimerPhase
    current_set: int
    current_round_index: int
    time_left_in_phase: int
    total_phase_time: int
    workout_completed: bool


def initial_status() -> TimerStatus:
    return TimerStatus(
        phase=TimerPhase.PREPARE,
        current_set=1,
        current_round_index=0,
        time_left_in_phase=PREPARE_TIME,
        total_phase_time=PREPARE_TIME,
        workout_completed=False,
    )


def transition(status: TimerStatus, workout: Workout) -> TimerStatus:
    """Next status once ``status`` has counted down to zero.

    Callers must only invoke this at zero time left. Returns ``status``
    itself when there is nowhere to go, which is how the catch-up loop
    detects the terminal phase.
    """
    phase = status.phase
    if phase == TimerPhase.PREPARE:
        return _enter(status, TimerPhase.WORK, status.current_set, 0, workout.rounds[0].work_time)
    if phase == TimerPhase.WORK:
        rest_time = workout.rounds[status.current_round_index].rest_time
        if rest_time > 0:
            return _enter(status, TimerPhase.REST, status.current_set, status.current_round_index, rest_time)
        return _after_round(status, workout)
    if phase == TimerPhase.REST:
        return _after_round(status, workout)
    if phase == TimerPhase.SET_REST:
        next_set = status.current_set + 1
        if next_set <= workout.sets:
            return _enter(status, TimerPhase.WORK, next_set, 0, workout.rounds[0].work_time)
        return _finish(status)
    return status


def is_final_exercise(status: TimerStatus, workout: Workout) -> bool:
    return status.current_set == workout.sets and status.current_round_index == len(workout.rounds) - 1


def _after_round(status: TimerStatus, workout: Workout) -> TimerStatus:
    if is_final_exercise(status, workout):
        return _finish(status)
    next_index = status.current_round_index + 1
    if next_index < len(workout.rounds):
        return _enter(status, TimerPhase.WORK, status.current_set, next_index, workout.rounds[next_index].work_time)
    # set rest keeps pointing at the last round; the wrap happens when it expires
    return _enter(status, TimerPhase.SET_REST, status.current_set, status.current_round_index, workout.set_rest_time)


def _enter(status: TimerStatus, phase: TimerPhase, current_set: int, round_index: int, seconds: int) -> TimerStatus:
    return replace(
        status,
        phase=phase,
        current_set=current_set,
        current_round_index=round_index,
        time_left_in_phase=seconds,
        total_phase_time=seconds,
        workout_completed=False,
    )


def _finish(status: TimerStatus) -> TimerStatus:
    return replace(
        status,
        phase=TimerPhase.FINISHED,
        time_left_in_phase=0,
        total_phase_time=0,
        workout_completed=True,
    )
