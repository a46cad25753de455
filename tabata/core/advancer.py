from __future__ import annotations

import itertools
from dataclasses import dataclass, replace
from typing import Callable, Iterator, TypeVar

from tabata.core.phases import TimerPhase, TimerStatus, transition
from tabata.core.workout import Workout


S = TypeVar("S")
E = TypeVar("E")


@dataclass(frozen=True)
class TimerTransitionEvent:
    id: int
    phase: TimerPhase
    set: int
    round_index: int
    occurred_at: float


def catch_up(
    state: S,
    elapsed_seconds: int,
    now: float,
    *,
    step: Callable[[S], S],
    time_left: Callable[[S], int],
    with_time_left: Callable[[S, int], S],
    make_event: Callable[[S, float], E],
    running: Callable[[S], bool],
) -> tuple[S, list[E]]:
    """Walk ``state`` forward through as many phase boundaries as ``elapsed_seconds`` covers.

    Every boundary crossed produces one event, stamped with the instant
    (milliseconds, same clock as ``now``) at which it was crossed.
    Zero-length phases collapse without consuming time. ``step`` must
    return its argument unchanged when there is nowhere left to go.
    """
    remaining = max(0, int(elapsed_seconds))
    cursor = now - remaining * 1000
    events: list[E] = []

    while running(state):
        left = time_left(state)
        if left == 0:
            following = step(state)
            if following is state:
                break
            state = following
            events.append(make_event(state, cursor))
            continue
        if remaining < left:
            state = with_time_left(state, left - remaining)
            break
        cursor += left * 1000
        remaining -= left
        state = with_time_left(state, 0)

    return state, events


def advance(
    status: TimerStatus,
    workout: Workout,
    elapsed_seconds: int,
    now: float,
    ids: Iterator[int] | None = None,
) -> tuple[TimerStatus, list[TimerTransitionEvent]]:
    """Fast-forward a workout ``status`` by ``elapsed_seconds`` of real time."""
    if ids is None:
        ids = itertools.count(1)

    def make_event(entered: TimerStatus, at: float) -> TimerTransitionEvent:
        return TimerTransitionEvent(
            id=next(ids),
            phase=entered.phase,
            set=entered.current_set,
            round_index=entered.current_round_index,
            occurred_at=at,
        )

    return catch_up(
        status,
        elapsed_seconds,
        now,
        step=lambda s: transition(s, workout),
        time_left=lambda s: s.time_left_in_phase,
        with_time_left=lambda s, left: replace(s, time_left_in_phase=left),
        make_event=make_event,
        running=lambda s: not s.workout_completed,
    )
