from __future__ import annotations

"""Listening protection cycle: listen, ear rest, and an extended break every N cycles."""

import itertools
import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Callable, Iterator

from PyQt6.QtCore import QObject, pyqtSignal

from tabata.core.advancer import catch_up
from tabata.core.scheduler import POLL_INTERVAL_MS, TimerScheduler, TransitionEventQueue


logger = logging.getLogger(__name__)

LISTEN_DURATION = 60 * 60
EAR_REST_DURATION = 15 * 60
EXTENDED_BREAK_DURATION = 60 * 60


class ProtectionPhase(str, Enum):
    INACTIVE = "inactive"
    LISTEN = "listen"
    EAR_REST = "ear_rest"
    EXTENDED_BREAK = "extended_break"


@dataclass(frozen=True)
class ProtectionConfig:
    cycles: int = 3
    listen_seconds: int = LISTEN_DURATION
    ear_rest_seconds: int = EAR_REST_DURATION
    extended_break_seconds: int = EXTENDED_BREAK_DURATION

    def __post_init__(self) -> None:
        if self.cycles < 1:
            raise ValueError("Protection cycle needs at least one cycle")
        if min(self.listen_seconds, self.ear_rest_seconds, self.extended_break_seconds) <= 0:
            raise ValueError("Protection phase durations must be positive")

    def duration_of(self, phase: ProtectionPhase) -> int:
        if phase == ProtectionPhase.LISTEN:
            return self.listen_seconds
        if phase == ProtectionPhase.EAR_REST:
            return self.ear_rest_seconds
        if phase == ProtectionPhase.EXTENDED_BREAK:
            return self.extended_break_seconds
        return 0


@dataclass(frozen=True)
class ProtectionCycleState:
    is_active: bool = False
    phase: ProtectionPhase = ProtectionPhase.INACTIVE
    time_left: int = 0
    cycle_count: int = 1


@dataclass(frozen=True)
class ProtectionTransitionEvent:
    id: int
    phase: ProtectionPhase
    cycle_count: int
    occurred_at: float


INACTIVE_STATE = ProtectionCycleState()


def start_state(config: ProtectionConfig) -> ProtectionCycleState:
    return ProtectionCycleState(
        is_active=True,
        phase=ProtectionPhase.LISTEN,
        time_left=config.listen_seconds,
        cycle_count=1,
    )


def transition_protection(state: ProtectionCycleState, config: ProtectionConfig) -> ProtectionCycleState:
    if not state.is_active:
        return state
    if state.phase == ProtectionPhase.LISTEN:
        if state.cycle_count >= config.cycles:
            return replace(state, phase=ProtectionPhase.EXTENDED_BREAK, time_left=config.extended_break_seconds)
        return replace(
            state,
            phase=ProtectionPhase.EAR_REST,
            time_left=config.ear_rest_seconds,
            cycle_count=state.cycle_count + 1,
        )
    if state.phase == ProtectionPhase.EAR_REST:
        return replace(state, phase=ProtectionPhase.LISTEN, time_left=config.listen_seconds)
    if state.phase == ProtectionPhase.EXTENDED_BREAK:
        return replace(state, phase=ProtectionPhase.LISTEN, time_left=config.listen_seconds, cycle_count=1)
    return state


def advance_protection(
    state: ProtectionCycleState,
    config: ProtectionConfig,
    elapsed_seconds: int,
    now: float,
    ids: Iterator[int] | None = None,
) -> tuple[ProtectionCycleState, list[ProtectionTransitionEvent]]:
    """Fast-forward the never-ending protection cycle by ``elapsed_seconds``."""
    if ids is None:
        ids = itertools.count(1)
    return catch_up(
        state,
        elapsed_seconds,
        now,
        step=lambda s: transition_protection(s, config),
        time_left=lambda s: s.time_left,
        with_time_left=lambda s, left: replace(s, time_left=left),
        make_event=lambda s, at: ProtectionTransitionEvent(next(ids), s.phase, s.cycle_count, at),
        running=lambda s: s.is_active,
    )


class ProtectionCycleEngine(TimerScheduler):
    state_changed = pyqtSignal(object)

    def __init__(
        self,
        clock: Callable[[], float] | None = None,
        interval_ms: int = POLL_INTERVAL_MS,
        parent: QObject | None = None,
    ) -> None:
        super().__init__(clock=clock, interval_ms=interval_ms, parent=parent)
        self._config = ProtectionConfig()
        self._state = INACTIVE_STATE
        self._queue: TransitionEventQueue[ProtectionTransitionEvent] = TransitionEventQueue()
        self._event_ids = itertools.count(1)

    @property
    def config(self) -> ProtectionConfig:
        return self._config

    @property
    def is_active(self) -> bool:
        return self._state.is_active

    def get_state(self) -> ProtectionCycleState:
        return self._state

    def drain_events(self) -> list[ProtectionTransitionEvent]:
        return self._queue.drain()

    def start(self, config: ProtectionConfig | None = None, now: float | None = None) -> None:
        if config is not None:
            self._config = config
        if now is None:
            now = self.now()
        self._state = start_state(self._config)
        self._queue.clear()
        self._queue.push([ProtectionTransitionEvent(next(self._event_ids), self._state.phase, 1, now)])
        self._begin(now)
        logger.info(
            "Protection cycle started: %d cycles, %ds listen / %ds ear rest",
            self._config.cycles,
            self._config.listen_seconds,
            self._config.ear_rest_seconds,
        )
        self.transitions_ready.emit()
        self.state_changed.emit(self._state)

    def stop(self) -> None:
        self.halt()
        self._queue.clear()
        was_active = self._state.is_active
        self._state = INACTIVE_STATE
        if was_active:
            logger.info("Protection cycle stopped")
            self.state_changed.emit(self._state)

    def _catch_up(self, elapsed_seconds: int, now: float) -> bool:
        previous = self._state
        self._state, events = advance_protection(previous, self._config, elapsed_seconds, now, self._event_ids)
        if events:
            self._queue.push(events)
            for event in events:
                logger.info("Protection cycle entered %s (cycle %d)", event.phase.value, event.cycle_count)
        if self._state != previous:
            self.state_changed.emit(self._state)
        return bool(events)
