from __future__ import annotations

"""Turns drained transition events into announcements, tones and notifications.

Collaborators are narrow I/O wrappers; any failure inside them is logged and
dropped so that it never reaches the timer engines.
"""

import logging
from collections import deque
from dataclasses import dataclass, replace
from typing import Callable, Protocol

from PyQt6.QtCore import QObject, QTimer, pyqtSignal

from tabata.core.advancer import TimerTransitionEvent
from tabata.core.phases import TimerPhase
from tabata.core.protection import ProtectionCycleEngine, ProtectionPhase, ProtectionTransitionEvent
from tabata.core.scheduler import wall_clock_ms
from tabata.core.settings import AppSettings
from tabata.core.timer import RunState, WorkoutTimer
from tabata.core.workout import Workout


logger = logging.getLogger(__name__)

CUE_GAP_MS = 350
COUNTDOWN_SECONDS = 3


class CueOutput(Protocol):
    def play_tone(self, frequency_hz: float, duration_seconds: float) -> None: ...

    def announce(self, text: str) -> None: ...

    def notify(self, title: str, body: str) -> None: ...


class LoggingCueOutput:
    """Headless collaborator: writes every cue to the log."""

    def play_tone(self, frequency_hz: float, duration_seconds: float) -> None:
        logger.info("tone %.0f Hz for %.1fs", frequency_hz, duration_seconds)

    def announce(self, text: str) -> None:
        logger.info("announce: %s", text)

    def notify(self, title: str, body: str) -> None:
        logger.info("notify: %s | %s", title, body)


@dataclass(frozen=True)
class Tone:
    frequency_hz: float
    duration_seconds: float


@dataclass(frozen=True)
class Cue:
    announcement: str | None = None
    tone: Tone | None = None
    notification: tuple[str, str] | None = None

    @property
    def is_empty(self) -> bool:
        return self.announcement is None and self.tone is None and self.notification is None


PHASE_TONES = {
    TimerPhase.PREPARE: Tone(600, 0.2),
    TimerPhase.WORK: Tone(800, 0.2),
    TimerPhase.REST: Tone(400, 0.2),
    TimerPhase.SET_REST: Tone(300, 0.2),
}
COUNTDOWN_TONE = Tone(523, 0.1)
# C5 E5 G5 C6
COMPLETION_TONES = (Tone(523, 0.2), Tone(659, 0.2), Tone(784, 0.2), Tone(1047, 0.4))

PROTECTION_TONES = {
    ProtectionPhase.LISTEN: Tone(500, 0.5),
    ProtectionPhase.EAR_REST: Tone(700, 1.0),
    ProtectionPhase.EXTENDED_BREAK: Tone(900, 2.0),
}


def announcement_for(event: TimerTransitionEvent, workout: Workout) -> str:
    if event.phase == TimerPhase.PREPARE:
        return "PREPARE"
    if event.phase == TimerPhase.WORK:
        return workout.rounds[event.round_index].exercise_name
    if event.phase == TimerPhase.REST:
        return "REST"
    if event.phase == TimerPhase.SET_REST:
        return "SET REST"
    return "FINISHED"


def notification_body(event: TimerTransitionEvent, workout: Workout) -> str:
    last_round = event.round_index == len(workout.rounds) - 1
    final_set = event.set == workout.sets
    if event.phase == TimerPhase.PREPARE:
        return f"The {workout.name} workout is about to start."
    if event.phase == TimerPhase.WORK:
        if workout.rounds[event.round_index].rest_time > 0:
            return "Next: Rest"
        if not last_round:
            return f"Next: {workout.rounds[event.round_index + 1].exercise_name}"
        return "Next: Finish" if final_set else "Next: Set Rest"
    if event.phase == TimerPhase.REST:
        if not last_round:
            return f"Next: {workout.rounds[event.round_index + 1].exercise_name}"
        return "Next: Finish" if final_set else "Next: Set Rest"
    if event.phase == TimerPhase.SET_REST:
        return f"Next: {workout.rounds[0].exercise_name}"
    return "Great job completing your workout."


def workout_cues(event: TimerTransitionEvent, workout: Workout) -> list[Cue]:
    text = announcement_for(event, workout)
    if event.phase == TimerPhase.FINISHED:
        first, *rest = COMPLETION_TONES
        return [Cue(announcement=text, tone=first)] + [Cue(tone=tone) for tone in rest]
    return [Cue(announcement=text, tone=PHASE_TONES[event.phase], notification=(text, notification_body(event, workout)))]


def protection_cues(event: ProtectionTransitionEvent, cycles: int) -> list[Cue]:
    tone = PROTECTION_TONES.get(event.phase)
    if event.phase == ProtectionPhase.LISTEN:
        return [
            Cue(
                announcement=(
                    f"Sonic Mode listening phase {event.cycle_count} of {cycles}. "
                    "Keep volume under 60 percent for hearing safety."
                ),
                tone=tone,
                notification=(f"Sonic Mode: Listening Phase {event.cycle_count}/{cycles}", "Keep volume under 60% (~80 dBA)"),
            )
        ]
    if event.phase == ProtectionPhase.EAR_REST:
        return [
            Cue(
                announcement="Ear break. Remove earbuds and let your ears rest.",
                tone=tone,
                notification=("Ear Break", "Remove earbuds and rest your ears"),
            )
        ]
    if event.phase == ProtectionPhase.EXTENDED_BREAK:
        return [
            Cue(
                announcement="Great job! Take a longer break now to protect your hearing health.",
                tone=tone,
                notification=("Great job!", "Take a longer break now to protect your hearing health."),
            )
        ]
    return []


class CueSerializer(QObject):
    """Plays cues one at a time, at least ``gap_ms`` apart, so simultaneous cues stay audible."""

    cue_played = pyqtSignal(object)

    def __init__(
        self,
        output: CueOutput,
        gap_ms: int = CUE_GAP_MS,
        clock: Callable[[], float] | None = None,
        parent: QObject | None = None,
    ) -> None:
        super().__init__(parent)
        self._output = output
        self._gap_ms = gap_ms
        self._clock = clock or wall_clock_ms
        self._pending: deque[Cue] = deque()
        self._next_slot_ms = float("-inf")
        self._timer = QTimer(self)
        self._timer.setSingleShot(True)
        self._timer.timeout.connect(self.flush)

    @property
    def pending(self) -> int:
        return len(self._pending)

    def submit(self, cue: Cue, now: float | None = None) -> None:
        if cue.is_empty:
            return
        self._pending.append(cue)
        self.flush(now)

    def flush(self, now: float | None = None) -> int:
        if now is None:
            now = self._clock()
        played = 0
        while self._pending and now >= self._next_slot_ms:
            cue = self._pending.popleft()
            self._play(cue)
            self._next_slot_ms = now + self._gap_ms
            played += 1
        if self._pending:
            self._timer.start(max(0, int(self._next_slot_ms - now)))
        return played

    def clear(self) -> None:
        self._pending.clear()
        self._timer.stop()

    def _play(self, cue: Cue) -> None:
        if cue.tone is not None:
            self._call("play_tone", self._output.play_tone, cue.tone.frequency_hz, cue.tone.duration_seconds)
        if cue.announcement is not None:
            self._call("announce", self._output.announce, cue.announcement)
        if cue.notification is not None:
            self._call("notify", self._output.notify, *cue.notification)
        self.cue_played.emit(cue)

    def _call(self, name: str, func: Callable[..., None], *args: object) -> None:
        try:
            func(*args)
        except Exception:
            logger.warning("Cue collaborator %s failed; continuing without it", name, exc_info=True)


class CueDispatcher(QObject):
    """Replays queued transition events in order and drives the final countdown beeps."""

    def __init__(
        self,
        serializer: CueSerializer,
        settings: AppSettings | None = None,
        parent: QObject | None = None,
    ) -> None:
        super().__init__(parent)
        self._serializer = serializer
        self._settings = settings or AppSettings()
        self._workout_timer: WorkoutTimer | None = None
        self._protection: ProtectionCycleEngine | None = None
        self._last_workout_countdown: tuple | None = None
        self._last_protection_countdown: tuple | None = None

    @property
    def settings(self) -> AppSettings:
        return self._settings

    def apply_settings(self, settings: AppSettings) -> None:
        self._settings = settings

    def attach_workout(self, timer: WorkoutTimer) -> None:
        self._workout_timer = timer
        timer.transitions_ready.connect(self.replay_workout_events)
        timer.ticked.connect(self._on_workout_tick)

    def attach_protection(self, engine: ProtectionCycleEngine) -> None:
        self._protection = engine
        engine.transitions_ready.connect(self.replay_protection_events)
        engine.ticked.connect(self._on_protection_tick)

    def replay_workout_events(self) -> int:
        timer = self._workout_timer
        if timer is None:
            return 0
        events = timer.drain_events()
        if not events:
            return 0
        if timer.is_paused or timer.workout is None:
            logger.debug("Discarding %d workout events while paused", len(events))
            return 0
        self._last_workout_countdown = None
        for event in events:
            for cue in workout_cues(event, timer.workout):
                self._submit(cue)
        return len(events)

    def replay_protection_events(self) -> int:
        engine = self._protection
        if engine is None:
            return 0
        events = engine.drain_events()
        if events:
            self._last_protection_countdown = None
        for event in events:
            for cue in protection_cues(event, engine.config.cycles):
                self._submit(cue)
        return len(events)

    def _on_workout_tick(self) -> None:
        timer = self._workout_timer
        if timer is None or timer.run_state != RunState.RUNNING:
            return
        status = timer.get_status()
        key = (status.phase, status.current_set, status.current_round_index, status.time_left_in_phase)
        if 0 < status.time_left_in_phase <= COUNTDOWN_SECONDS and key != self._last_workout_countdown:
            self._last_workout_countdown = key
            self._submit(Cue(tone=COUNTDOWN_TONE))

    def _on_protection_tick(self) -> None:
        engine = self._protection
        if engine is None or not engine.is_active:
            return
        state = engine.get_state()
        key = (state.phase, state.cycle_count, state.time_left)
        if 0 < state.time_left <= COUNTDOWN_SECONDS and key != self._last_protection_countdown:
            self._last_protection_countdown = key
            self._submit(Cue(tone=COUNTDOWN_TONE))

    def _submit(self, cue: Cue) -> None:
        gated = replace(
            cue,
            tone=cue.tone if self._settings.sound_on else None,
            announcement=cue.announcement if self._settings.voice_on else None,
            notification=cue.notification if self._settings.notifications_on else None,
        )
        self._serializer.submit(gated)
