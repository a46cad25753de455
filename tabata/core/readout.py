from __future__ import annotations

"""Read-only formatting of engine state for display."""

from tabata.core.phases import TimerPhase, TimerStatus
from tabata.core.protection import ProtectionConfig, ProtectionCycleState, ProtectionPhase
from tabata.core.workout import Workout


PHASE_LABELS = {
    TimerPhase.PREPARE: "PREPARE",
    TimerPhase.WORK: "WORK",
    TimerPhase.REST: "REST",
    TimerPhase.SET_REST: "SET REST",
    TimerPhase.FINISHED: "FINISHED!",
}

PROTECTION_LABELS = {
    ProtectionPhase.INACTIVE: "Inactive",
    ProtectionPhase.LISTEN: "Listening",
    ProtectionPhase.EAR_REST: "Ear Rest",
    ProtectionPhase.EXTENDED_BREAK: "Extended Break",
}


def format_clock(seconds: int) -> str:
    seconds = max(0, int(seconds))
    return f"{seconds // 60:02d}:{seconds % 60:02d}"


def format_protection_clock(seconds: int) -> str:
    seconds = max(0, int(seconds))
    return f"{seconds // 60}:{seconds % 60:02d}"


def phase_label(phase: TimerPhase) -> str:
    return PHASE_LABELS[phase]


def protection_label(phase: ProtectionPhase) -> str:
    return PROTECTION_LABELS[phase]


def phase_progress(status: TimerStatus) -> float:
    if status.total_phase_time <= 0:
        return 0.0
    return (status.total_phase_time - status.time_left_in_phase) / status.total_phase_time


def protection_progress(state: ProtectionCycleState, config: ProtectionConfig) -> float:
    total = config.duration_of(state.phase)
    if total <= 0:
        return 0.0
    return (total - state.time_left) / total


def round_display(status: TimerStatus, workout: Workout) -> str:
    if status.phase == TimerPhase.SET_REST:
        number = len(workout.rounds)
    else:
        number = status.current_round_index + 1
    return f"Round {number} / {len(workout.rounds)}"


def set_display(status: TimerStatus, workout: Workout) -> str:
    return f"Set {status.current_set} / {workout.sets}"


def next_up(status: TimerStatus, workout: Workout) -> str | None:
    """Hint for what follows the current phase, or None where nothing is shown."""
    if status.phase not in {TimerPhase.WORK, TimerPhase.REST}:
        return None
    index = status.current_round_index
    if status.phase == TimerPhase.WORK and workout.rounds[index].rest_time > 0:
        return "Next: Rest"
    if index < len(workout.rounds) - 1:
        return f"Next: {workout.rounds[index + 1].exercise_name}"
    if status.current_set == workout.sets:
        return "Next: Finish"
    return "Next: Set Rest"


def status_line(status: TimerStatus, workout: Workout) -> str:
    parts = [
        set_display(status, workout),
        round_display(status, workout),
        phase_label(status.phase),
        format_clock(status.time_left_in_phase),
    ]
    if status.phase == TimerPhase.WORK:
        parts.append(workout.rounds[status.current_round_index].exercise_name)
    return " · ".join(parts)
