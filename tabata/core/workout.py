from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from typing import Any


class InvalidWorkoutError(ValueError):
    """Raised when a workout plan cannot be run."""


def new_id() -> str:
    return str(uuid.uuid4())


@dataclass(frozen=True)
class Round:
    exercise_name: str
    work_time: int
    rest_time: int
    id: str = field(default_factory=new_id)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "exercise_name": self.exercise_name,
            "work_time": self.work_time,
            "rest_time": self.rest_time,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Round:
        if not isinstance(data, dict):
            raise InvalidWorkoutError(f"Round payload must be an object, got {type(data).__name__}")
        try:
            return cls(
                id=str(data.get("id") or new_id()),
                exercise_name=str(data["exercise_name"]),
                work_time=int(data["work_time"]),
                rest_time=int(data["rest_time"]),
            )
        except (KeyError, TypeError, ValueError, OverflowError) as exc:
            raise InvalidWorkoutError(f"Malformed round: {data!r}") from exc


@dataclass(frozen=True)
class Workout:
    """Sets x ordered rounds. Frozen, so a running timer can hold it as a snapshot."""

    name: str
    sets: int
    set_rest_time: int
    rounds: tuple[Round, ...]
    id: str = field(default_factory=new_id)

    def __post_init__(self) -> None:
        if not isinstance(self.rounds, tuple):
            object.__setattr__(self, "rounds", tuple(self.rounds))

    def with_id(self, workout_id: str) -> Workout:
        return replace(self, id=workout_id)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "sets": self.sets,
            "set_rest_time": self.set_rest_time,
            "rounds": [r.to_dict() for r in self.rounds],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Workout:
        if not isinstance(data, dict):
            raise InvalidWorkoutError(f"Workout payload must be an object, got {type(data).__name__}")
        raw_rounds = data.get("rounds")
        if not isinstance(raw_rounds, list):
            raise InvalidWorkoutError("Workout payload has no round list")
        try:
            return cls(
                id=str(data.get("id") or new_id()),
                name=str(data.get("name", "")),
                sets=int(data["sets"]),
                set_rest_time=int(data["set_rest_time"]),
                rounds=tuple(Round.from_dict(r) for r in raw_rounds),
            )
        except InvalidWorkoutError:
            raise
        except (KeyError, TypeError, ValueError, OverflowError) as exc:
            raise InvalidWorkoutError(f"Malformed workout: {exc}") from exc


def validate_workout(workout: Workout) -> None:
    """Reject plans the phase machine cannot run; raises InvalidWorkoutError."""
    if workout.sets < 1:
        raise InvalidWorkoutError("Workout needs at least one set")
    if not workout.rounds:
        raise InvalidWorkoutError("Workout needs at least one round")
    if workout.set_rest_time < 0:
        raise InvalidWorkoutError("Set rest time cannot be negative")
    for index, rnd in enumerate(workout.rounds):
        if rnd.work_time < 0 or rnd.rest_time < 0:
            raise InvalidWorkoutError(f"Round {index + 1} has a negative duration")


def default_workout() -> Workout:
    return Workout(
        name="My First Tabata",
        sets=8,
        set_rest_time=60,
        rounds=(
            Round("Push Ups", 20, 10),
            Round("Squats", 20, 10),
            Round("Burpees", 20, 10),
            Round("Jumping Jacks", 20, 10),
        ),
    )
