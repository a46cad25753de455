from __future__ import annotations

import pytest
from PyQt6.QtCore import QCoreApplication

from tabata.core.workout import Round, Workout


class FakeClock:
    def __init__(self, now: float = 0.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture(scope="session", autouse=True)
def qt_app() -> QCoreApplication:
    app = QCoreApplication.instance()
    if app is None:
        app = QCoreApplication([])
    return app


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def single_round_workout() -> Workout:
    return Workout(name="Solo", sets=1, set_rest_time=0, rounds=(Round("Plank", 20, 0),))


@pytest.fixture
def two_by_two_workout() -> Workout:
    return Workout(
        name="Two by two",
        sets=2,
        set_rest_time=30,
        rounds=(Round("Push Ups", 10, 5), Round("Squats", 10, 5)),
    )
