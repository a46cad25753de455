from __future__ import annotations

import logging
from typing import Any

from PyQt6.QtCore import QObject, pyqtSignal

from tabata.core.settings import SETTINGS_KEY, AppSettings
from tabata.core.workout import Workout, default_workout, new_id
from tabata.data.storage import Storage


logger = logging.getLogger(__name__)

CURRENT_WORKOUT_KEY = "current_workout_id"


class AppState(QObject):
    settings_changed = pyqtSignal(object)
    workouts_changed = pyqtSignal()
    current_workout_changed = pyqtSignal(object)

    def __init__(self) -> None:
        super().__init__()
        self.settings = AppSettings()
        self.current_workout: Workout = default_workout()
        self.saved_workouts: list[Workout] = []
        self._storage: Storage | None = None

    def load_from_storage(self, storage: Storage) -> None:
        self._storage = storage
        self.settings = AppSettings.from_dict(storage.get_setting(SETTINGS_KEY, {}))
        self.saved_workouts = storage.list_workouts()
        current_id = storage.get_setting(CURRENT_WORKOUT_KEY)
        for workout in self.saved_workouts:
            if workout.id == current_id:
                self.current_workout = workout
                break
        self.settings_changed.emit(self.settings)
        self.workouts_changed.emit()
        self.current_workout_changed.emit(self.current_workout)

    def update_settings(self, **changes: Any) -> AppSettings:
        self.settings = self.settings.update(**changes)
        if self._storage:
            self._storage.set_setting(SETTINGS_KEY, self.settings.to_dict())
        self.settings_changed.emit(self.settings)
        return self.settings

    def set_current_workout(self, workout: Workout) -> None:
        self.current_workout = workout
        self.current_workout_changed.emit(workout)

    def save_current_workout(self) -> Workout:
        """Overwrite the saved copy with the same id, or store a new copy under a fresh id."""
        workout = self.current_workout
        if not any(w.id == workout.id for w in self.saved_workouts):
            workout = workout.with_id(new_id())
        if self._storage:
            self._storage.save_workout(workout)
            self._storage.set_setting(CURRENT_WORKOUT_KEY, workout.id)
        self._refresh_saved(workout)
        self.set_current_workout(workout)
        logger.info("Saved workout %r", workout.name)
        return workout

    def load_workout(self, workout_id: str) -> bool:
        for workout in self.saved_workouts:
            if workout.id == workout_id:
                if self._storage:
                    self._storage.set_setting(CURRENT_WORKOUT_KEY, workout_id)
                self.set_current_workout(workout)
                return True
        return False

    def delete_workout(self, workout_id: str) -> None:
        if self._storage:
            self._storage.delete_workout(workout_id)
        self.saved_workouts = [w for w in self.saved_workouts if w.id != workout_id]
        self.workouts_changed.emit()

    def _refresh_saved(self, saved: Workout) -> None:
        if self._storage:
            self.saved_workouts = self._storage.list_workouts()
        elif any(w.id == saved.id for w in self.saved_workouts):
            self.saved_workouts = [saved if w.id == saved.id else w for w in self.saved_workouts]
        else:
            self.saved_workouts = self.saved_workouts + [saved]
        self.workouts_changed.emit()
