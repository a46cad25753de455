from __future__ import annotations

"""Точка входа Tabata Timer.

Модуль подключает хранилище, загружает настройки и текущую тренировку
и прогоняет ее в цикле событий Qt, выводя сигналы и состояние в лог.
"""

import logging
import os
import sys
from pathlib import Path

from PyQt6.QtCore import QCoreApplication, QTimer

from tabata.core.app_state import AppState
from tabata.core.phases import TimerStatus
from tabata.core.readout import status_line
from tabata.core.session import WorkoutSession
from tabata.data.storage import Storage


logger = logging.getLogger("tabata")

FINISH_LINGER_MS = 3000


def default_db_path() -> Path:
    """Возвращает путь к SQLite-файлу: `$TABATA_DB` или `tabata.db` в текущей директории."""
    env_path = os.environ.get("TABATA_DB")
    if env_path:
        return Path(env_path)
    return Path.cwd() / "tabata.db"


def main() -> int:
    """Создает зависимости приложения и запускает цикл событий до конца тренировки."""
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    app = QCoreApplication(sys.argv)

    storage = Storage(default_db_path())
    storage.init_db()

    app_state = AppState()
    app_state.load_from_storage(storage)

    session = WorkoutSession(settings=app_state.settings)
    app_state.settings_changed.connect(session.apply_settings)
    workout = app_state.current_workout

    def on_status(status: TimerStatus) -> None:
        if session.timer.workout is not None:
            logger.info(status_line(status, session.timer.workout))
        if status.workout_completed:
            QTimer.singleShot(FINISH_LINGER_MS, finish)

    def finish() -> None:
        session.stop()
        app.quit()

    session.timer.status_changed.connect(on_status)
    if not session.start_workout(workout):
        logger.error("Workout %r cannot be started", workout.name)
        return 1
    return app.exec()


if __name__ == "__main__":
    raise SystemExit(main())
