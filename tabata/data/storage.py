from __future__ import annotations

"""SQLite-слой хранения: JSON-настройки и сохраненные тренировки."""

import json
import sqlite3
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, Iterator

from tabata.core.workout import InvalidWorkoutError, Workout


SCHEMA_VERSION = 1


class Storage:
    """Инкапсулирует подключение к SQLite и транзакционные операции."""
    def __init__(self, db_path: str | Path) -> None:
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON;")
        try:
            conn.execute("PRAGMA journal_mode = WAL;")
        except sqlite3.DatabaseError:
            pass
        return conn

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        conn = self._connect()
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def init_db(self) -> None:
        """Создает таблицы приложения при первом запуске."""
        with self._transaction() as conn:
            conn.execute("CREATE TABLE IF NOT EXISTS schema_version (version INTEGER NOT NULL)")
            row = conn.execute("SELECT version FROM schema_version LIMIT 1").fetchone()
            if not row:
                conn.execute("INSERT INTO schema_version(version) VALUES (?)", (SCHEMA_VERSION,))
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS settings(
                    key TEXT PRIMARY KEY,
                    value TEXT
                )
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS workouts(
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    payload TEXT NOT NULL,
                    sort_order INTEGER NOT NULL DEFAULT 0,
                    updated_at TEXT NOT NULL
                )
                """
            )

    def get_setting(self, key: str, default: Any = None) -> Any:
        with self._connect() as conn:
            row = conn.execute("SELECT value FROM settings WHERE key = ?", (key,)).fetchone()
        if not row:
            return default
        raw = row["value"]
        try:
            return json.loads(raw)
        except (TypeError, json.JSONDecodeError):
            return raw

    def set_setting(self, key: str, value: Any) -> None:
        payload = json.dumps(value)
        with self._transaction() as conn:
            conn.execute(
                "INSERT INTO settings(key, value) VALUES(?, ?) ON CONFLICT(key) DO UPDATE SET value=excluded.value",
                (key, payload),
            )

    def save_workout(self, workout: Workout) -> None:
        """Вставляет или обновляет тренировку; новая получает место в конце списка."""
        payload = json.dumps(workout.to_dict())
        updated_at = datetime.now().isoformat(timespec="seconds")
        with self._transaction() as conn:
            existing = conn.execute("SELECT id FROM workouts WHERE id = ?", (workout.id,)).fetchone()
            if existing:
                conn.execute(
                    "UPDATE workouts SET name = ?, payload = ?, updated_at = ? WHERE id = ?",
                    (workout.name, payload, updated_at, workout.id),
                )
                return
            next_order_row = conn.execute(
                "SELECT COALESCE(MAX(sort_order), -1) + 1 AS next_order FROM workouts"
            ).fetchone()
            conn.execute(
                "INSERT INTO workouts(id, name, payload, sort_order, updated_at) VALUES (?, ?, ?, ?, ?)",
                (workout.id, workout.name, payload, int(next_order_row["next_order"]), updated_at),
            )

    def get_workout(self, workout_id: str) -> Workout | None:
        with self._connect() as conn:
            row = conn.execute("SELECT payload FROM workouts WHERE id = ?", (workout_id,)).fetchone()
        if not row:
            return None
        return Workout.from_dict(json.loads(row["payload"]))

    def list_workouts(self) -> list[Workout]:
        """Возвращает тренировки в порядке сохранения; битые записи пропускаются."""
        with self._connect() as conn:
            rows = conn.execute("SELECT id, payload FROM workouts ORDER BY sort_order ASC").fetchall()
        workouts: list[Workout] = []
        for row in rows:
            try:
                workouts.append(Workout.from_dict(json.loads(row["payload"])))
            except (json.JSONDecodeError, InvalidWorkoutError):
                continue
        return workouts

    def delete_workout(self, workout_id: str) -> None:
        with self._transaction() as conn:
            conn.execute("DELETE FROM workouts WHERE id = ?", (workout_id,))
