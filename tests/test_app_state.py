from dataclasses import replace

from tabata.core.app_state import AppState
from tabata.core.settings import SETTINGS_KEY, AppSettings
from tabata.data.storage import Storage


def test_load_defaults_from_empty_storage(tmp_path) -> None:
    storage = Storage(tmp_path / "app.db")
    storage.init_db()

    state = AppState()
    state.load_from_storage(storage)

    assert state.settings == AppSettings()
    assert state.current_workout.name == "My First Tabata"
    assert state.saved_workouts == []


def test_settings_persist(tmp_path) -> None:
    storage = Storage(tmp_path / "app.db")
    storage.init_db()
    state = AppState()
    state.load_from_storage(storage)
    seen = []
    state.settings_changed.connect(seen.append)

    state.update_settings(sonic_mode_on=True, sonic_mode_cycles=4, bogus=1)

    again = AppState()
    again.load_from_storage(storage)
    assert again.settings.sonic_mode_on is True
    assert again.settings.sonic_mode_cycles == 4
    assert again.settings.protection_config().cycles == 4
    assert seen and seen[-1].sonic_mode_cycles == 4


def test_unreadable_settings_fall_back_to_defaults(tmp_path) -> None:
    storage = Storage(tmp_path / "app.db")
    storage.init_db()
    storage.set_setting(SETTINGS_KEY, "not a dict")

    state = AppState()
    state.load_from_storage(storage)

    assert state.settings == AppSettings()


def test_save_new_then_update_existing(tmp_path) -> None:
    storage = Storage(tmp_path / "app.db")
    storage.init_db()
    state = AppState()
    state.load_from_storage(storage)
    default_id = state.current_workout.id

    saved = state.save_current_workout()
    assert saved.id != default_id
    assert [w.id for w in state.saved_workouts] == [saved.id]

    state.set_current_workout(replace(saved, name="Harder", sets=10))
    updated = state.save_current_workout()
    assert updated.id == saved.id
    assert [(w.name, w.sets) for w in storage.list_workouts()] == [("Harder", 10)]


def test_current_workout_survives_reload(tmp_path) -> None:
    storage = Storage(tmp_path / "app.db")
    storage.init_db()
    state = AppState()
    state.load_from_storage(storage)
    first = state.save_current_workout()
    state.set_current_workout(replace(first, id="other", name="Second"))
    second = state.save_current_workout()

    assert state.load_workout(first.id) is True
    assert state.load_workout("missing") is False

    again = AppState()
    again.load_from_storage(storage)
    assert again.current_workout == first
    assert [w.id for w in again.saved_workouts] == [first.id, second.id]


def test_delete_workout(tmp_path) -> None:
    storage = Storage(tmp_path / "app.db")
    storage.init_db()
    state = AppState()
    state.load_from_storage(storage)
    saved = state.save_current_workout()

    state.delete_workout(saved.id)

    assert state.saved_workouts == []
    assert storage.list_workouts() == []


def test_works_without_storage() -> None:
    state = AppState()
    saved = state.save_current_workout()
    state.set_current_workout(replace(saved, name="Edited"))
    state.save_current_workout()

    assert [w.name for w in state.saved_workouts] == ["Edited"]


def test_wrongly_typed_settings_are_converted_or_dropped(tmp_path) -> None:
    storage = Storage(tmp_path / "app.db")
    storage.init_db()
    storage.set_setting(
        SETTINGS_KEY,
        {"sonic_mode_on": True, "sonic_mode_cycles": "3", "ear_rest_seconds": "soon", "sound_on": "false", "voice_on": [1]},
    )

    state = AppState()
    state.load_from_storage(storage)

    assert state.settings.sonic_mode_on is True
    assert state.settings.sonic_mode_cycles == 3
    assert state.settings.ear_rest_seconds == AppSettings().ear_rest_seconds
    assert state.settings.sound_on is False
    assert state.settings.voice_on is True
    assert state.settings.protection_config().cycles == 3
