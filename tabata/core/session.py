from __future__ import annotations

import logging
from typing import Callable

from PyQt6.QtCore import QObject, Qt

from tabata.core.ambient import AmbientVolumeMonitor, InputDevice
from tabata.core.cues import CueDispatcher, CueOutput, CueSerializer, LoggingCueOutput
from tabata.core.protection import ProtectionConfig, ProtectionCycleEngine, ProtectionCycleState, ProtectionPhase
from tabata.core.settings import AppSettings
from tabata.core.timer import WorkoutTimer
from tabata.core.workout import Workout


logger = logging.getLogger(__name__)


class WorkoutSession(QObject):
    """Wires the workout timer, the protection cycle and the cue layer together.

    The two engines never call each other; the session only starts and
    stops them side by side.
    """

    def __init__(
        self,
        output: CueOutput | None = None,
        settings: AppSettings | None = None,
        clock: Callable[[], float] | None = None,
        device_factory: Callable[[], InputDevice] | None = None,
        parent: QObject | None = None,
    ) -> None:
        super().__init__(parent)
        self._settings = settings or AppSettings()
        self.timer = WorkoutTimer(clock=clock, parent=self)
        self.protection = ProtectionCycleEngine(clock=clock, parent=self)
        self.serializer = CueSerializer(output or LoggingCueOutput(), clock=clock, parent=self)
        self.dispatcher = CueDispatcher(self.serializer, self._settings, parent=self)
        self.dispatcher.attach_workout(self.timer)
        self.dispatcher.attach_protection(self.protection)
        self.monitor: AmbientVolumeMonitor | None = None
        if device_factory is not None:
            self.monitor = AmbientVolumeMonitor(device_factory, parent=self)
        self._listen_key: tuple | None = None
        self.protection.state_changed.connect(self._on_protection_state)

    @property
    def settings(self) -> AppSettings:
        return self._settings

    def protection_state(self) -> ProtectionCycleState:
        return self.protection.get_state()

    def start_workout(self, workout: Workout, now: float | None = None) -> bool:
        if not self.timer.start(workout, now):
            return False
        if self._settings.sonic_mode_on and not self.protection.is_active:
            self.start_protection(now=now)
        return True

    def pause(self, now: float | None = None) -> None:
        self.timer.pause(now)

    def resume(self, now: float | None = None) -> None:
        self.timer.resume(now)

    def stop(self) -> None:
        self.timer.stop()
        self.stop_protection()
        self.serializer.clear()

    def start_protection(self, config: ProtectionConfig | None = None, now: float | None = None) -> bool:
        if config is None:
            try:
                config = self._settings.protection_config()
            except (TypeError, ValueError) as exc:
                logger.warning("Cannot start protection cycle: %s", exc)
                return False
        self.protection.start(config, now)
        return True

    def stop_protection(self) -> None:
        self.protection.stop()
        if self.monitor is not None:
            self.monitor.release()

    def apply_settings(self, settings: AppSettings) -> None:
        self._settings = settings
        self.dispatcher.apply_settings(settings)
        if not settings.sonic_mode_on and self.protection.is_active:
            self.stop_protection()
        elif settings.sonic_mode_on and self.timer.is_active and not self.protection.is_active:
            self.start_protection()

    def on_application_state_changed(self, state: Qt.ApplicationState) -> None:
        if state == Qt.ApplicationState.ApplicationActive:
            self.timer.host_resumed()
            self.protection.host_resumed()
        else:
            self.timer.host_suspended()
            self.protection.host_suspended()

    def _on_protection_state(self, state: ProtectionCycleState) -> None:
        listening = state.is_active and state.phase == ProtectionPhase.LISTEN
        key = (state.phase, state.cycle_count) if listening else None
        entered = key is not None and key != self._listen_key
        self._listen_key = key
        if self.monitor is None:
            return
        if not listening:
            self.monitor.release()
        elif entered:
            # once per listen phase; a failed open waits for the next one
            self.monitor.acquire()
