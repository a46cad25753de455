from __future__ import annotations

import logging
from typing import Callable, Protocol, Sequence

from PyQt6.QtCore import QObject, QTimer, pyqtSignal


logger = logging.getLogger(__name__)

FRAME_INTERVAL_MS = 16


class InputDevice(Protocol):
    def read_levels(self) -> Sequence[int]:
        """Current frequency-bin magnitudes, each 0..255."""
        ...

    def close(self) -> None: ...


def volume_percent(levels: Sequence[int]) -> float:
    if not levels:
        return 0.0
    average = sum(levels) / len(levels)
    return min(100.0, max(0.0, average / 255 * 100))


class AmbientVolumeMonitor(QObject):
    """Samples an input device at frame rate, independent of the countdown engines.

    ``acquire`` and ``release`` may be called any number of times; the device
    is opened at most once per acquisition and always closed on release.
    """

    volume_changed = pyqtSignal(float)

    def __init__(
        self,
        device_factory: Callable[[], InputDevice],
        interval_ms: int = FRAME_INTERVAL_MS,
        parent: QObject | None = None,
    ) -> None:
        super().__init__(parent)
        self._device_factory = device_factory
        self._device: InputDevice | None = None
        self._volume = 0.0
        self._timer = QTimer(self)
        self._timer.setInterval(interval_ms)
        self._timer.timeout.connect(self.sample)

    @property
    def is_acquired(self) -> bool:
        return self._device is not None

    @property
    def volume(self) -> float:
        return self._volume

    def acquire(self) -> bool:
        if self._device is not None:
            return True
        try:
            self._device = self._device_factory()
        except Exception:
            logger.warning("Microphone unavailable; ambient volume disabled", exc_info=True)
            self._device = None
            return False
        self._timer.start()
        logger.debug("Ambient volume sampling started")
        return True

    def release(self) -> None:
        self._timer.stop()
        device, self._device = self._device, None
        self._volume = 0.0
        if device is None:
            return
        try:
            device.close()
        except Exception:
            logger.warning("Failed to close input device", exc_info=True)
        logger.debug("Ambient volume sampling stopped")

    def sample(self) -> float:
        if self._device is None:
            return self._volume
        try:
            levels = self._device.read_levels()
        except Exception:
            logger.warning("Input device read failed; releasing it", exc_info=True)
            self.release()
            return self._volume
        self._volume = volume_percent(levels)
        self.volume_changed.emit(self._volume)
        return self._volume
