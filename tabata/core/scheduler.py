from __future__ import annotations

import logging
import math
import time
from collections import deque
from typing import Callable, Generic, Iterable, TypeVar

from PyQt6.QtCore import QObject, QTimer, pyqtSignal


logger = logging.getLogger(__name__)

POLL_INTERVAL_MS = 250

E = TypeVar("E")


def wall_clock_ms() -> float:
    return time.time() * 1000.0


class TransitionEventQueue(Generic[E]):
    """FIFO of transition events waiting for the side-effect consumers."""

    def __init__(self) -> None:
        self._events: deque[E] = deque()

    def push(self, events: Iterable[E]) -> None:
        self._events.extend(events)

    def drain(self) -> list[E]:
        drained = list(self._events)
        self._events.clear()
        return drained

    def clear(self) -> None:
        self._events.clear()

    def __len__(self) -> int:
        return len(self._events)


class TimerScheduler(QObject):
    """Polls a clock and feeds whole elapsed seconds to the engine's catch-up step.

    Correctness comes from measuring real elapsed time, not from counting
    polls: a throttled or paused poll just produces a larger delta on the
    next one. Sub-second remainders are carried between polls.
    Subclasses implement ``_catch_up``.
    """

    transitions_ready = pyqtSignal()
    ticked = pyqtSignal()

    def __init__(
        self,
        clock: Callable[[], float] | None = None,
        interval_ms: int = POLL_INTERVAL_MS,
        parent: QObject | None = None,
    ) -> None:
        super().__init__(parent)
        self._clock = clock or wall_clock_ms
        self._last_observed_ms: float | None = None
        self._leftover_ms = 0.0
        self._poll_timer = QTimer(self)
        self._poll_timer.setInterval(interval_ms)
        self._poll_timer.timeout.connect(self.poll)

    @property
    def is_polling(self) -> bool:
        return self._poll_timer.isActive()

    @property
    def leftover_ms(self) -> float:
        return self._leftover_ms

    def now(self) -> float:
        return self._clock()

    def poll(self, now: float | None = None) -> int:
        """Charge the time since the last observation; returns whole seconds applied."""
        if self._last_observed_ms is None:
            return 0
        if now is None:
            now = self._clock()
        if not math.isfinite(now):
            logger.warning("Ignoring poll with non-finite clock reading %r", now)
            return 0
        delta_ms = now - self._last_observed_ms + self._leftover_ms
        self._last_observed_ms = now
        if not math.isfinite(delta_ms) or delta_ms < 0:
            logger.warning("Clock went backwards by %.0f ms; treating poll as zero elapsed", -delta_ms)
            self._leftover_ms = 0.0
            return 0
        elapsed_seconds = int(delta_ms // 1000)
        self._leftover_ms = delta_ms - elapsed_seconds * 1000
        if elapsed_seconds > 0:
            if self._catch_up(elapsed_seconds, now):
                self.transitions_ready.emit()
            self.ticked.emit()
        return elapsed_seconds

    def host_suspended(self, now: float | None = None) -> None:
        """Host went to the background: settle time up to now and keep polling."""
        if self._last_observed_ms is None:
            return
        self.poll(now)

    def host_resumed(self, now: float | None = None) -> None:
        """Host is active again: resynchronize without waiting for the next tick."""
        if self._last_observed_ms is None:
            return
        self.poll(now)

    def _begin(self, now: float | None = None) -> None:
        if now is None:
            now = self._clock()
        self._last_observed_ms = now
        self._leftover_ms = 0.0
        self._poll_timer.start()

    def halt(self) -> None:
        self._poll_timer.stop()
        self._last_observed_ms = None
        self._leftover_ms = 0.0

    def _catch_up(self, elapsed_seconds: int, now: float) -> bool:
        """Advance the engine; return True when events were queued."""
        raise NotImplementedError
