"""Auto-Increment Scheduler - Repeating timer driving the increment path.

Each tick re-arms a one-shot timer, so a tick never overlaps the next one.
Ticks and stop() share the session's mutation lock, and every armed timer
carries the generation it was started under: once stop() returns, a timer
that is already due sees a stale generation and does nothing.
"""

import logging
import threading
from functools import partial
from typing import Callable

from ..core.models import MIN_AUTO_INTERVAL_MS, AutoIncrementConfig
from ..core.progress import clamp_interval


logger = logging.getLogger(__name__)

TimerFactory = Callable[[float, Callable[[], None]], threading.Timer]


class AutoIncrementScheduler:
    """Fires ``tick`` every interval until stopped.

    Args:
        tick: Callback run on every period (the session's increment)
        lock: Lock serializing ticks with every other session mutation
        min_interval_ms: Floor applied to requested intervals
        timer_factory: Creates one-shot timers; threading.Timer by default
    """

    def __init__(
        self,
        tick: Callable[[], object],
        lock=None,
        min_interval_ms: int = MIN_AUTO_INTERVAL_MS,
        timer_factory: TimerFactory = threading.Timer,
    ) -> None:
        self._tick = tick
        self._lock = lock or threading.RLock()
        self.min_interval_ms = min_interval_ms
        self._timer_factory = timer_factory
        self._timer: threading.Timer | None = None
        self._generation = 0
        self._interval_ms = min_interval_ms
        self._active = False

    @property
    def active(self) -> bool:
        return self._active

    @property
    def interval_ms(self) -> int:
        return self._interval_ms

    @property
    def config(self) -> AutoIncrementConfig:
        return AutoIncrementConfig(interval_ms=self._interval_ms, active=self._active)

    def start(self, interval_ms: int) -> int:
        """Start ticking.

        Starting while already active replaces the running timer, so there is
        never more than one live timer.

        Args:
            interval_ms: Requested period; raised to ``min_interval_ms`` if lower

        Returns:
            The effective interval in milliseconds
        """
        with self._lock:
            if self._active:
                self._cancel_locked()
            self._interval_ms = clamp_interval(interval_ms, self.min_interval_ms)
            self._generation += 1
            self._active = True
            self._arm(self._generation)
            logger.info("Auto-increment started every %d ms", self._interval_ms)
            return self._interval_ms

    def stop(self) -> bool:
        """Stop ticking. Safe to call when inactive.

        Returns:
            True if a running timer was stopped
        """
        with self._lock:
            if not self._active:
                return False
            self._cancel_locked()
            logger.info("Auto-increment stopped")
            return True

    def _cancel_locked(self) -> None:
        self._generation += 1
        self._active = False
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _arm(self, generation: int) -> None:
        timer = self._timer_factory(self._interval_ms / 1000, partial(self._fire, generation))
        timer.daemon = True
        self._timer = timer
        timer.start()

    def _fire(self, generation: int) -> None:
        with self._lock:
            if generation != self._generation:
                return
            try:
                self._tick()
            except Exception:
                logger.exception("Auto-increment tick failed; stopping")
                self._cancel_locked()
                return
            self._arm(generation)
