"""Trailing-edge debouncer: collapse a burst of triggers into one delayed call."""

from __future__ import annotations
import logging
import threading
import time
from typing import Callable, Optional, Protocol

logger = logging.getLogger(__name__)


class TimerLike(Protocol):
    daemon: bool

    def start(self) -> None: ...

    def cancel(self) -> None: ...


TimerFactory = Callable[[float, Callable[[], None]], TimerLike]


class Debouncer:
    """
    trigger() only moves the deadline while a timer is pending; when that timer
    fires early it re-arms itself for the remaining time. A burst of triggers
    (one per streamed token) therefore costs one timer thread per delay window,
    and the call runs once, `delay` seconds after the last trigger.
    cancel() is the teardown path.
    """

    def __init__(
        self,
        delay: float,
        fn: Callable[[], None],
        *,
        timer_factory: TimerFactory = threading.Timer,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.delay = delay
        self._fn = fn
        self._timer_factory = timer_factory
        self._clock = clock
        self._timer: Optional[TimerLike] = None
        self._deadline = 0.0
        self._generation = 0
        self._lock = threading.Lock()

    @property
    def pending(self) -> bool:
        return self._timer is not None

    def trigger(self) -> None:
        with self._lock:
            self._deadline = self._clock() + self.delay
            if self._timer is not None:
                return
            timer = self._schedule(self.delay)
        timer.start()

    def cancel(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._timer = None
            self._generation += 1

    def _schedule(self, delay: float) -> TimerLike:
        # Caller holds self._lock.
        self._generation += 1
        generation = self._generation
        timer = self._timer_factory(delay, lambda: self._fire(generation))
        timer.daemon = True
        self._timer = timer
        return timer

    def _fire(self, generation: int) -> None:
        with self._lock:
            # A timer that lost the race with cancel() must not run.
            if generation != self._generation:
                return
            remaining = self._deadline - self._clock()
            if remaining > 0:
                rearmed: Optional[TimerLike] = self._schedule(remaining)
            else:
                rearmed = None
                self._timer = None
        if rearmed is not None:
            rearmed.start()
            return
        try:
            self._fn()
        except Exception:
            logger.exception("Debounced call failed")
