"""Trailing-edge debouncing.

A ``Debouncer`` swallows bursts of triggers and runs its callback once,
after the triggers have stopped for ``interval`` seconds. Each trigger
cancels the pending timer and schedules a fresh one.
"""

import logging
import threading
from collections.abc import Callable
from typing import Any, Protocol

logger = logging.getLogger(__name__)


class Timer(Protocol):
    """The subset of ``threading.Timer`` the debouncer relies on."""

    def start(self) -> None: ...

    def cancel(self) -> None: ...


TimerFactory = Callable[[float, Callable[[], None]], Timer]


def _thread_timer(interval: float, function: Callable[[], None]) -> Timer:
    timer = threading.Timer(interval, function)
    timer.daemon = True
    timer.name = "Debounce"
    return timer


class Debouncer:
    """Run *callback* once per burst of ``trigger()`` calls.

    Parameters
    ----------
    interval : float
        Quiet period, in seconds, that must elapse after the last trigger.
    callback : callable
        Invoked with the arguments of the last trigger.
    timer_factory : callable, optional
        Builds the timer for one deadline; defaults to a daemon
        ``threading.Timer``.
    """

    def __init__(
        self,
        interval: float,
        callback: Callable[..., None],
        timer_factory: TimerFactory | None = None,
    ):
        self.interval = interval
        self._callback = callback
        self._timer_factory = timer_factory or _thread_timer
        self._timer: Timer | None = None
        self._args: tuple[Any, ...] = ()
        self._generation = 0
        self._lock = threading.Lock()

    @property
    def pending(self) -> bool:
        """Return whether a deadline is currently scheduled."""
        with self._lock:
            return self._timer is not None

    def trigger(self, *args: Any) -> None:
        """Reset the deadline; the callback fires once it is reached."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._generation += 1
            generation = self._generation
            self._args = args
            self._timer = self._timer_factory(
                self.interval, lambda: self._fire(generation)
            )
            timer = self._timer
        timer.start()

    def cancel(self) -> None:
        """Drop any pending deadline without running the callback."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._timer = None
            self._generation += 1

    def _fire(self, generation: int) -> None:
        with self._lock:
            # A timer that lost the race with trigger()/cancel() is stale
            if generation != self._generation or self._timer is None:
                return
            self._timer = None
            args = self._args
        try:
            self._callback(*args)
        except Exception:
            logger.exception("Error in debounced callback")
