"""Cancellable once-per-interval timer used to drive attempt countdowns."""

from __future__ import annotations

import logging
from threading import Event, Lock, Thread
from typing import Callable, Protocol

from mentor_quiz.constants.quiz_constants import TICK_INTERVAL_SECONDS

logger = logging.getLogger(__name__)


class TimerHandle(Protocol):
    """Anything a session can cancel when it stops needing ticks."""

    def cancel(self) -> None: ...


class CountdownTimer:
    """Calls ``on_tick`` every ``interval`` seconds until cancelled.

    The callback runs on a daemon thread. ``cancel()`` is idempotent and never
    blocks, so it is safe to call while holding a lock the callback also
    takes. A tick already past its wait when ``cancel()`` runs may still be
    delivered; owners must ignore ticks once they no longer need them.
    """

    def __init__(
        self,
        on_tick: Callable[[], None],
        interval: float = TICK_INTERVAL_SECONDS,
        name: str = "QuizCountdown",
    ) -> None:
        self._on_tick = on_tick
        self._interval = interval
        self._stopped = Event()
        self._lock = Lock()
        self._thread = Thread(target=self._run, name=name, daemon=True)
        self._started = False

    def start(self) -> None:
        with self._lock:
            if self._started:
                raise RuntimeError("Countdown timer already started.")
            self._started = True
        self._thread.start()

    def cancel(self) -> None:
        self._stopped.set()

    def is_cancelled(self) -> bool:
        return self._stopped.is_set()

    def _run(self) -> None:
        while not self._stopped.wait(self._interval):
            try:
                self._on_tick()
            except Exception:
                # Nobody joins this thread; report and stop ticking.
                logger.exception("Countdown tick failed")
                self._stopped.set()
