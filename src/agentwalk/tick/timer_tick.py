# file: agentwalk/tick/timer_tick.py

import threading
from typing import List, Optional

from agentwalk.tick.base_tick import Tick, TickCallback
from agentwalk.utils.logger import setup_logger

logger = setup_logger(__name__)


class TimerTick(Tick):
    """
    Fixed-interval tick on a single daemon thread.

    Each wait starts after the previous dispatch returns, so slow
    subscribers push later ticks back (no drift correction). Subscribers
    are called in registration order, one at a time.
    """

    def __init__(self, interval_ms: int):
        if interval_ms <= 0:
            raise ValueError(f"interval_ms must be positive, got {interval_ms}")
        self.interval_ms = interval_ms

        self._callbacks: List[TickCallback] = []
        self._callbacks_lock = threading.Lock()

        self._state_lock = threading.Lock()
        self._stop_event: Optional[threading.Event] = None
        self._thread: Optional[threading.Thread] = None

    @property
    def is_running(self) -> bool:
        with self._state_lock:
            return self._thread is not None

    # ========== LIFECYCLE ==========

    def start(self) -> None:
        with self._state_lock:
            if self._thread is not None:
                return

            stop_event = threading.Event()
            thread = threading.Thread(
                target=self._run,
                args=(stop_event,),
                daemon=True,
                name=f"TimerTick-{self.interval_ms}ms",
            )
            self._stop_event = stop_event
            self._thread = thread

        thread.start()
        logger.debug(f"[TICK] Started ({self.interval_ms}ms)")

    def stop(self) -> None:
        with self._state_lock:
            if self._thread is None:
                return
            stop_event, thread = self._stop_event, self._thread
            self._stop_event = None
            self._thread = None

        stop_event.set()
        # stop() may be called from a subscriber running on the timer thread
        if thread is not threading.current_thread():
            thread.join(timeout=self.interval_ms / 1000.0 + 5.0)
        logger.debug("[TICK] Stopped")

    # ========== SUBSCRIBERS ==========

    def on_tick(self, callback: TickCallback) -> None:
        with self._callbacks_lock:
            if callback not in self._callbacks:
                self._callbacks.append(callback)

    def off_tick(self, callback: TickCallback) -> None:
        with self._callbacks_lock:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

    def subscriber_count(self) -> int:
        with self._callbacks_lock:
            return len(self._callbacks)

    # ========== LOOP ==========

    def _run(self, stop_event: threading.Event) -> None:
        interval = self.interval_ms / 1000.0
        while not stop_event.wait(interval):
            self._emit()

    def _emit(self) -> None:
        with self._callbacks_lock:
            callbacks = list(self._callbacks)

        for cb in callbacks:
            try:
                cb()
            except Exception as e:
                logger.error(f"[TICK] Subscriber {cb!r} raised: {e}", exc_info=True)
