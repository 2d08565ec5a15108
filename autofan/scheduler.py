from __future__ import annotations

import logging
import signal
import threading
import time
from typing import Callable, Dict


class Scheduler:
    """Drives a controller's `run_cycle` on a fixed period until cancelled.

    Cycles run on a dedicated ticker thread; the thread calling `run()`
    waits for SIGINT/SIGTERM (or `stop()`), then lets the in-flight cycle
    finish and joins the ticker before returning. Both sides share only
    the cancellation event.
    """

    def __init__(
        self,
        controller,
        interval: float,
        *,
        logger: logging.Logger | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")
        self.controller = controller
        self.interval = float(interval)
        self.logger = logger or logging.getLogger(__name__)
        self._clock = clock
        self._stop = threading.Event()
        self._ticker: threading.Thread | None = None
        self.cycles = 0

    def stop(self):
        """Request shutdown; safe from signal handlers and other threads."""
        self._stop.set()

    @property
    def stopped(self) -> bool:
        return self._stop.is_set()

    def _signal_handler(self, signum, frame):
        self.logger.info(f"Received signal {signum}, shutting down gracefully...")
        self.stop()

    def _tick_loop(self):
        deadline = self._clock() + self.interval
        while not self._stop.wait(max(0.0, deadline - self._clock())):
            try:
                self.controller.run_cycle()
            except Exception as e:
                self.logger.error(f"Unexpected error in control cycle: {e}")
            self.cycles += 1
            deadline += self.interval
            now = self._clock()
            if deadline < now:
                # overran: start the next cycle at once, drop the missed ticks
                deadline = now

    def run(self, install_signals: bool = True):
        """Block until a termination signal (or `stop()`), then shut down."""
        previous: Dict[int, object] = {}
        if install_signals:
            for signum in (signal.SIGINT, signal.SIGTERM):
                previous[signum] = signal.signal(signum, self._signal_handler)

        self.logger.info(f"Fan controller started, interval {self.interval:g}s")
        self._ticker = threading.Thread(target=self._tick_loop, name="autofan-ticker")
        self._ticker.start()
        try:
            while not self._stop.wait(timeout=1.0):
                pass
        finally:
            self._stop.set()
            self._ticker.join()
            for signum, handler in previous.items():
                signal.signal(signum, handler)
        self.logger.info("signal received. exiting...")
