"""Fixed-interval sync trigger."""

from __future__ import annotations

import logging
import threading
from typing import Callable

logger = logging.getLogger(__name__)


class PeriodicTrigger(threading.Thread):
    """Call *callback* every *interval* seconds until stopped.

    The first call happens one interval after ``start()``; the startup
    pass is run separately by the daemon.
    """

    def __init__(
        self,
        callback: Callable[[], object],
        interval: float,
        stop_event: threading.Event | None = None,
    ) -> None:
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")
        super().__init__(name="pin-mirror-timer", daemon=True)
        self.callback = callback
        self.interval = float(interval)
        self.stop_event = stop_event or threading.Event()

    def run(self) -> None:
        logger.info("Periodic sync enabled (interval=%.1fs)", self.interval)
        while not self.stop_event.wait(self.interval):
            logger.info("Running scheduled sync")
            try:
                self.callback()
            except Exception:
                logger.exception("Scheduled sync trigger failed")
        logger.info("Periodic sync stopped")

    def stop(self, timeout: float = 10.0) -> None:
        self.stop_event.set()
        if self.is_alive():
            self.join(timeout=timeout)
