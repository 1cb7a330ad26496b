"""Background thread that reclaims lapsed holds."""
from __future__ import annotations

import logging
import threading
from datetime import date
from typing import Optional

from .reservations import ReservationManager

logger = logging.getLogger(__name__)


class ExpirySweeper:
    def __init__(self, manager: ReservationManager, interval_seconds: float = 30) -> None:
        self.manager = manager
        self.interval_seconds = interval_seconds
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def run_once(self) -> int:
        expired = self.manager.expire_due()
        self.manager.ledger.prune_confirmed(before=date.today())
        if expired:
            logger.info("Expiry sweep reclaimed %s holds", expired)
        return expired

    def _loop(self) -> None:
        while not self._stop.wait(self.interval_seconds):
            try:
                self.run_once()
            except Exception:
                # The next tick retries.
                logger.exception("Expiry sweep failed")

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, name="expiry-sweeper", daemon=True)
        self._thread.start()
        logger.info("Expiry sweeper started, running every %ss", self.interval_seconds)

    def stop(self, timeout: Optional[float] = None) -> None:
        if self._thread is None:
            return
        self._stop.set()
        self._thread.join(timeout)
        self._thread = None
        logger.info("Expiry sweeper stopped")
