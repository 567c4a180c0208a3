"""Fixed-period background tasks.

Cache flushes, tracker purges and the session sweep each run on their
own daemon thread so that they never block request handling. Every
task can be cancelled independently on shutdown.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Callable, Optional

logger = logging.getLogger(__name__)


@dataclass
class PeriodicTask:
    """Run ``action`` every ``period_seconds`` until stopped.

    Exceptions raised by the action are logged and swallowed: background
    maintenance is best-effort and must not kill its thread.

    Attributes:
        name: Task name (thread name and log context)
        period_seconds: Delay between two runs
        action: Callable executed on each tick
    """

    name: str
    period_seconds: float
    action: Callable[[], object]

    _stop: threading.Event = field(default_factory=threading.Event, repr=False)
    _thread: Optional[threading.Thread] = field(default=None, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def start(self) -> bool:
        """Start the task. Returns False if it was already running."""
        with self._lock:
            if self._thread is not None and self._thread.is_alive():
                return False
            self._stop.clear()
            self._thread = threading.Thread(
                target=self._run, name=f"milinea-{self.name}", daemon=True
            )
            self._thread.start()
        logger.debug(
            "Periodic task started",
            extra={"task": self.name, "period_s": self.period_seconds},
        )
        return True

    def stop(self, timeout: Optional[float] = 5.0) -> None:
        """Signal the task to stop and wait for its thread."""
        with self._lock:
            thread = self._thread
            self._thread = None
        self._stop.set()
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)
            logger.debug("Periodic task stopped", extra={"task": self.name})

    @property
    def running(self) -> bool:
        thread = self._thread
        return thread is not None and thread.is_alive()

    def run_once(self) -> None:
        """Execute the action once in the calling thread."""
        try:
            self.action()
        except Exception as e:
            logger.warning(
                "Periodic task failed",
                extra={"task": self.name, "error": str(e)},
            )

    def _run(self) -> None:
        while not self._stop.wait(self.period_seconds):
            self.run_once()
