"""Thread-safe in-memory conversation sessions.

Sessions carry the resolved origin/destination slots between turns of a
conversation. They live only in process memory and expire after a
configurable idle window:

- Thread-safe with RLock
- ``updated_at`` refreshed on every interaction
- Periodic sweep on a daemon thread, cancellable on shutdown
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional

from ...domain.models import Session
from ...scheduling import PeriodicTask


@dataclass
class InMemorySessionStore:
    """Session store implementing SessionStorePort.

    Attributes:
        idle_seconds: Sessions idle longer than this are swept
        sweep_seconds: Period of the background sweep
        clock: Time source (epoch seconds), injectable for tests

    Example:
        store = InMemorySessionStore(idle_seconds=1800, sweep_seconds=900)
        store.schedule_sweep()
        session = store.ensure("s_abc")
    """

    idle_seconds: float = 30 * 60
    sweep_seconds: float = 15 * 60
    clock: Callable[[], float] = time.time

    _sessions: Dict[str, Session] = field(default_factory=dict, repr=False)
    _lock: threading.RLock = field(default_factory=threading.RLock, repr=False)
    _sweep_task: Optional[PeriodicTask] = field(default=None, repr=False)
    _logger: logging.Logger = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._logger = logging.getLogger(__name__)

    def ensure(self, session_id: str) -> Session:
        """Return the session for ``session_id``, creating it if needed.

        The session's ``updated_at`` is refreshed either way.
        """
        now = self.clock()
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                session = Session(id=session_id, updated_at=now)
                self._sessions[session_id] = session
                self._logger.debug("Session created", extra={"session_id": session_id})
            else:
                session.updated_at = now
            return session

    def get(self, session_id: str) -> Optional[Session]:
        with self._lock:
            return self._sessions.get(session_id)

    def save(self, session: Session) -> None:
        """Store the session and stamp ``updated_at``."""
        with self._lock:
            session.updated_at = self.clock()
            self._sessions[session.id] = session

    def evict(self, session_id: str) -> bool:
        with self._lock:
            return self._sessions.pop(session_id, None) is not None

    def sweep(self, now: Optional[float] = None) -> int:
        """Remove sessions idle for longer than ``idle_seconds``.

        Args:
            now: Reference time; defaults to the store clock.

        Returns:
            Number of sessions removed.
        """
        reference = self.clock() if now is None else now
        with self._lock:
            expired = [
                sid
                for sid, session in self._sessions.items()
                if reference - session.updated_at > self.idle_seconds
            ]
            for sid in expired:
                del self._sessions[sid]

        if expired:
            self._logger.info("Idle sessions swept", extra={"removed": len(expired)})
        return len(expired)

    def schedule_sweep(self) -> None:
        """Start the periodic sweep once; later calls are no-ops."""
        with self._lock:
            if self._sweep_task is None:
                self._sweep_task = PeriodicTask(
                    name="session-sweep",
                    period_seconds=self.sweep_seconds,
                    action=self.sweep,
                )
            task = self._sweep_task
        task.start()

    def close(self) -> None:
        with self._lock:
            task, self._sweep_task = self._sweep_task, None
        if task is not None:
            task.stop()

    def size(self) -> int:
        with self._lock:
            return len(self._sessions)
