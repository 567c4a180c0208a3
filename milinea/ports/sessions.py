"""Session store port - per-conversation slot-filling memory."""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional, Protocol

if TYPE_CHECKING:
    from ..domain.models import Session


class SessionStorePort(Protocol):
    """Port for conversation sessions.

    Implementation: adapters/sessions/memory_store.py (InMemorySessionStore)

    Sessions idle for longer than the configured window are removed by
    a periodic sweep. Eviction is lazy-consistent: a session may serve
    one more interaction before the sweep catches it.
    """

    def ensure(self, session_id: str) -> Session:
        """Return the session, creating it or refreshing ``updated_at``."""
        ...

    def get(self, session_id: str) -> Optional[Session]:
        """Return the session without touching it, or None."""
        ...

    def save(self, session: Session) -> None:
        """Store the session slots and stamp ``updated_at``."""
        ...

    def evict(self, session_id: str) -> bool:
        """Explicitly remove a session. Returns True if it existed."""
        ...

    def sweep(self, now: Optional[float] = None) -> int:
        """Remove idle sessions. Returns the number removed."""
        ...

    def schedule_sweep(self) -> None:
        """Register exactly one periodic sweep (idempotent)."""
        ...

    def close(self) -> None:
        """Cancel the periodic sweep."""
        ...

    def size(self) -> int:
        """Return the number of live sessions."""
        ...
