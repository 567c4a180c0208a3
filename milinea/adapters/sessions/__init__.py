"""Session adapters - Implementations of SessionStorePort.

Available implementations:
- InMemorySessionStore: Process-local sessions with idle sweep
"""

from .memory_store import InMemorySessionStore

__all__ = ["InMemorySessionStore"]
