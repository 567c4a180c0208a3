"""Persistent store ports - place cache and unresolved term tracker.

These protocols replace process-wide mutable dictionaries with injected
store objects that own their locking and persistence discipline.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional, Protocol, Sequence

if TYPE_CHECKING:
    from ..domain.models import CacheEntry, Coordinates, UnresolvedEntry


class PlaceCachePort(Protocol):
    """Port for the persistent place cache.

    Implementation: adapters/cache/place_cache.py (JsonPlaceCache)

    Keys are normalized labels; only coordinates inside the city
    bounds are ever stored.
    """

    def get(self, label: str) -> Optional[Coordinates]:
        """Look up a label, counting the hit.

        Args:
            label: Raw place label.

        Returns:
            Cached coordinates, or None on a miss.
        """
        ...

    def set(self, label: str, coords: Coordinates) -> None:
        """Store coordinates for a label (no-op when out of bounds).

        Args:
            label: Raw place label.
            coords: Resolved coordinates.
        """
        ...

    def entry(self, label: str) -> Optional[CacheEntry]:
        """Return the stored record for a label without touching it."""
        ...

    def load(self) -> int:
        """Restore the persisted snapshot (fails soft).

        Returns:
            Number of entries loaded.
        """
        ...

    def purge_out_of_bounds(self) -> int:
        """Drop entries whose coordinates fail the bounds check.

        Returns:
            Number of entries removed.
        """
        ...

    def persist(self) -> bool:
        """Write the full snapshot; returns False on a swallowed failure."""
        ...

    def schedule_persist(self) -> None:
        """Register exactly one periodic flush (idempotent)."""
        ...

    def close(self) -> None:
        """Cancel the periodic flush and flush one last time."""
        ...

    def size(self) -> int:
        """Return the number of cached labels."""
        ...


class UnresolvedTermsPort(Protocol):
    """Port for the unresolved term tracker.

    Implementation: adapters/cache/unresolved_terms.py (JsonUnresolvedTerms)
    """

    def register(self, label: str) -> None:
        """Count a resolution failure for a label.

        Args:
            label: Raw place label that could not be resolved.
        """
        ...

    def list(self, min_hits: int = 2) -> Sequence[UnresolvedEntry]:
        """List entries with at least ``min_hits`` hits, most frequent first."""
        ...

    def purge_old(self, max_age_days: float = 30) -> int:
        """Drop entries not seen for more than ``max_age_days``.

        Returns:
            Number of entries removed.
        """
        ...

    def load(self) -> int:
        """Restore the persisted snapshot (fails soft)."""
        ...

    def persist(self) -> bool:
        """Write the full snapshot; returns False on a swallowed failure."""
        ...

    def schedule_persist(self) -> None:
        """Register exactly one periodic flush (idempotent)."""
        ...

    def close(self) -> None:
        """Cancel the periodic flush and flush one last time."""
        ...

    def size(self) -> int:
        """Return the number of tracked labels."""
        ...
