"""Persistent place cache backed by a JSON snapshot.

The cache maps normalized place labels to coordinates that were
successfully resolved inside the city bounds:

- Thread-safe with RLock (last-writer-wins on concurrent updates)
- Hit counting and first/last seen timestamps
- Soft-failing load (missing or corrupt snapshot -> empty cache)
- Idempotent periodic flush with explicit shutdown
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from ...domain.models import CacheEntry, CityBounds, Coordinates
from ...nlp.text import normalize_label
from ...scheduling import PeriodicTask
from .snapshot import epoch_seconds, read_snapshot, write_snapshot


@dataclass
class JsonPlaceCache:
    """Place cache implementing PlaceCachePort.

    Attributes:
        path: Location of the JSON snapshot
        bounds: City bounds every stored coordinate must satisfy
        flush_seconds: Period of the background flush
        clock: Time source (epoch seconds), injectable for tests

    Example:
        cache = JsonPlaceCache(path=Path("var/data_place_cache.json"), bounds=bounds)
        cache.load()
        cache.purge_out_of_bounds()
        cache.schedule_persist()
    """

    path: Path
    bounds: CityBounds
    flush_seconds: float = 20.0
    clock: Callable[[], float] = time.time

    _store: Dict[str, Dict[str, Any]] = field(default_factory=dict, repr=False)
    _lock: threading.RLock = field(default_factory=threading.RLock, repr=False)
    _flush_task: Optional[PeriodicTask] = field(default=None, repr=False)
    _logger: logging.Logger = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._logger = logging.getLogger(__name__)

    def get(self, label: str) -> Optional[Coordinates]:
        """Look up a label; a hit bumps ``hits`` and ``last_seen``.

        Args:
            label: Raw place label.

        Returns:
            The cached coordinates, or None on a miss.
        """
        key = normalize_label(label)
        with self._lock:
            entry = self._store.get(key)
            if entry is None:
                return None
            entry["hits"] += 1
            entry["last_seen"] = self.clock()
            lng, lat = entry["lng"], entry["lat"]

        try:
            return Coordinates(lng=lng, lat=lat)
        except ValueError:
            self._logger.warning("Cache entry has invalid coordinates", extra={"key": key})
            return None

    def set(self, label: str, coords: Coordinates) -> None:
        """Store coordinates for a label.

        Out-of-bounds coordinates are silently ignored. An existing entry
        keeps its coordinates and only gets its counters refreshed.

        Args:
            label: Raw place label.
            coords: Resolved coordinates.
        """
        if not self.bounds.contains_point(coords):
            self._logger.debug(
                "Refusing out-of-bounds cache write",
                extra={"label": label, "lng": coords.lng, "lat": coords.lat},
            )
            return

        key = normalize_label(label)
        if not key:
            return

        now = self.clock()
        with self._lock:
            entry = self._store.get(key)
            if entry is None:
                self._store[key] = {
                    "lng": coords.lng,
                    "lat": coords.lat,
                    "hits": 1,
                    "first_seen": now,
                    "last_seen": now,
                }
                self._logger.debug("Cache entry set", extra={"key": key})
            else:
                entry["hits"] += 1
                entry["last_seen"] = now

    def entry(self, label: str) -> Optional[CacheEntry]:
        """Return the stored record for a label without counting a hit."""
        key = normalize_label(label)
        with self._lock:
            raw = self._store.get(key)
            if raw is None:
                return None
            return CacheEntry(key=key, **raw)

    def load(self) -> int:
        """Restore the snapshot; never raises.

        Returns:
            Number of entries loaded.
        """
        data = read_snapshot(self.path)
        loaded: Dict[str, Dict[str, Any]] = {}

        if isinstance(data, dict):
            now = self.clock()
            for key, raw in data.items():
                entry = self._coerce_entry(raw, now)
                if entry is None:
                    self._logger.debug("Skipping malformed cache entry", extra={"key": key})
                    continue
                loaded[normalize_label(str(key))] = entry
        elif data is not None:
            self._logger.warning(
                "Place cache snapshot has unexpected layout",
                extra={"path": str(self.path)},
            )

        with self._lock:
            self._store = loaded

        self._logger.info(
            "Place cache loaded",
            extra={"entries": len(loaded), "path": str(self.path)},
        )
        return len(loaded)

    def purge_out_of_bounds(self) -> int:
        """Drop every entry outside the city bounds.

        Returns:
            Number of entries removed.
        """
        with self._lock:
            stale = [
                key
                for key, entry in self._store.items()
                if not self.bounds.contains(entry["lng"], entry["lat"])
            ]
            for key in stale:
                del self._store[key]

        if stale:
            self._logger.info(
                "Purged out-of-bounds cache entries",
                extra={"removed": len(stale)},
            )
            self.persist()
        return len(stale)

    def persist(self) -> bool:
        """Write the full snapshot. Failures are logged, never raised."""
        with self._lock:
            snapshot = {key: dict(entry) for key, entry in self._store.items()}
        try:
            write_snapshot(self.path, snapshot)
            return True
        except OSError as e:
            self._logger.warning(
                "Place cache flush failed",
                extra={"path": str(self.path), "error": str(e)},
            )
            return False

    def schedule_persist(self) -> None:
        """Start the periodic flush once; later calls are no-ops."""
        with self._lock:
            if self._flush_task is None:
                self._flush_task = PeriodicTask(
                    name="place-cache-flush",
                    period_seconds=self.flush_seconds,
                    action=self.persist,
                )
            task = self._flush_task
        task.start()

    def close(self) -> None:
        """Stop the periodic flush and write a final snapshot."""
        with self._lock:
            task, self._flush_task = self._flush_task, None
        if task is not None:
            task.stop()
        self.persist()

    def size(self) -> int:
        with self._lock:
            return len(self._store)

    def keys(self) -> list[str]:
        with self._lock:
            return list(self._store.keys())

    @staticmethod
    def _coerce_entry(raw: Any, now: float) -> Optional[Dict[str, Any]]:
        if not isinstance(raw, dict):
            return None
        try:
            return {
                "lng": float(raw["lng"]),
                "lat": float(raw["lat"]),
                "hits": int(raw.get("hits") or 1),
                "first_seen": epoch_seconds(raw.get("first_seen"), now),
                "last_seen": epoch_seconds(raw.get("last_seen"), now),
            }
        except (KeyError, TypeError, ValueError):
            return None
