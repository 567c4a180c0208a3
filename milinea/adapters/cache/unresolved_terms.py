"""Persistent tracker of place labels that failed resolution.

Curators read the most frequent misses to add aliases or catalog
entries. Entries age out after ``max_age_days`` without new hits.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from ...domain.models import UnresolvedEntry
from ...nlp.text import normalize_label
from ...scheduling import PeriodicTask
from .snapshot import epoch_seconds, read_snapshot, write_snapshot

MAX_SAMPLES = 5
SECONDS_PER_DAY = 24 * 60 * 60


@dataclass
class JsonUnresolvedTerms:
    """Unresolved term tracker implementing UnresolvedTermsPort.

    Attributes:
        path: Location of the JSON snapshot
        flush_seconds: Period of the background flush
        clock: Time source (epoch seconds), injectable for tests
    """

    path: Path
    flush_seconds: float = 25.0
    clock: Callable[[], float] = time.time

    _store: Dict[str, Dict[str, Any]] = field(default_factory=dict, repr=False)
    _lock: threading.RLock = field(default_factory=threading.RLock, repr=False)
    _flush_task: Optional[PeriodicTask] = field(default=None, repr=False)
    _logger: logging.Logger = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._logger = logging.getLogger(__name__)

    def register(self, label: str) -> None:
        """Count one resolution failure for ``label``.

        Args:
            label: Raw place label; blank labels are ignored.
        """
        key = normalize_label(label or "")
        if not key:
            return

        now = self.clock()
        with self._lock:
            entry = self._store.get(key)
            if entry is None:
                self._store[key] = {
                    "hits": 1,
                    "last_seen": now,
                    "original_samples": [label],
                }
            else:
                entry["hits"] += 1
                entry["last_seen"] = now
                samples = entry["original_samples"]
                if label not in samples and len(samples) < MAX_SAMPLES:
                    samples.append(label)

        self._logger.info("Unresolved place registered", extra={"key": key})

    def get(self, label: str) -> Optional[UnresolvedEntry]:
        key = normalize_label(label)
        with self._lock:
            raw = self._store.get(key)
            return self._to_entry(key, raw) if raw is not None else None

    def list(self, min_hits: int = 2) -> List[UnresolvedEntry]:
        """List entries with ``hits >= min_hits``, most frequent first."""
        with self._lock:
            entries = [
                self._to_entry(key, raw)
                for key, raw in self._store.items()
                if raw["hits"] >= min_hits
            ]
        entries.sort(key=lambda e: e.hits, reverse=True)
        return entries

    def purge_old(self, max_age_days: float = 30) -> int:
        """Drop entries whose ``last_seen`` is older than ``max_age_days``.

        Returns:
            Number of entries removed.
        """
        cutoff = self.clock() - max_age_days * SECONDS_PER_DAY
        with self._lock:
            stale = [k for k, v in self._store.items() if v["last_seen"] < cutoff]
            for key in stale:
                del self._store[key]
        if stale:
            self._logger.info(
                "Purged old unresolved terms",
                extra={"removed": len(stale), "max_age_days": max_age_days},
            )
        return len(stale)

    def load(self) -> int:
        """Restore the snapshot; never raises.

        Accepts the flat ``{key: entry}`` layout and the older
        ``{"updated": ..., "data": [{"key": ...}, ...]}`` layout.

        Returns:
            Number of entries loaded.
        """
        data = read_snapshot(self.path)
        now = self.clock()
        items: List[tuple[str, Any]] = []

        if isinstance(data, dict) and isinstance(data.get("data"), list):
            items = [
                (str(item.get("key", "")), item)
                for item in data["data"]
                if isinstance(item, dict)
            ]
        elif isinstance(data, dict):
            items = list(data.items())

        loaded: Dict[str, Dict[str, Any]] = {}
        for key, raw in items:
            normalized = normalize_label(key)
            entry = self._coerce_entry(normalized, raw, now)
            if entry is not None:
                loaded[normalized] = entry

        with self._lock:
            self._store = loaded

        self._logger.info(
            "Unresolved terms loaded",
            extra={"entries": len(loaded), "path": str(self.path)},
        )
        return len(loaded)

    def persist(self) -> bool:
        """Write the full snapshot. Failures are logged, never raised."""
        with self._lock:
            snapshot = {
                key: {
                    "hits": raw["hits"],
                    "last_seen": raw["last_seen"],
                    "original_samples": list(raw["original_samples"]),
                }
                for key, raw in self._store.items()
            }
        try:
            write_snapshot(self.path, snapshot)
            return True
        except OSError as e:
            self._logger.warning(
                "Unresolved terms flush failed",
                extra={"path": str(self.path), "error": str(e)},
            )
            return False

    def schedule_persist(self) -> None:
        """Start the periodic flush once; later calls are no-ops."""
        with self._lock:
            if self._flush_task is None:
                self._flush_task = PeriodicTask(
                    name="unresolved-flush",
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

    @staticmethod
    def _to_entry(key: str, raw: Dict[str, Any]) -> UnresolvedEntry:
        return UnresolvedEntry(
            key=key,
            hits=raw["hits"],
            last_seen=raw["last_seen"],
            original_samples=tuple(raw["original_samples"]),
        )

    @staticmethod
    def _coerce_entry(key: str, raw: Any, now: float) -> Optional[Dict[str, Any]]:
        if not key or not isinstance(raw, dict):
            return None
        samples = raw.get("original_samples")
        if not isinstance(samples, list) or not samples:
            samples = [key]
        try:
            return {
                "hits": int(raw.get("hits") or 1),
                "last_seen": epoch_seconds(raw.get("last_seen"), now),
                "original_samples": [str(s) for s in samples][:MAX_SAMPLES],
            }
        except (TypeError, ValueError):
            return None
