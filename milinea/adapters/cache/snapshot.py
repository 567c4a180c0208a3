"""JSON snapshot helpers shared by the persistent stores."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Optional

logger = logging.getLogger(__name__)


def read_snapshot(path: Path) -> Optional[Any]:
    """Read a JSON snapshot, returning None when missing or unreadable."""
    if not path.exists():
        return None
    try:
        with path.open(encoding="utf-8") as f:
            return json.load(f)
    except (OSError, ValueError) as e:
        logger.warning(
            "Snapshot unreadable, starting empty",
            extra={"path": str(path), "error": str(e)},
        )
        return None


def write_snapshot(path: Path, data: Any) -> None:
    """Rewrite a JSON snapshot wholesale (atomic replace).

    Raises:
        OSError: If the directory or file cannot be written.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(
        prefix=f".{path.name}.", suffix=".tmp", dir=str(path.parent)
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False, indent=2)
        os.replace(tmp_name, path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except OSError:
            pass
        raise


def epoch_seconds(value: Any, default: float) -> float:
    """Coerce a stored timestamp to epoch seconds.

    Older snapshots stored milliseconds; anything beyond year 5000 in
    seconds is taken to be milliseconds.
    """
    if value is None or value == "":
        return default
    stamp = float(value)
    if stamp > 1e11:
        stamp /= 1000.0
    return stamp
