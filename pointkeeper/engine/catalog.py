"""
pointkeeper.engine.catalog — Tasks & Rewards Catalog Store
===========================================================

Holds ``trigger_id → value`` for the two catalogs.  A trigger is the
message id of a post in the tasks or rewards channel; reacting to it earns
or spends its value.

The store is populated by the bootstrap loader and grows when new catalog
posts arrive.  Unknown triggers are not an error here — callers decide what
a missing entry means (zero value for tasks, rejection for rewards).
"""

from __future__ import annotations

import enum
import logging
import threading
from collections.abc import Mapping

from pointkeeper.constants import MAX_POINTS

logger = logging.getLogger(__name__)

__all__ = ["CatalogKind", "CatalogStore"]


class CatalogKind(enum.Enum):
    """Which catalog an entry belongs to."""

    TASKS = "task"
    REWARDS = "reward"


def _check_value(value: int) -> int:
    if value < 0 or value > MAX_POINTS:
        raise ValueError(f"Catalog value must be within 0..{MAX_POINTS}, got {value}")
    return value


class CatalogStore:
    """Thread-safe store for both catalogs.

    Usage:
        catalog = CatalogStore()
        catalog.register(CatalogKind.TASKS, 1234, 5)
        catalog.lookup(CatalogKind.TASKS, 1234)   # 5
        catalog.lookup(CatalogKind.REWARDS, 1234) # None
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entries: dict[CatalogKind, dict[int, int]] = {
            kind: {} for kind in CatalogKind
        }

    def lookup(self, kind: CatalogKind, trigger_id: int) -> int | None:
        """Return the value registered for *trigger_id*, or None."""
        with self._lock:
            return self._entries[kind].get(trigger_id)

    def register(self, kind: CatalogKind, trigger_id: int, value: int) -> None:
        """Insert or overwrite one entry."""
        _check_value(value)
        with self._lock:
            previous = self._entries[kind].get(trigger_id)
            self._entries[kind][trigger_id] = value
        if previous is not None and previous != value:
            logger.info(
                "Re-registered %s %d: %d → %d", kind.value, trigger_id, previous, value,
            )

    def replace(self, kind: CatalogKind, entries: Mapping[int, int]) -> None:
        """Swap in a whole catalog at once (bootstrap / reload)."""
        fresh = {trigger_id: _check_value(value) for trigger_id, value in entries.items()}
        with self._lock:
            self._entries[kind] = fresh

    def snapshot(self, kind: CatalogKind) -> dict[int, int]:
        """Return a copy of one catalog."""
        with self._lock:
            return dict(self._entries[kind])

    def count(self, kind: CatalogKind) -> int:
        with self._lock:
            return len(self._entries[kind])
