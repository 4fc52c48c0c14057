"""Unit of work shared by raw entry writes and bucket recomputation."""

import logging
from collections.abc import Callable
from contextlib import AbstractContextManager
from dataclasses import dataclass, field
from typing import Protocol

from meal_analytics.services.buckets import BucketStore
from meal_analytics.services.entries import MealLogRepository

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StorageUnit:
    """Repositories bound to one open transaction."""

    entries: MealLogRepository
    buckets: BucketStore


class UnitOfWork(Protocol):
    """Opens transactions that commit or roll back as a whole."""

    def transaction(self) -> AbstractContextManager[StorageUnit]:
        """Return a context manager yielding repositories for one transaction."""


@dataclass
class Journal:
    """Undo log for the writes made inside one transaction.

    Adapters record a compensating action before each write. When the
    transaction fails the actions run newest first.
    """

    _undo: list[Callable[[], None]] = field(default_factory=list)

    def record(self, undo: Callable[[], None]) -> None:
        """Remember how to revert a write."""
        self._undo.append(undo)

    def __len__(self) -> int:
        return len(self._undo)

    def rollback(self) -> None:
        """Run every recorded undo action in reverse order."""
        while self._undo:
            undo = self._undo.pop()
            try:
                undo()
            except Exception:
                _logger.exception("Failed to revert a write during rollback")

    def discard(self) -> None:
        """Forget recorded actions after a successful commit."""
        self._undo.clear()
