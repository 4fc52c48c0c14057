"""In-memory storage for meal logs and analytics buckets."""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field, replace
from datetime import date
from functools import partial
from threading import RLock
from uuid import UUID

from meal_analytics.domain.buckets import (
    Bucket,
    BucketKey,
    Granularity,
    ensure_bucket_type,
)
from meal_analytics.domain.entries import RawEntry
from meal_analytics.services.buckets import BucketStore
from meal_analytics.services.entries import MealLogRepository
from meal_analytics.services.transactions import Journal, StorageUnit, UnitOfWork

_logger = logging.getLogger(__name__)


def _empty_tables() -> dict[Granularity, dict[BucketKey, Bucket]]:
    return {granularity: {} for granularity in Granularity}


@dataclass
class InMemoryMealLogRepository(MealLogRepository):
    """Meal log entries kept in a dict keyed by id."""

    entries: dict[UUID, RawEntry] = field(default_factory=dict)
    lock: RLock = field(default_factory=RLock, repr=False)
    journal: Journal | None = field(default=None, repr=False)

    def get_entry(self, entry_id: UUID) -> RawEntry | None:
        with self.lock:
            return self.entries.get(entry_id)

    def list_entries_on(
        self, day: date, tenant_id: UUID | None = None, *, all_tenants: bool = True
    ) -> list[RawEntry]:
        with self.lock:
            rows = [
                entry
                for entry in self.entries.values()
                if entry.eaten_on == day
                and (all_tenants or entry.tenant_id == tenant_id)
            ]
        return sorted(rows, key=lambda entry: entry.created_at)

    def list_entries(
        self, tenant_id: UUID | None = None, *, all_tenants: bool = True
    ) -> list[RawEntry]:
        with self.lock:
            rows = [
                entry
                for entry in self.entries.values()
                if all_tenants or entry.tenant_id == tenant_id
            ]
        return sorted(rows, key=lambda entry: (entry.eaten_on, entry.created_at))

    def save_entry(self, entry: RawEntry) -> None:
        with self.lock:
            previous = self.entries.get(entry.id)
            self.entries[entry.id] = entry
            self._remember(entry.id, previous)

    def delete_entry(self, entry_id: UUID) -> RawEntry | None:
        with self.lock:
            removed = self.entries.pop(entry_id, None)
            if removed is not None:
                self._remember(entry_id, removed)
        return removed

    def _remember(self, entry_id: UUID, previous: RawEntry | None) -> None:
        if self.journal is not None:
            self.journal.record(partial(self._restore, entry_id, previous))

    def _restore(self, entry_id: UUID, previous: RawEntry | None) -> None:
        if previous is None:
            self.entries.pop(entry_id, None)
        else:
            self.entries[entry_id] = previous


@dataclass
class InMemoryBucketStore(BucketStore):
    """Bucket tables kept in dicts, one per granularity."""

    tables: dict[Granularity, dict[BucketKey, Bucket]] = field(
        default_factory=_empty_tables
    )
    lock: RLock = field(default_factory=RLock, repr=False)
    journal: Journal | None = field(default=None, repr=False)

    def get(self, granularity: Granularity, key: BucketKey) -> Bucket | None:
        with self.lock:
            return self.tables[granularity].get(key)

    def upsert(self, granularity: Granularity, key: BucketKey, value: Bucket) -> None:
        ensure_bucket_type(granularity, value)
        with self.lock:
            table = self.tables[granularity]
            self._remember(granularity, key, table.get(key))
            table[key] = value

    def delete(self, granularity: Granularity, key: BucketKey) -> None:
        with self.lock:
            previous = self.tables[granularity].pop(key, None)
            if previous is not None:
                self._remember(granularity, key, previous)

    def range_query(
        self,
        granularity: Granularity,
        start: date | None,
        end: date | None,
        tenant_id: UUID | None = None,
    ) -> list[tuple[BucketKey, Bucket]]:
        with self.lock:
            rows = [
                (key, value)
                for key, value in self.tables[granularity].items()
                if key.tenant_id == tenant_id
                and (start is None or key.period_start >= start)
                and (end is None or key.period_start < end)
            ]
        return sorted(rows, key=lambda row: row[0].period_start)

    def clear(self, granularity: Granularity, tenant_id: UUID | None = None) -> None:
        with self.lock:
            table = self.tables[granularity]
            for key in [key for key in table if key.tenant_id == tenant_id]:
                self._remember(granularity, key, table.pop(key))

    def _remember(
        self, granularity: Granularity, key: BucketKey, previous: Bucket | None
    ) -> None:
        if self.journal is not None:
            self.journal.record(partial(self._restore, granularity, key, previous))

    def _restore(
        self, granularity: Granularity, key: BucketKey, previous: Bucket | None
    ) -> None:
        table = self.tables[granularity]
        if previous is None:
            table.pop(key, None)
        else:
            table[key] = previous


@dataclass
class InMemoryUnitOfWork(UnitOfWork):
    """Serializes transactions with a re-entrant lock and undoes failed ones."""

    entries: InMemoryMealLogRepository = field(
        default_factory=InMemoryMealLogRepository
    )
    buckets: InMemoryBucketStore = field(default_factory=InMemoryBucketStore)
    lock: RLock = field(default_factory=RLock, repr=False)

    def __post_init__(self) -> None:
        # Readers outside a transaction must wait for commits.
        self.entries.lock = self.lock
        self.buckets.lock = self.lock

    @contextmanager
    def transaction(self) -> Iterator[StorageUnit]:
        with self.lock:
            journal = Journal()
            unit = StorageUnit(
                entries=replace(self.entries, journal=journal),
                buckets=replace(self.buckets, journal=journal),
            )
            try:
                yield unit
            except Exception:
                _logger.warning("Rolling back transaction: writes=%s", len(journal))
                journal.rollback()
                raise
            journal.discard()
