"""Change dispatcher that turns raw entry writes into recomputes."""

import logging
from dataclasses import dataclass
from datetime import date
from uuid import UUID

from meal_analytics.domain.entries import ChangeKind, RawEntry, RawEntryChange
from meal_analytics.domain.errors import InvalidChangeError
from meal_analytics.services.recompute import RecomputeEngine
from meal_analytics.services.transactions import StorageUnit

_logger = logging.getLogger(__name__)

AffectedDate = tuple[UUID | None, date]


@dataclass
class ChangeDispatcher:
    """Receives meal log change events and recomputes the affected buckets."""

    engine: RecomputeEngine

    def affected_dates(self, change: RawEntryChange) -> list[AffectedDate]:
        """Return the (tenant, date) pairs whose buckets must be rebuilt.

        Updates always yield both the old and the new date so that an entry
        moved between days is removed from one bucket and added to the other.
        """
        _validate(change)
        rows: list[RawEntry] = []
        if change.kind is ChangeKind.INSERT:
            rows = [change.after]
        elif change.kind is ChangeKind.DELETE:
            rows = [change.before]
        else:
            rows = [change.before, change.after]

        affected: list[AffectedDate] = []
        for row in rows:
            pair = (self._tenant_of(row), row.eaten_on)
            if pair not in affected:
                affected.append(pair)
        return affected

    def on_raw_entry_change(
        self, unit: StorageUnit, change: RawEntryChange
    ) -> list[AffectedDate]:
        """Recompute every affected date inside the caller's unit of work."""
        affected = self.affected_dates(change)
        for tenant_id, day in affected:
            self.engine.recompute(unit, day, tenant_id)
        _logger.debug(
            "Dispatched %s change: dates=%s",
            change.kind.value,
            [day.isoformat() for _, day in affected],
        )
        return affected

    def _tenant_of(self, entry: RawEntry) -> UUID | None:
        return entry.tenant_id if self.engine.tenant_scoped else None


def _validate(change: RawEntryChange) -> None:
    if change.kind in {ChangeKind.INSERT, ChangeKind.UPDATE} and change.after is None:
        raise InvalidChangeError(f"{change.kind.value} change requires 'after'")
    if change.kind in {ChangeKind.DELETE, ChangeKind.UPDATE} and change.before is None:
        raise InvalidChangeError(f"{change.kind.value} change requires 'before'")
