"""Meal log service that writes entries and keeps analytics in step."""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from datetime import UTC, date, datetime
from decimal import Decimal
from uuid import UUID, uuid4

from meal_analytics.domain.entries import Macros, RawEntry, RawEntryChange
from meal_analytics.domain.errors import EntryNotFoundError
from meal_analytics.services.dispatcher import ChangeDispatcher
from meal_analytics.services.transactions import StorageUnit, UnitOfWork

_logger = logging.getLogger(__name__)

_UPDATABLE_FIELDS = {
    "eaten_on",
    "macros",
    "meal_name",
    "items",
    "notes",
    "rating",
    "tenant_id",
}


@dataclass(frozen=True)
class MealLogDraft:
    """Fields supplied when logging a new meal."""

    eaten_on: date
    macros: Macros | None = None
    meal_name: str | None = None
    items: list[str] = field(default_factory=list)
    notes: str | None = None
    rating: int | None = None
    tenant_id: UUID | None = None


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


@dataclass
class MealLogService:
    """CRUD for meal logs; every write emits its change event in the same unit."""

    unit_of_work: UnitOfWork
    dispatcher: ChangeDispatcher
    clock: Callable[[], datetime] = field(default=_utcnow, repr=False)

    def get_meal(self, entry_id: UUID) -> RawEntry | None:
        """Return a logged meal by id."""
        with self.unit_of_work.transaction() as unit:
            return unit.entries.get_entry(entry_id)

    def list_meals(
        self,
        eaten_on: date | None = None,
        tenant_id: UUID | None = None,
        *,
        all_tenants: bool = True,
    ) -> list[RawEntry]:
        """Return logged meals, newest day first and newest entry first."""
        with self.unit_of_work.transaction() as unit:
            if eaten_on is None:
                entries = unit.entries.list_entries(tenant_id, all_tenants=all_tenants)
            else:
                entries = unit.entries.list_entries_on(
                    eaten_on, tenant_id, all_tenants=all_tenants
                )
        return sorted(
            entries, key=lambda entry: (entry.eaten_on, entry.created_at), reverse=True
        )

    def log_meal(self, draft: MealLogDraft) -> RawEntry:
        """Persist a new meal and recompute its day."""
        with self.unit_of_work.transaction() as unit:
            entry = self._insert(unit, draft)
        _logger.info("Logged meal %s eaten_on=%s", entry.id, entry.eaten_on)
        return entry

    def log_meals(self, drafts: list[MealLogDraft]) -> list[RawEntry]:
        """Persist several meals in one unit of work; all or nothing."""
        with self.unit_of_work.transaction() as unit:
            entries = [self._insert(unit, draft) for draft in drafts]
        _logger.info("Logged %s meals in bulk", len(entries))
        return entries

    def update_meal(self, entry_id: UUID, changes: dict[str, object]) -> RawEntry:
        """Apply field changes to a meal and recompute old and new days."""
        unknown = set(changes) - _UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update fields: {', '.join(sorted(unknown))}")
        with self.unit_of_work.transaction() as unit:
            before = unit.entries.get_entry(entry_id)
            if before is None:
                raise EntryNotFoundError(f"Meal log {entry_id} not found")
            after = replace(before, **changes)
            unit.entries.save_entry(after)
            self.dispatcher.on_raw_entry_change(
                unit, RawEntryChange.updated(before, after)
            )
        _logger.info(
            "Updated meal %s eaten_on=%s->%s", entry_id, before.eaten_on, after.eaten_on
        )
        return after

    def delete_meal(self, entry_id: UUID) -> RawEntry:
        """Delete a meal and recompute its day."""
        with self.unit_of_work.transaction() as unit:
            removed = unit.entries.delete_entry(entry_id)
            if removed is None:
                raise EntryNotFoundError(f"Meal log {entry_id} not found")
            self.dispatcher.on_raw_entry_change(unit, RawEntryChange.deleted(removed))
        _logger.info("Deleted meal %s eaten_on=%s", entry_id, removed.eaten_on)
        return removed

    def relog_meal(
        self,
        entry_id: UUID,
        multiplier: Decimal = Decimal(1),
        notes: str | None = None,
        eaten_on: date | None = None,
    ) -> RawEntry:
        """Log a copy of an existing meal, optionally scaled and re-dated."""
        if multiplier <= 0:
            raise ValueError("multiplier must be positive")
        with self.unit_of_work.transaction() as unit:
            source = unit.entries.get_entry(entry_id)
            if source is None:
                raise EntryNotFoundError(f"Meal log {entry_id} not found")
            meal_name = source.meal_name
            if multiplier != 1 and meal_name:
                meal_name = f"{meal_name} ({format(multiplier.normalize(), 'f')}x)"
            draft = MealLogDraft(
                eaten_on=eaten_on or self.clock().date(),
                macros=source.macros.scaled(multiplier) if source.macros else None,
                meal_name=meal_name,
                items=list(source.items),
                notes=notes or source.notes,
                rating=source.rating,
                tenant_id=source.tenant_id,
            )
            entry = self._insert(unit, draft)
        _logger.info("Re-logged meal %s as %s", entry_id, entry.id)
        return entry

    def _insert(self, unit: StorageUnit, draft: MealLogDraft) -> RawEntry:
        entry = RawEntry(
            id=uuid4(),
            eaten_on=draft.eaten_on,
            macros=draft.macros,
            created_at=self.clock(),
            tenant_id=draft.tenant_id,
            meal_name=draft.meal_name,
            items=list(draft.items),
            notes=draft.notes,
            rating=draft.rating,
        )
        unit.entries.save_entry(entry)
        self.dispatcher.on_raw_entry_change(unit, RawEntryChange.inserted(entry))
        return entry
