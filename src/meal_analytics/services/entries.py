"""Meal log entry repository interface."""

from datetime import date
from typing import Protocol
from uuid import UUID

from meal_analytics.domain.entries import RawEntry


class MealLogRepository(Protocol):
    """Persistence interface for raw meal log entries."""

    def get_entry(self, entry_id: UUID) -> RawEntry | None:
        """Return an entry by id."""

    def list_entries_on(
        self, day: date, tenant_id: UUID | None = None, *, all_tenants: bool = True
    ) -> list[RawEntry]:
        """Return entries eaten on a day, optionally restricted to one tenant."""

    def list_entries(
        self, tenant_id: UUID | None = None, *, all_tenants: bool = True
    ) -> list[RawEntry]:
        """Return every entry, optionally restricted to one tenant."""

    def save_entry(self, entry: RawEntry) -> None:
        """Insert or replace an entry."""

    def delete_entry(self, entry_id: UUID) -> RawEntry | None:
        """Delete an entry and return what was removed."""
