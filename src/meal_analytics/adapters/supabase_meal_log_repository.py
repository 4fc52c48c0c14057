"""Supabase repository for meal logs."""

from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from functools import partial
from typing import Any
from uuid import UUID

from supabase import Client

from meal_analytics.adapters.supabase_support import (
    execute,
    fetch_all,
    match_tenant,
)
from meal_analytics.domain.entries import Macros, RawEntry, parse_macros
from meal_analytics.services.entries import MealLogRepository
from meal_analytics.services.transactions import Journal

_COLUMNS = "id, user_id, eaten_on, macros, meal_name, items, notes, rating, created_at"


@dataclass
class SupabaseMealLogRepository(MealLogRepository):
    """Supabase implementation for the ``meal_logs`` table."""

    client: Client
    journal: Journal | None = field(default=None, repr=False)

    def get_entry(self, entry_id: UUID) -> RawEntry | None:
        """Return a meal log row by id."""
        response = execute(
            self.client.table("meal_logs")
            .select(_COLUMNS)
            .eq("id", str(entry_id))
            .limit(1),
            "select",
        )
        if not response.data:
            return None
        return _parse_entry(response.data[0])

    def list_entries_on(
        self, day: date, tenant_id: UUID | None = None, *, all_tenants: bool = True
    ) -> list[RawEntry]:
        """Return meal logs eaten on a day."""

        def build_query() -> Any:
            query = (
                self.client.table("meal_logs")
                .select(_COLUMNS)
                .eq("eaten_on", day.isoformat())
            )
            if not all_tenants:
                query = match_tenant(query, tenant_id)
            return query.order("created_at", desc=False)

        return [_parse_entry(row) for row in fetch_all(build_query, "select")]

    def list_entries(
        self, tenant_id: UUID | None = None, *, all_tenants: bool = True
    ) -> list[RawEntry]:
        """Return every meal log ordered by day."""

        def build_query() -> Any:
            query = (
                self.client.table("meal_logs")
                .select(_COLUMNS)
                .not_.is_("eaten_on", "null")
            )
            if not all_tenants:
                query = match_tenant(query, tenant_id)
            return query.order("eaten_on", desc=False).order("created_at", desc=False)

        return [_parse_entry(row) for row in fetch_all(build_query, "select")]

    def save_entry(self, entry: RawEntry) -> None:
        """Insert or replace a meal log row."""
        if self.journal is not None:
            previous = self.get_entry(entry.id)
            self.journal.record(partial(self._restore, entry.id, previous))
        self._write(entry)

    def delete_entry(self, entry_id: UUID) -> RawEntry | None:
        """Delete a meal log row and return it."""
        previous = self.get_entry(entry_id)
        if previous is None:
            return None
        if self.journal is not None:
            self.journal.record(partial(self._restore, entry_id, previous))
        self._remove(entry_id)
        return previous

    def _write(self, entry: RawEntry) -> None:
        execute(
            self.client.table("meal_logs").upsert(_entry_row(entry), on_conflict="id"),
            "upsert",
        )

    def _remove(self, entry_id: UUID) -> None:
        execute(
            self.client.table("meal_logs").delete().eq("id", str(entry_id)), "delete"
        )

    def _restore(self, entry_id: UUID, previous: RawEntry | None) -> None:
        if previous is None:
            self._remove(entry_id)
        else:
            self._write(previous)


def _entry_row(entry: RawEntry) -> dict[str, object]:
    return {
        "id": str(entry.id),
        "user_id": str(entry.tenant_id) if entry.tenant_id else None,
        "eaten_on": entry.eaten_on.isoformat(),
        "macros": _macros_payload(entry.macros),
        "meal_name": entry.meal_name,
        "items": list(entry.items),
        "notes": entry.notes,
        "rating": entry.rating,
        "created_at": entry.created_at.isoformat(),
    }


def _macros_payload(macros: Macros | None) -> dict[str, float] | None:
    if macros is None:
        return None
    # jsonb keeps JSON numbers; the web client reads them as numbers.
    return {
        "calories": float(macros.calories),
        "protein": float(macros.protein),
        "carbs": float(macros.carbs),
        "fat": float(macros.fat),
    }


def _parse_entry(row: dict[str, Any]) -> RawEntry:
    created_at_raw = row.get("created_at")
    created_at = (
        datetime.fromisoformat(created_at_raw)
        if isinstance(created_at_raw, str) and created_at_raw
        else datetime.min.replace(tzinfo=UTC)
    )
    user_id = row.get("user_id")
    items = row.get("items")
    rating = row.get("rating")
    return RawEntry(
        id=UUID(str(row["id"])),
        eaten_on=date.fromisoformat(str(row["eaten_on"])[:10]),
        macros=parse_macros(row.get("macros")),
        created_at=created_at,
        tenant_id=UUID(str(user_id)) if user_id else None,
        meal_name=row.get("meal_name"),
        items=[str(item) for item in items] if isinstance(items, list) else [],
        notes=row.get("notes"),
        rating=int(rating) if isinstance(rating, int | float) else None,
    )
