"""Supabase repository for analytics cache tables."""

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
from meal_analytics.domain.buckets import (
    Bucket,
    BucketKey,
    DailyBucket,
    Granularity,
    PeriodBucket,
    ensure_bucket_type,
)
from meal_analytics.domain.entries import to_decimal
from meal_analytics.services.buckets import BucketStore
from meal_analytics.services.transactions import Journal

_TABLES = {
    Granularity.DAILY: ("daily_analytics_cache", "date"),
    Granularity.WEEKLY: ("weekly_analytics_cache", "week_start"),
    Granularity.MONTHLY: ("monthly_analytics_cache", "month_start"),
}


@dataclass
class SupabaseBucketStore(BucketStore):
    """Supabase implementation of the bucket store.

    Rows with ``user_id`` NULL hold the global aggregate. Each table carries a
    ``UNIQUE NULLS NOT DISTINCT (user_id, <period column>)`` constraint so the
    upsert below replaces the row in place.
    """

    client: Client
    journal: Journal | None = field(default=None, repr=False)

    def get(self, granularity: Granularity, key: BucketKey) -> Bucket | None:
        """Return a bucket row by key."""
        table, column = _TABLES[granularity]
        query = self.client.table(table).select("*").eq(
            column, key.period_start.isoformat()
        )
        response = execute(match_tenant(query, key.tenant_id).limit(1), "select")
        if not response.data:
            return None
        return _parse_bucket(granularity, response.data[0])

    def upsert(self, granularity: Granularity, key: BucketKey, value: Bucket) -> None:
        """Replace the bucket row for a key."""
        ensure_bucket_type(granularity, value)
        if self.journal is not None:
            previous = self.get(granularity, key)
            self.journal.record(partial(self._restore, granularity, key, previous))
        self._write(granularity, key, value)

    def delete(self, granularity: Granularity, key: BucketKey) -> None:
        """Delete the bucket row for a key."""
        if self.journal is not None:
            previous = self.get(granularity, key)
            if previous is None:
                return
            self.journal.record(partial(self._restore, granularity, key, previous))
        self._remove(granularity, key)

    def range_query(
        self,
        granularity: Granularity,
        start: date | None,
        end: date | None,
        tenant_id: UUID | None = None,
    ) -> list[tuple[BucketKey, Bucket]]:
        """Return bucket rows in ``[start, end)`` ordered by period start."""
        table, column = _TABLES[granularity]

        def build_query() -> Any:
            query = match_tenant(self.client.table(table).select("*"), tenant_id)
            if start is not None:
                query = query.gte(column, start.isoformat())
            if end is not None:
                query = query.lt(column, end.isoformat())
            return query.order(column, desc=False)

        rows = fetch_all(build_query, "select")
        return [
            (_parse_key(granularity, row), _parse_bucket(granularity, row))
            for row in rows
        ]

    def clear(self, granularity: Granularity, tenant_id: UUID | None = None) -> None:
        """Delete every bucket row of a granularity for the tenant."""
        if self.journal is not None:
            for key, previous in self.range_query(granularity, None, None, tenant_id):
                self.journal.record(
                    partial(self._restore, granularity, key, previous)
                )
        table, _ = _TABLES[granularity]
        execute(match_tenant(self.client.table(table).delete(), tenant_id), "delete")

    def _write(self, granularity: Granularity, key: BucketKey, value: Bucket) -> None:
        table, column = _TABLES[granularity]
        execute(
            self.client.table(table).upsert(
                _bucket_row(granularity, key, value), on_conflict=f"user_id,{column}"
            ),
            "upsert",
        )

    def _remove(self, granularity: Granularity, key: BucketKey) -> None:
        table, column = _TABLES[granularity]
        query = self.client.table(table).delete().eq(
            column, key.period_start.isoformat()
        )
        execute(match_tenant(query, key.tenant_id), "delete")

    def _restore(
        self, granularity: Granularity, key: BucketKey, previous: Bucket | None
    ) -> None:
        if previous is None:
            self._remove(granularity, key)
        else:
            self._write(granularity, key, previous)


def _bucket_row(
    granularity: Granularity, key: BucketKey, value: Bucket
) -> dict[str, object]:
    _, column = _TABLES[granularity]
    row: dict[str, object] = {
        "user_id": str(key.tenant_id) if key.tenant_id else None,
        column: key.period_start.isoformat(),
        "updated_at": value.updated_at.isoformat(),
    }
    # Numeric columns receive strings so PostgREST casts without float rounding.
    if isinstance(value, DailyBucket):
        row.update(
            {
                "calories": str(value.calories),
                "protein": str(value.protein),
                "carbs": str(value.carbs),
                "fat": str(value.fat),
                "meals_count": value.entry_count,
            }
        )
    else:
        row.update(
            {
                "avg_calories": str(value.avg_calories),
                "avg_protein": str(value.avg_protein),
                "avg_carbs": str(value.avg_carbs),
                "avg_fat": str(value.avg_fat),
                "days_with_data": value.days_with_data,
            }
        )
    return row


def _parse_key(granularity: Granularity, row: dict[str, Any]) -> BucketKey:
    _, column = _TABLES[granularity]
    user_id = row.get("user_id")
    return BucketKey(
        period_start=date.fromisoformat(str(row[column])[:10]),
        tenant_id=UUID(str(user_id)) if user_id else None,
    )


def _parse_bucket(granularity: Granularity, row: dict[str, Any]) -> Bucket:
    updated_at_raw = row.get("updated_at")
    updated_at = (
        datetime.fromisoformat(updated_at_raw)
        if isinstance(updated_at_raw, str) and updated_at_raw
        else datetime.now(tz=UTC)
    )
    if granularity is Granularity.DAILY:
        return DailyBucket(
            calories=to_decimal(row.get("calories")),
            protein=to_decimal(row.get("protein")),
            carbs=to_decimal(row.get("carbs")),
            fat=to_decimal(row.get("fat")),
            entry_count=int(row.get("meals_count") or 0),
            updated_at=updated_at,
        )
    return PeriodBucket(
        avg_calories=to_decimal(row.get("avg_calories")),
        avg_protein=to_decimal(row.get("avg_protein")),
        avg_carbs=to_decimal(row.get("avg_carbs")),
        avg_fat=to_decimal(row.get("avg_fat")),
        days_with_data=int(row.get("days_with_data") or 0),
        updated_at=updated_at,
    )
