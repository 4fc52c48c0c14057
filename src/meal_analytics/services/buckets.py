"""Bucket store interface."""

from datetime import date
from typing import Protocol
from uuid import UUID

from meal_analytics.domain.buckets import Bucket, BucketKey, Granularity


class BucketStore(Protocol):
    """Persistence interface for daily, weekly and monthly buckets.

    Writes are full replacements keyed by ``(granularity, key)``; repeating an
    upsert with the same value is a no-op, never an accumulation.
    """

    def get(self, granularity: Granularity, key: BucketKey) -> Bucket | None:
        """Return the bucket stored under a key, if any."""

    def upsert(self, granularity: Granularity, key: BucketKey, value: Bucket) -> None:
        """Replace the bucket stored under a key."""

    def delete(self, granularity: Granularity, key: BucketKey) -> None:
        """Remove the bucket stored under a key; absent keys are ignored."""

    def range_query(
        self,
        granularity: Granularity,
        start: date | None,
        end: date | None,
        tenant_id: UUID | None = None,
    ) -> list[tuple[BucketKey, Bucket]]:
        """Return buckets with ``start <= period_start < end`` ordered by date."""

    def clear(self, granularity: Granularity, tenant_id: UUID | None = None) -> None:
        """Remove every bucket of a granularity for the tenant."""
