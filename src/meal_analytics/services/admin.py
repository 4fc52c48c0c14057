"""Admin service for analytics maintenance."""

import logging
from dataclasses import dataclass
from uuid import UUID

from meal_analytics.domain.buckets import (
    Bucket,
    BucketKey,
    DailyBucket,
    Granularity,
)
from meal_analytics.services.buckets import BucketStore
from meal_analytics.services.recompute import RecomputeEngine
from meal_analytics.services.transactions import UnitOfWork

_logger = logging.getLogger(__name__)


@dataclass
class AdminService:
    """Backfill and inspection of stored analytics buckets."""

    unit_of_work: UnitOfWork
    engine: RecomputeEngine
    buckets: BucketStore

    def rebuild_analytics(self, tenant_id: UUID | None = None) -> dict[str, int]:
        """Rebuild every bucket from raw entries and return counts per layer."""
        _logger.info("Analytics rebuild requested: tenant_id=%s", tenant_id)
        with self.unit_of_work.transaction() as unit:
            counts = self.engine.rebuild_all(unit, tenant_id)
        return {granularity.value: count for granularity, count in counts.items()}

    def list_buckets(
        self, granularity: Granularity, tenant_id: UUID | None = None
    ) -> list[dict[str, object]]:
        """Return stored buckets of one granularity, oldest first."""
        rows = self.buckets.range_query(granularity, None, None, tenant_id)
        return [_serialize_bucket(key, value) for key, value in rows]


def _serialize_bucket(key: BucketKey, value: Bucket) -> dict[str, object]:
    payload: dict[str, object] = {
        "period_start": key.period_start.isoformat(),
        "tenant_id": str(key.tenant_id) if key.tenant_id else None,
        "updated_at": value.updated_at.isoformat(),
    }
    if isinstance(value, DailyBucket):
        payload.update(
            {
                "calories": str(value.calories),
                "protein": str(value.protein),
                "carbs": str(value.carbs),
                "fat": str(value.fat),
                "entry_count": value.entry_count,
            }
        )
    else:
        payload.update(
            {
                "avg_calories": str(value.avg_calories),
                "avg_protein": str(value.avg_protein),
                "avg_carbs": str(value.avg_carbs),
                "avg_fat": str(value.avg_fat),
                "days_with_data": value.days_with_data,
            }
        )
    return payload
