"""Recompute engine that rebuilds daily, weekly and monthly buckets."""

import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import date
from decimal import ROUND_HALF_EVEN, Context, Decimal, localcontext
from uuid import UUID

from meal_analytics.domain.buckets import (
    BucketKey,
    DailyBucket,
    Granularity,
    PeriodBucket,
)
from meal_analytics.domain.entries import ZERO, RawEntry
from meal_analytics.domain.periods import month_bounds, week_bounds
from meal_analytics.services.transactions import StorageUnit

_logger = logging.getLogger(__name__)

_AVERAGE_CONTEXT = Context(prec=28, rounding=ROUND_HALF_EVEN)

_PERIOD_BOUNDS = {
    Granularity.WEEKLY: week_bounds,
    Granularity.MONTHLY: month_bounds,
}


@dataclass
class RecomputeEngine:
    """Rebuilds buckets from source data instead of applying deltas.

    Every rebuild reads the authoritative rows below it (raw entries for the
    daily layer, daily buckets for weekly and monthly) and replaces the whole
    bucket, so running it again without new writes changes nothing.
    """

    tenant_scoped: bool = False

    def recompute(
        self, unit: StorageUnit, day: date, tenant_id: UUID | None = None
    ) -> None:
        """Rebuild the daily bucket for ``day`` then its week and month."""
        tenant = tenant_id if self.tenant_scoped else None
        self._rebuild_daily(unit, day, tenant)
        for granularity in (Granularity.WEEKLY, Granularity.MONTHLY):
            self._rebuild_period(unit, granularity, day, tenant)

    def rebuild_all(
        self, unit: StorageUnit, tenant_id: UUID | None = None
    ) -> dict[Granularity, int]:
        """Drop every bucket and rebuild all layers from the raw entries."""
        tenant = tenant_id if self.tenant_scoped else None
        for granularity in Granularity:
            unit.buckets.clear(granularity, tenant)

        by_day: dict[date, list[RawEntry]] = defaultdict(list)
        entries = unit.entries.list_entries(tenant, all_tenants=not self.tenant_scoped)
        for entry in entries:
            by_day[entry.eaten_on].append(entry)

        counts = dict.fromkeys(Granularity, 0)
        for day in sorted(by_day):
            bucket = build_daily_bucket(by_day[day])
            if bucket is not None:
                unit.buckets.upsert(Granularity.DAILY, BucketKey(day, tenant), bucket)
                counts[Granularity.DAILY] += 1

        for granularity, bounds in _PERIOD_BOUNDS.items():
            starts = sorted({bounds(day)[0] for day in by_day})
            for start in starts:
                if self._rebuild_period(unit, granularity, start, tenant):
                    counts[granularity] += 1

        _logger.info(
            "Rebuilt analytics buckets: daily=%s weekly=%s monthly=%s",
            counts[Granularity.DAILY],
            counts[Granularity.WEEKLY],
            counts[Granularity.MONTHLY],
        )
        return counts

    def _rebuild_daily(
        self, unit: StorageUnit, day: date, tenant_id: UUID | None
    ) -> None:
        entries = unit.entries.list_entries_on(
            day, tenant_id, all_tenants=not self.tenant_scoped
        )
        key = BucketKey(day, tenant_id)
        bucket = build_daily_bucket(entries)
        if bucket is None:
            unit.buckets.delete(Granularity.DAILY, key)
            _logger.debug("Deleted daily bucket %s", day)
            return
        unit.buckets.upsert(Granularity.DAILY, key, bucket)
        _logger.debug("Upserted daily bucket %s entries=%s", day, bucket.entry_count)

    def _rebuild_period(
        self,
        unit: StorageUnit,
        granularity: Granularity,
        day: date,
        tenant_id: UUID | None,
    ) -> bool:
        start, end = _PERIOD_BOUNDS[granularity](day)
        rows = unit.buckets.range_query(Granularity.DAILY, start, end, tenant_id)
        key = BucketKey(start, tenant_id)
        bucket = build_period_bucket(
            [value for _, value in rows if isinstance(value, DailyBucket)]
        )
        if bucket is None:
            unit.buckets.delete(granularity, key)
            _logger.debug("Deleted %s bucket %s", granularity.value, start)
            return False
        unit.buckets.upsert(granularity, key, bucket)
        _logger.debug(
            "Upserted %s bucket %s days=%s",
            granularity.value,
            start,
            bucket.days_with_data,
        )
        return True


def build_daily_bucket(entries: list[RawEntry]) -> DailyBucket | None:
    """Sum macros across entries; entries without macros still count."""
    if not entries:
        return None
    calories = protein = carbs = fat = ZERO
    for entry in entries:
        if entry.macros is None:
            continue
        calories += entry.macros.calories
        protein += entry.macros.protein
        carbs += entry.macros.carbs
        fat += entry.macros.fat
    return DailyBucket(
        calories=calories,
        protein=protein,
        carbs=carbs,
        fat=fat,
        entry_count=len(entries),
    )


def build_period_bucket(dailies: list[DailyBucket]) -> PeriodBucket | None:
    """Average daily buckets over the days that have data."""
    if not dailies:
        return None
    return PeriodBucket(
        avg_calories=mean([day.calories for day in dailies]),
        avg_protein=mean([day.protein for day in dailies]),
        avg_carbs=mean([day.carbs for day in dailies]),
        avg_fat=mean([day.fat for day in dailies]),
        days_with_data=len(dailies),
    )


def mean(values: list[Decimal]) -> Decimal:
    """Arithmetic mean in a fixed decimal context."""
    with localcontext(_AVERAGE_CONTEXT):
        return sum(values, ZERO) / len(values)
