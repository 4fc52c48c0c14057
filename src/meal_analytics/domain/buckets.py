"""Domain models for stored analytics buckets."""

from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID


class Granularity(Enum):
    """Calendar period a bucket aggregates over."""

    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


@dataclass(frozen=True)
class BucketKey:
    """Natural key of a bucket: period start plus the optional tenant."""

    period_start: date
    tenant_id: UUID | None = None


@dataclass(frozen=True)
class DailyBucket:
    """Summed macros for a single calendar day."""

    calories: Decimal
    protein: Decimal
    carbs: Decimal
    fat: Decimal
    entry_count: int
    updated_at: datetime = field(
        default_factory=lambda: datetime.now(tz=UTC), compare=False
    )


@dataclass(frozen=True)
class PeriodBucket:
    """Average daily macros over the days with data in a week or month."""

    avg_calories: Decimal
    avg_protein: Decimal
    avg_carbs: Decimal
    avg_fat: Decimal
    days_with_data: int
    updated_at: datetime = field(
        default_factory=lambda: datetime.now(tz=UTC), compare=False
    )


Bucket = DailyBucket | PeriodBucket


def ensure_bucket_type(granularity: Granularity, value: object) -> None:
    """Reject values whose type does not belong to the granularity."""
    expected = DailyBucket if granularity is Granularity.DAILY else PeriodBucket
    if not isinstance(value, expected):
        raise TypeError(
            f"{granularity.value} buckets require {expected.__name__}, "
            f"got {type(value).__name__}"
        )
