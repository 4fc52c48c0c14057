"""Read-only analytics queries answered from stored buckets."""

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal
from uuid import UUID
from zoneinfo import ZoneInfo

from meal_analytics.domain.analytics import (
    AggregateResult,
    AggregateSummary,
    CalorieExtreme,
    CalorieExtremes,
    MacroAverages,
)
from meal_analytics.domain.buckets import (
    BucketKey,
    DailyBucket,
    Granularity,
    PeriodBucket,
)
from meal_analytics.domain.errors import InvalidWindowError
from meal_analytics.domain.periods import start_of_month, start_of_week
from meal_analytics.services.buckets import BucketStore
from meal_analytics.services.recompute import mean

_WHOLE = Decimal(1)


@dataclass
class AnalyticsService:
    """Answers aggregate and extremes queries without touching raw entries."""

    buckets: BucketStore
    timezone_name: str = "UTC"
    clock: Callable[[], date] | None = field(default=None, repr=False)

    def today(self) -> date:
        """Return the current date in the analytics timezone."""
        if self.clock is not None:
            return self.clock()
        return datetime.now(tz=ZoneInfo(self.timezone_name)).date()

    def get_aggregate(
        self, days_back: int | None = None, tenant_id: UUID | None = None
    ) -> AggregateResult:
        """Return averages, extremes and counts for the last ``days_back`` days.

        Without ``days_back`` every stored bucket is included. The daily window
        is ``[today - (days_back - 1), today]``; weekly and monthly buckets are
        included when their period starts on or after the week or month that
        contains the first day of that window.
        """
        daily_start: date | None = None
        daily_end: date | None = None
        weekly_start: date | None = None
        monthly_start: date | None = None
        if days_back is not None:
            _validate_days_back(days_back)
            today = self.today()
            daily_start = today - timedelta(days=days_back - 1)
            daily_end = today + timedelta(days=1)
            weekly_start = start_of_week(daily_start)
            monthly_start = start_of_month(daily_start)

        daily = _dailies(
            self.buckets.range_query(
                Granularity.DAILY, daily_start, daily_end, tenant_id
            )
        )
        weekly = _periods(
            self.buckets.range_query(Granularity.WEEKLY, weekly_start, None, tenant_id)
        )
        monthly = _periods(
            self.buckets.range_query(
                Granularity.MONTHLY, monthly_start, None, tenant_id
            )
        )

        return AggregateResult(
            daily_average=_averages(
                [bucket.calories for _, bucket in daily],
                [bucket.protein for _, bucket in daily],
                [bucket.carbs for _, bucket in daily],
                [bucket.fat for _, bucket in daily],
            ),
            weekly_average=_period_averages(weekly),
            monthly_average=_period_averages(monthly),
            calorie_extremes=_calorie_extremes(daily),
            summary=AggregateSummary(
                total_entries=sum(bucket.entry_count for _, bucket in daily),
                days_with_data=len(daily),
            ),
        )


def _validate_days_back(days_back: int) -> None:
    if isinstance(days_back, bool) or not isinstance(days_back, int):
        raise InvalidWindowError("days_back must be an integer")
    if days_back <= 0:
        raise InvalidWindowError("days_back must be a positive number of days")


def _dailies(rows: list[tuple[BucketKey, object]]) -> list[tuple[date, DailyBucket]]:
    return [
        (key.period_start, value)
        for key, value in rows
        if isinstance(value, DailyBucket)
    ]


def _periods(rows: list[tuple[BucketKey, object]]) -> list[PeriodBucket]:
    return [value for _, value in rows if isinstance(value, PeriodBucket)]


def _period_averages(buckets: list[PeriodBucket]) -> MacroAverages:
    return _averages(
        [bucket.avg_calories for bucket in buckets],
        [bucket.avg_protein for bucket in buckets],
        [bucket.avg_carbs for bucket in buckets],
        [bucket.avg_fat for bucket in buckets],
    )


def _averages(
    calories: list[Decimal],
    protein: list[Decimal],
    carbs: list[Decimal],
    fat: list[Decimal],
) -> MacroAverages:
    if not calories:
        return MacroAverages(calories=0, protein=0, carbs=0, fat=0, count=0)
    return MacroAverages(
        calories=present(mean(calories)),
        protein=present(mean(protein)),
        carbs=present(mean(carbs)),
        fat=present(mean(fat)),
        count=len(calories),
    )


def _calorie_extremes(daily: list[tuple[date, DailyBucket]]) -> CalorieExtremes:
    highest: tuple[date, DailyBucket] | None = None
    lowest: tuple[date, DailyBucket] | None = None
    # Strict comparisons keep the earliest date on ties; rows arrive date-ordered.
    for day, bucket in sorted(daily, key=lambda row: row[0]):
        if highest is None or bucket.calories > highest[1].calories:
            highest = (day, bucket)
        if lowest is None or bucket.calories < lowest[1].calories:
            lowest = (day, bucket)
    return CalorieExtremes(highest=_extreme(highest), lowest=_extreme(lowest))


def _extreme(row: tuple[date, DailyBucket] | None) -> CalorieExtreme | None:
    if row is None:
        return None
    day, bucket = row
    return CalorieExtreme(day=day, calories=present(bucket.calories))


def present(value: Decimal) -> int:
    """Round a stored metric to a whole number, halves away from zero."""
    return int(value.quantize(_WHOLE, rounding=ROUND_HALF_UP))
