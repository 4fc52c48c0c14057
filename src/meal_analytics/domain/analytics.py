"""Domain models for analytics query results."""

from dataclasses import dataclass
from datetime import date


@dataclass(frozen=True)
class MacroAverages:
    """Rounded average macros and the number of buckets averaged."""

    calories: int
    protein: int
    carbs: int
    fat: int
    count: int


@dataclass(frozen=True)
class CalorieExtreme:
    """A single day's calorie total."""

    day: date
    calories: int


@dataclass(frozen=True)
class CalorieExtremes:
    """Highest and lowest calorie days in a window."""

    highest: CalorieExtreme | None
    lowest: CalorieExtreme | None


@dataclass(frozen=True)
class AggregateSummary:
    """Entry and day counts in a window."""

    total_entries: int
    days_with_data: int


@dataclass(frozen=True)
class AggregateResult:
    """Answer to an analytics aggregate query."""

    daily_average: MacroAverages
    weekly_average: MacroAverages
    monthly_average: MacroAverages
    calorie_extremes: CalorieExtremes
    summary: AggregateSummary
