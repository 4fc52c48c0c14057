"""Domain models for raw meal log entries and their change events."""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from uuid import UUID

ZERO = Decimal(0)


@dataclass(frozen=True)
class Macros:
    """Macronutrient totals attached to a meal log entry."""

    calories: Decimal = ZERO
    protein: Decimal = ZERO
    carbs: Decimal = ZERO
    fat: Decimal = ZERO

    def scaled(self, multiplier: Decimal) -> "Macros":
        """Return macros multiplied by a portion factor."""
        return Macros(
            calories=self.calories * multiplier,
            protein=self.protein * multiplier,
            carbs=self.carbs * multiplier,
            fat=self.fat * multiplier,
        )


@dataclass(frozen=True)
class RawEntry:
    """A logged meal as stored by the meal log CRUD layer."""

    id: UUID
    eaten_on: date
    macros: Macros | None
    created_at: datetime
    tenant_id: UUID | None = None
    meal_name: str | None = None
    items: list[str] = field(default_factory=list)
    notes: str | None = None
    rating: int | None = None


class ChangeKind(Enum):
    """Kind of mutation applied to a raw entry."""

    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"


@dataclass(frozen=True)
class RawEntryChange:
    """Change event emitted by the CRUD layer for every write."""

    kind: ChangeKind
    before: RawEntry | None = None
    after: RawEntry | None = None

    @classmethod
    def inserted(cls, entry: RawEntry) -> "RawEntryChange":
        return cls(kind=ChangeKind.INSERT, after=entry)

    @classmethod
    def updated(cls, before: RawEntry, after: RawEntry) -> "RawEntryChange":
        return cls(kind=ChangeKind.UPDATE, before=before, after=after)

    @classmethod
    def deleted(cls, entry: RawEntry) -> "RawEntryChange":
        return cls(kind=ChangeKind.DELETE, before=entry)


def to_decimal(value: object) -> Decimal:
    """Convert a stored metric to Decimal; missing or malformed values are zero."""
    if value is None or isinstance(value, bool):
        return ZERO
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, int | float | str):
        try:
            result = Decimal(str(value).strip())
        except InvalidOperation:
            return ZERO
    else:
        return ZERO
    if not result.is_finite():
        return ZERO
    return result


def parse_macros(payload: object) -> Macros | None:
    """Parse a macros payload; anything that isn't a mapping means no macros."""
    if not isinstance(payload, dict):
        return None
    return Macros(
        calories=to_decimal(payload.get("calories")),
        protein=to_decimal(payload.get("protein")),
        carbs=to_decimal(payload.get("carbs")),
        fat=to_decimal(payload.get("fat")),
    )
