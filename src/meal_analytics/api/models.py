"""Pydantic models for meal log API payloads."""

from datetime import date
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field

from meal_analytics.domain.entries import Macros
from meal_analytics.services.meals import MealLogDraft


class MacrosPayload(BaseModel):
    """Macro totals for a meal."""

    calories: Decimal = Decimal(0)
    protein: Decimal = Decimal(0)
    carbs: Decimal = Decimal(0)
    fat: Decimal = Decimal(0)

    def to_domain(self) -> Macros:
        return Macros(
            calories=self.calories,
            protein=self.protein,
            carbs=self.carbs,
            fat=self.fat,
        )


class MealLogCreate(BaseModel):
    """Payload for logging a meal."""

    eaten_on: date
    macros: MacrosPayload | None = None
    meal_name: str | None = None
    items: list[str] = Field(default_factory=list)
    notes: str | None = None
    rating: int | None = Field(default=None, ge=1, le=5)

    def to_draft(self, tenant_id: UUID | None) -> MealLogDraft:
        return MealLogDraft(
            eaten_on=self.eaten_on,
            macros=self.macros.to_domain() if self.macros else None,
            meal_name=self.meal_name,
            items=list(self.items),
            notes=self.notes,
            rating=self.rating,
            tenant_id=tenant_id,
        )


class MealLogBulkCreate(BaseModel):
    """Payload for logging several meals at once."""

    meals: list[MealLogCreate] = Field(min_length=1)


class MealLogUpdate(BaseModel):
    """Partial update for a logged meal; only fields sent are changed."""

    eaten_on: date | None = None
    macros: MacrosPayload | None = None
    meal_name: str | None = None
    items: list[str] | None = None
    notes: str | None = None
    rating: int | None = Field(default=None, ge=1, le=5)

    def to_changes(self) -> dict[str, object]:
        changes: dict[str, object] = {}
        for name in self.model_fields_set:
            value = getattr(self, name)
            if name == "macros":
                changes[name] = value.to_domain() if value else None
            elif name == "eaten_on" and value is None:
                continue
            elif name == "items":
                changes[name] = list(value or [])
            else:
                changes[name] = value
        return changes


class RelogRequest(BaseModel):
    """Payload for logging a copy of an existing meal."""

    multiplier: Decimal = Field(default=Decimal(1), gt=0)
    notes: str | None = None
    eaten_on: date | None = None
