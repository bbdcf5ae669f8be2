"""Domain models for the meal ledger."""

import math
from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from uuid import UUID

MAX_NOTES_LENGTH = 500
MAX_PAGE_SIZE = 100


class MealType(StrEnum):
    """Kind of meal a record belongs to."""

    BREAKFAST = "breakfast"
    LUNCH = "lunch"
    DINNER = "dinner"
    SNACK = "snack"
    OTHER = "other"


def _default_serving_size() -> dict[str, object]:
    return {"amount": 1, "unit": "piece"}


@dataclass(frozen=True)
class FoodItem:
    """Single food inside a meal."""

    name: str
    calories: int
    nutrition: dict[str, float] = field(default_factory=dict)
    serving_size: dict[str, object] = field(default_factory=_default_serving_size)
    confidence: float = 1.0

    def to_dict(self) -> dict[str, object]:
        return {
            "name": self.name,
            "calories": self.calories,
            "nutrition": dict(self.nutrition),
            "serving_size": dict(self.serving_size),
            "confidence": self.confidence,
        }

    @classmethod
    def from_dict(cls, raw: dict[str, object]) -> "FoodItem":
        return cls(
            name=str(raw["name"]),
            calories=int(raw["calories"]),
            nutrition=dict(raw.get("nutrition") or {}),
            serving_size=dict(raw.get("serving_size") or _default_serving_size()),
            confidence=float(raw.get("confidence", 1.0)),
        )


@dataclass(frozen=True)
class MealDraft:
    """Validated meal content with server-computed totals, ready to persist."""

    foods: list[FoodItem]
    total_calories: int
    recommended_steps: int
    meal_type: MealType
    notes: str
    consumed_at: datetime


@dataclass(frozen=True)
class MealRecord:
    """Persisted meal owned by a user."""

    id: UUID
    owner_id: UUID
    foods: list[FoodItem]
    total_calories: int
    recommended_steps: int
    meal_type: MealType
    notes: str
    consumed_at: datetime
    created_at: datetime
    updated_at: datetime | None = None


@dataclass(frozen=True)
class MealPatch:
    """Partial update to a meal; None means unchanged."""

    foods: list[dict[str, object]] | None = None
    meal_type: str | None = None
    notes: str | None = None
    consumed_at: datetime | None = None


@dataclass(frozen=True)
class MealChanges:
    """Validated partial update; unset fields are taken from the stored row.

    Totals are set exactly when foods are, since they derive from them.
    """

    foods: list[FoodItem] | None = None
    total_calories: int | None = None
    recommended_steps: int | None = None
    meal_type: MealType | None = None
    notes: str | None = None
    consumed_at: datetime | None = None


@dataclass(frozen=True)
class MealFilters:
    """History filters; date bounds are inclusive."""

    start: datetime | None = None
    end: datetime | None = None
    meal_type: MealType | None = None


@dataclass(frozen=True)
class MealPage:
    """One page of meal history ordered by consumed_at descending."""

    items: list[MealRecord]
    total: int
    page: int
    page_size: int

    @property
    def total_pages(self) -> int:
        return (self.total + self.page_size - 1) // self.page_size

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    @property
    def has_prev(self) -> bool:
        return self.page > 1


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves going up."""
    return int(math.floor(value + 0.5))


def recommended_steps_for(total_calories: int, step_factor: float) -> int:
    """Return walking steps suggested to offset a meal."""
    return max(0, round_half_up(total_calories * step_factor))
