"""Reference food catalog models."""

from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True)
class FoodCatalogEntry:
    """Read-only reference food with per-serving nutrition."""

    name: str
    calories: int
    nutrition: dict[str, float]
    serving_size: dict[str, object]
    category: str

    def to_dict(self) -> dict[str, object]:
        return {
            "name": self.name,
            "calories": self.calories,
            "nutrition": dict(self.nutrition),
            "serving_size": dict(self.serving_size),
            "category": self.category,
        }


@dataclass(frozen=True)
class FoodConsumption:
    """How often a user logged one food."""

    name: str
    times_consumed: int
    total_calories: int
    average_calories: int
    last_consumed: datetime
    catalog_entry: FoodCatalogEntry | None = None


@dataclass(frozen=True)
class ConsumptionReport:
    """Most logged foods plus totals over every food in the scanned history."""

    foods: list[FoodConsumption]
    unique_foods: int
    total_consumptions: int


@dataclass(frozen=True)
class FoodRecommendation:
    """Catalog food close in calories to what the user usually eats."""

    food: FoodCatalogEntry
    calorie_difference: int
    similarity: float


@dataclass(frozen=True)
class SimilarFoods:
    recent_foods: list[str]
    average_calories: int
    recommendations: list[FoodRecommendation] = field(default_factory=list)
