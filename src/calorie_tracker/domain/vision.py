"""Models for food classification results."""

from dataclasses import dataclass

from pydantic import BaseModel, Field

from calorie_tracker.domain.meals import FoodItem


class VisionFood(BaseModel):
    """Single food detected by a vision model."""

    name: str = Field(min_length=1)
    confidence: float = Field(ge=0.0, le=1.0)
    calories: int = Field(ge=0)
    serving_unit: str | None = None


class VisionExtract(BaseModel):
    """Structured output for vision extraction."""

    foods: list[VisionFood]


@dataclass(frozen=True)
class Classification:
    """Guessed foods for an image or description."""

    foods: list[FoodItem]
    confidence: float
    method: str

    @property
    def total_calories(self) -> int:
        return sum(food.calories for food in self.foods)


@dataclass(frozen=True)
class BatchItemResult:
    """Outcome for one image of a batch; exactly one of the two is set."""

    filename: str | None
    classification: Classification | None = None
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.classification is not None
