"""Log a meal straight from a free-text description."""

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from uuid import UUID
from zoneinfo import ZoneInfo

from calorie_tracker.domain.meals import MAX_NOTES_LENGTH, MealRecord, MealType
from calorie_tracker.domain.vision import Classification
from calorie_tracker.errors import ValidationError
from calorie_tracker.services.meals import MealLedgerService
from calorie_tracker.services.vision import ClassificationService

_logger = logging.getLogger(__name__)

BREAKFAST_BEFORE_HOUR = 10
LUNCH_BEFORE_HOUR = 14
SNACK_BEFORE_HOUR = 18
NOTES_PREFIX = "Smart-logged: "


@dataclass(frozen=True)
class SmartLogResult:
    meal: MealRecord
    classification: Classification


@dataclass
class SmartLogService:
    """Classifies a description and records the guessed foods as one meal."""

    classifier: ClassificationService
    ledger: MealLedgerService
    timezone_name: str = "UTC"

    async def log_description(
        self,
        owner_id: UUID,
        description: str,
        meal_type: str | None = None,
        consumed_at: datetime | None = None,
    ) -> SmartLogResult:
        """Guess foods from text, infer the meal type and log the meal."""
        text = (description or "").strip()
        if not text:
            raise ValidationError("Meal description is required")
        classification = await self.classifier.classify(description=text)
        eaten_at = consumed_at or datetime.now(tz=UTC)
        meal = self.ledger.log_meal(
            owner_id,
            classification.foods,
            meal_type=meal_type or self.meal_type_for(eaten_at),
            notes=f"{NOTES_PREFIX}{text}"[:MAX_NOTES_LENGTH],
            consumed_at=eaten_at,
        )
        _logger.info(
            "Meal smart-logged",
            extra={"meal_id": str(meal.id), "method": classification.method},
        )
        return SmartLogResult(meal=meal, classification=classification)

    def meal_type_for(self, moment: datetime) -> MealType:
        """Pick a meal type from the local hour of the meal."""
        if moment.tzinfo is None:
            moment = moment.replace(tzinfo=UTC)
        hour = moment.astimezone(ZoneInfo(self.timezone_name)).hour
        if hour < BREAKFAST_BEFORE_HOUR:
            return MealType.BREAKFAST
        if hour < LUNCH_BEFORE_HOUR:
            return MealType.LUNCH
        if hour < SNACK_BEFORE_HOUR:
            return MealType.SNACK
        return MealType.DINNER
