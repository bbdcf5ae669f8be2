"""Per-user food insights derived from the meal ledger and the catalog."""

from dataclasses import dataclass, field
from datetime import datetime
from uuid import UUID

from calorie_tracker.domain.catalog import (
    ConsumptionReport,
    FoodConsumption,
    FoodRecommendation,
    SimilarFoods,
)
from calorie_tracker.domain.meals import MealRecord, round_half_up
from calorie_tracker.services.catalog import FoodCatalogService
from calorie_tracker.services.stats import StatsRepository

CONSUMPTION_HISTORY_LIMIT = 500
RECOMMENDATION_HISTORY_LIMIT = 20
SIMILAR_CALORIE_WINDOW = 50
MAX_RESULTS = 10


@dataclass
class _Tally:
    last: datetime
    count: int = 0
    calories: int = 0


@dataclass
class FoodInsightsService:
    """Popular-food statistics and similar-calorie suggestions."""

    repository: StatsRepository
    catalog: FoodCatalogService = field(default_factory=FoodCatalogService)
    history_limit: int = CONSUMPTION_HISTORY_LIMIT

    def popular_foods(self, owner_id: UUID, limit: int = MAX_RESULTS) -> ConsumptionReport:
        """Rank the foods a user logs most often across recent history."""
        meals = self.repository.list_recent_meals(owner_id, self.history_limit)
        tallies: dict[str, _Tally] = {}
        for meal in meals:
            for food in meal.foods:
                tally = tallies.setdefault(food.name, _Tally(last=meal.consumed_at))
                tally.count += 1
                tally.calories += food.calories
                tally.last = max(tally.last, meal.consumed_at)

        foods = [
            FoodConsumption(
                name=name,
                times_consumed=tally.count,
                total_calories=tally.calories,
                average_calories=round_half_up(tally.calories / tally.count),
                last_consumed=tally.last,
                catalog_entry=self.catalog.find_food(name),
            )
            for name, tally in tallies.items()
        ]
        foods.sort(key=lambda food: (-food.times_consumed, -food.total_calories, food.name))
        return ConsumptionReport(
            foods=foods[:limit],
            unique_foods=len(foods),
            total_consumptions=sum(food.times_consumed for food in foods),
        )

    def similar_foods(self, owner_id: UUID, limit: int = MAX_RESULTS) -> SimilarFoods:
        """Suggest unlogged catalog foods near the user's average food calories."""
        meals = self.repository.list_recent_meals(owner_id, RECOMMENDATION_HISTORY_LIMIT)
        calories_by_name = _recent_food_calories(meals)
        if not calories_by_name:
            return SimilarFoods(recent_foods=[], average_calories=0)

        # Catalog calories win over logged portions so the average is per serving.
        reference = [
            catalog_entry.calories if catalog_entry else logged
            for name, logged in calories_by_name.items()
            for catalog_entry in [self.catalog.find_food(name)]
        ]
        average = sum(reference) / len(reference)

        recommendations = []
        for entry in self.catalog.list_foods():
            if entry.name in calories_by_name:
                continue
            difference = abs(entry.calories - average)
            if difference <= SIMILAR_CALORIE_WINDOW:
                recommendations.append(
                    FoodRecommendation(
                        food=entry,
                        calorie_difference=round_half_up(difference),
                        similarity=round(1 - difference / SIMILAR_CALORIE_WINDOW, 2),
                    )
                )
        recommendations.sort(key=lambda item: (-item.similarity, item.food.name))
        return SimilarFoods(
            recent_foods=list(calories_by_name),
            average_calories=round_half_up(average),
            recommendations=recommendations[:limit],
        )


def _recent_food_calories(meals: list[MealRecord]) -> dict[str, int]:
    """Distinct food names, newest first, with the most recent logged calories."""
    seen: dict[str, int] = {}
    for meal in meals:
        for food in meal.foods:
            seen.setdefault(food.name, food.calories)
    return seen
