"""Read-only reference food catalog."""

from dataclasses import dataclass, field

from calorie_tracker.domain.catalog import FoodCatalogEntry
from calorie_tracker.errors import NotFoundError


def _entry(  # noqa: PLR0913
    name: str,
    calories: int,
    category: str,
    nutrition: dict[str, float],
    amount: float,
    unit: str,
) -> FoodCatalogEntry:
    return FoodCatalogEntry(
        name=name,
        calories=calories,
        nutrition=nutrition,
        serving_size={"amount": amount, "unit": unit},
        category=category,
    )


DEFAULT_FOODS: tuple[FoodCatalogEntry, ...] = (
    _entry(
        "burger", 540, "fastfood",
        {"protein": 25, "carbs": 40, "fat": 31, "fiber": 3, "sugar": 5},
        1, "piece",
    ),
    _entry(
        "pizza", 285, "fastfood",
        {"protein": 12, "carbs": 36, "fat": 10, "fiber": 2, "sugar": 4},
        1, "slice",
    ),
    _entry(
        "apple", 95, "fruits",
        {"protein": 0.5, "carbs": 25, "fat": 0.3, "fiber": 4, "sugar": 19},
        1, "medium",
    ),
    _entry(
        "banana", 105, "fruits",
        {"protein": 1.3, "carbs": 27, "fat": 0.4, "fiber": 3, "sugar": 14},
        1, "medium",
    ),
    _entry(
        "rice", 206, "grains",
        {"protein": 4.3, "carbs": 45, "fat": 0.4, "fiber": 0.6, "sugar": 0.1},
        1, "cup cooked",
    ),
    _entry(
        "chicken", 231, "proteins",
        {"protein": 43.5, "carbs": 0, "fat": 5, "fiber": 0, "sugar": 0},
        100, "grams",
    ),
    _entry(
        "pasta", 220, "grains",
        {"protein": 8, "carbs": 44, "fat": 1.1, "fiber": 2.5, "sugar": 1.5},
        1, "cup cooked",
    ),
    _entry(
        "salad", 35, "other",
        {"protein": 2.9, "carbs": 6.8, "fat": 0.2, "fiber": 2.9, "sugar": 3.3},
        1, "cup",
    ),
    _entry(
        "sandwich", 320, "other",
        {"protein": 15, "carbs": 35, "fat": 12, "fiber": 4, "sugar": 6},
        1, "piece",
    ),
    _entry(
        "eggs", 155, "proteins",
        {"protein": 13, "carbs": 1.1, "fat": 11, "fiber": 0, "sugar": 1.1},
        2, "large eggs",
    ),
    _entry(
        "yogurt", 150, "dairy",
        {"protein": 8, "carbs": 17, "fat": 8, "fiber": 0, "sugar": 16},
        6, "oz container",
    ),
)


@dataclass
class FoodCatalogService:
    """Lookup and search over reference foods."""

    foods: tuple[FoodCatalogEntry, ...] = field(default=DEFAULT_FOODS)

    def list_foods(self) -> list[FoodCatalogEntry]:
        """Return every food sorted by name."""
        return sorted(self.foods, key=lambda food: food.name)

    def categorized(self) -> dict[str, list[FoodCatalogEntry]]:
        """Group foods by category, each group sorted by name."""
        groups: dict[str, list[FoodCatalogEntry]] = {}
        for food in self.list_foods():
            groups.setdefault(food.category, []).append(food)
        return groups

    def search(
        self,
        query: str | None = None,
        max_calories: int | None = None,
        min_protein: float | None = None,
        category: str | None = None,
    ) -> list[FoodCatalogEntry]:
        """Filter foods; name-prefix matches rank first when a query is given."""
        term = (query or "").strip().lower()
        results = [
            food
            for food in self.foods
            if (not term or term in food.name)
            and (max_calories is None or food.calories <= max_calories)
            and (min_protein is None or food.nutrition.get("protein", 0) >= min_protein)
            and (not category or food.category == category.strip().lower())
        ]
        if term:
            return sorted(
                results,
                key=lambda food: (not food.name.startswith(term), food.calories),
            )
        return sorted(results, key=lambda food: food.name)

    def get_food(self, name: str) -> FoodCatalogEntry:
        """Return a food by exact name."""
        food = self.find_food(name)
        if food is None:
            raise NotFoundError(f"Food '{name.strip().lower()}' not found")
        return food

    def find_food(self, name: str) -> FoodCatalogEntry | None:
        wanted = name.strip().lower()
        for food in self.foods:
            if food.name == wanted:
                return food
        return None

    def match_text(self, text: str) -> list[FoodCatalogEntry]:
        """Return foods whose names appear in free text, in catalog order."""
        lowered = text.lower()
        return [food for food in self.foods if food.name in lowered]
