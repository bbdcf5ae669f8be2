"""Domain models for statistics."""

from dataclasses import dataclass
from datetime import datetime

from calorie_tracker.domain.meals import MealRecord


@dataclass(frozen=True)
class PeriodTotals:
    """Sums over an aggregation window."""

    start: datetime
    end: datetime
    total_calories: int = 0
    meal_count: int = 0
    total_steps: int = 0


@dataclass(frozen=True)
class GoalProgress:
    """Progress of today's intake toward the daily goal."""

    current: int
    goal: int
    percentage: int
    remaining: int


@dataclass(frozen=True)
class ProgressOverview:
    """Dashboard view combining today, this week and lifetime totals."""

    today: PeriodTotals
    week: PeriodTotals
    week_average_daily: int
    lifetime_calories: int
    daily_progress: GoalProgress
    recent_meals: list[MealRecord]
    total_meals_logged: int
    average_calories_per_meal: int
