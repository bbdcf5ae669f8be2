"""Aggregation service for calorie statistics."""

import logging
from dataclasses import dataclass
from datetime import UTC, date, datetime, time, timedelta
from typing import Protocol
from uuid import UUID
from zoneinfo import ZoneInfo

from calorie_tracker.domain.meals import MealRecord, round_half_up
from calorie_tracker.domain.models import UserAccount
from calorie_tracker.domain.stats import GoalProgress, PeriodTotals, ProgressOverview
from calorie_tracker.errors import NotFoundError
from calorie_tracker.services.cache import Cache

_logger = logging.getLogger(__name__)

DAYS_PER_WEEK = 7
RECENT_MEALS_LIMIT = 10


class StatsRepository(Protocol):
    """Read-side persistence interface for meal statistics."""

    def summarize_meals(
        self, owner_id: UUID, start: datetime, end: datetime
    ) -> PeriodTotals:
        """Return sums for meals with start <= consumed_at < end."""

    def list_recent_meals(self, owner_id: UUID, limit: int) -> list[MealRecord]:
        """Return the most recently consumed meals."""

    def count_meals(self, owner_id: UUID) -> int:
        """Return how many meals the user has logged."""


class AccountLookup(Protocol):
    """Subset of the user repository needed for goals and lifetime totals."""

    def get_by_id(self, user_id: UUID) -> UserAccount | None:
        """Return a user by id."""


def stats_cache_prefix(owner_id: UUID) -> str:
    """Return the cache key prefix holding a user's aggregates."""
    return f"stats:{owner_id}:"


@dataclass
class AggregationService:
    """Computes daily, weekly and goal-progress views from the ledger."""

    repository: StatsRepository
    accounts: AccountLookup
    timezone_name: str = "UTC"
    cache: Cache | None = None
    cache_ttl_seconds: int = 300

    def today(self) -> date:
        """Return the current calendar date in the configured timezone."""
        return datetime.now(tz=ZoneInfo(self.timezone_name)).date()

    def daily_totals(self, owner_id: UUID, day: date) -> PeriodTotals:
        """Sum meals consumed during the given calendar day."""
        start = self._start_of_day(day)
        return self._totals(
            owner_id, f"day:{day.isoformat()}", start, start + timedelta(hours=24)
        )

    def weekly_totals(self, owner_id: UUID, day: date) -> PeriodTotals:
        """Sum meals consumed during the Sunday-based week containing the day."""
        week_start = day - timedelta(days=(day.weekday() + 1) % DAYS_PER_WEEK)
        start = self._start_of_day(week_start)
        return self._totals(
            owner_id,
            f"week:{week_start.isoformat()}",
            start,
            start + timedelta(hours=24 * DAYS_PER_WEEK),
        )

    def progress(self, owner_id: UUID, day: date | None = None) -> GoalProgress:
        """Return today's intake against the user's daily goal."""
        account = self._account(owner_id)
        today = self.daily_totals(owner_id, day or self.today())
        return _goal_progress(today.total_calories, account.daily_calorie_goal)

    def overview(self, owner_id: UUID, day: date | None = None) -> ProgressOverview:
        """Return today, this week, lifetime totals and recent meals."""
        account = self._account(owner_id)
        resolved_day = day or self.today()
        today = self.daily_totals(owner_id, resolved_day)
        week = self.weekly_totals(owner_id, resolved_day)
        recent = self.repository.list_recent_meals(owner_id, RECENT_MEALS_LIMIT)
        average_per_meal = (
            round_half_up(sum(meal.total_calories for meal in recent) / len(recent))
            if recent
            else 0
        )
        return ProgressOverview(
            today=today,
            week=week,
            week_average_daily=round_half_up(week.total_calories / DAYS_PER_WEEK),
            lifetime_calories=account.lifetime_calories,
            daily_progress=_goal_progress(
                today.total_calories, account.daily_calorie_goal
            ),
            recent_meals=recent,
            total_meals_logged=self.repository.count_meals(owner_id),
            average_calories_per_meal=average_per_meal,
        )

    def _totals(
        self, owner_id: UUID, window_key: str, start: datetime, end: datetime
    ) -> PeriodTotals:
        if self.cache is None:
            return self.repository.summarize_meals(owner_id, start, end)
        prefix = stats_cache_prefix(owner_id)
        cache_key = f"{prefix}{window_key}"
        cached = self.cache.get(cache_key)
        if isinstance(cached, PeriodTotals):
            return cached
        # Read before summing: a ledger write committed meanwhile bumps it.
        generation = self.cache.generation(prefix)
        totals = self.repository.summarize_meals(owner_id, start, end)
        stored = self.cache.set_if_generation(
            cache_key,
            totals,
            self.cache_ttl_seconds,
            prefix=prefix,
            generation=generation,
        )
        if not stored:
            _logger.debug("Skipped caching stale totals", extra={"key": cache_key})
        return totals

    def _start_of_day(self, day: date) -> datetime:
        local_midnight = datetime.combine(day, time.min, tzinfo=ZoneInfo(self.timezone_name))
        return local_midnight.astimezone(UTC)

    def _account(self, owner_id: UUID) -> UserAccount:
        account = self.accounts.get_by_id(owner_id)
        if account is None:
            raise NotFoundError("User not found")
        return account


def _goal_progress(current: int, goal: int) -> GoalProgress:
    percentage = round_half_up(current / goal * 100) if goal > 0 else 0
    return GoalProgress(
        current=current,
        goal=goal,
        percentage=percentage,
        remaining=max(0, goal - current),
    )
