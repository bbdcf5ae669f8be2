"""Meal ledger service."""

import logging
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, replace
from datetime import UTC, datetime
from typing import Protocol, TypeVar
from uuid import UUID

from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from calorie_tracker.domain.meals import (
    MAX_NOTES_LENGTH,
    MAX_PAGE_SIZE,
    FoodItem,
    MealChanges,
    MealDraft,
    MealFilters,
    MealPage,
    MealPatch,
    MealRecord,
    MealType,
    recommended_steps_for,
    round_half_up,
)
from calorie_tracker.errors import (
    ConflictError,
    NotFoundError,
    StorageContentionError,
    ValidationError,
)
from calorie_tracker.services.cache import Cache
from calorie_tracker.services.stats import stats_cache_prefix

_logger = logging.getLogger(__name__)

T = TypeVar("T")


class MealLedgerRepository(Protocol):
    """Persistence interface for meals and the lifetime counter they feed."""

    def create_meal(self, owner_id: UUID, draft: MealDraft) -> MealRecord:
        """Insert a meal and add its calories to the owner's counter in one unit."""

    def update_meal(
        self, meal_id: UUID, owner_id: UUID, changes: MealChanges
    ) -> MealRecord | None:
        """Lock the meal, apply the set fields and the calorie delta in one unit."""

    def delete_meal(self, meal_id: UUID, owner_id: UUID) -> MealRecord | None:
        """Remove a meal and subtract its calories from the counter in one unit."""

    def get_meal(self, meal_id: UUID, owner_id: UUID) -> MealRecord | None:
        """Return a meal owned by the user."""

    def list_meals(
        self, owner_id: UUID, filters: MealFilters, offset: int, limit: int
    ) -> tuple[list[MealRecord], int]:
        """Return a page of meals, newest first, and the total match count."""


@dataclass
class MealLedgerService:
    """Validates meals, computes totals and persists them with counter sync."""

    repository: MealLedgerRepository
    step_factor: float = 0.05
    cache: Cache | None = None
    retry_attempts: int = 3
    retry_wait_seconds: float = 0.05

    def log_meal(  # noqa: PLR0913
        self,
        owner_id: UUID,
        foods: Sequence[Mapping[str, object] | FoodItem],
        meal_type: str | None = None,
        notes: str | None = None,
        consumed_at: datetime | None = None,
    ) -> MealRecord:
        """Record a meal and bump the owner's lifetime calories."""
        draft = self._build_draft(
            foods=parse_foods(foods),
            meal_type=parse_meal_type(meal_type),
            notes=parse_notes(notes),
            consumed_at=consumed_at or datetime.now(tz=UTC),
        )
        record = self._with_retry(
            lambda: self.repository.create_meal(owner_id, draft), action="log_meal"
        )
        self._invalidate(owner_id)
        _logger.info(
            "Meal logged",
            extra={"meal_id": str(record.id), "calories": record.total_calories},
        )
        return record

    def update_meal(
        self, meal_id: UUID, owner_id: UUID, patch: MealPatch
    ) -> MealRecord:
        """Apply a partial update; calorie changes flow into the lifetime counter.

        Fields the patch leaves unset are resolved by the repository from the
        row it locks, so concurrent edits to other fields are not reverted.
        """
        changes = self._build_changes(patch)
        updated = self._with_retry(
            lambda: self.repository.update_meal(meal_id, owner_id, changes),
            action="update_meal",
        )
        if updated is None:
            raise NotFoundError("Meal not found")
        self._invalidate(owner_id)
        return updated

    def delete_meal(self, meal_id: UUID, owner_id: UUID) -> MealRecord:
        """Delete a meal and return the removed record."""
        deleted = self._with_retry(
            lambda: self.repository.delete_meal(meal_id, owner_id),
            action="delete_meal",
        )
        if deleted is None:
            raise NotFoundError("Meal not found")
        self._invalidate(owner_id)
        return deleted

    def get_meal(self, meal_id: UUID, owner_id: UUID) -> MealRecord:
        """Return a meal owned by the caller."""
        meal = self.repository.get_meal(meal_id, owner_id)
        if meal is None:
            raise NotFoundError("Meal not found")
        return meal

    def list_meals(
        self,
        owner_id: UUID,
        filters: MealFilters | None = None,
        page: int = 1,
        page_size: int = 20,
    ) -> MealPage:
        """Return one page of meal history, newest first."""
        if page < 1:
            raise ValidationError("Page must be 1 or greater")
        if not 1 <= page_size <= MAX_PAGE_SIZE:
            raise ValidationError(f"Page size must be between 1 and {MAX_PAGE_SIZE}")
        resolved = filters or MealFilters()
        resolved = replace(
            resolved,
            start=_aware(resolved.start) if resolved.start else None,
            end=_aware(resolved.end) if resolved.end else None,
        )
        if resolved.start and resolved.end and resolved.start > resolved.end:
            raise ValidationError("Start date must not be after end date")
        items, total = self.repository.list_meals(
            owner_id, resolved, offset=(page - 1) * page_size, limit=page_size
        )
        return MealPage(items=items, total=total, page=page, page_size=page_size)

    def _build_draft(
        self,
        *,
        foods: list[FoodItem],
        meal_type: MealType,
        notes: str,
        consumed_at: datetime,
    ) -> MealDraft:
        total = sum(food.calories for food in foods)
        return MealDraft(
            foods=foods,
            total_calories=total,
            recommended_steps=recommended_steps_for(total, self.step_factor),
            meal_type=meal_type,
            notes=notes,
            consumed_at=_aware(consumed_at),
        )

    def _build_changes(self, patch: MealPatch) -> MealChanges:
        foods = parse_foods(patch.foods) if patch.foods is not None else None
        total = sum(food.calories for food in foods) if foods is not None else None
        return MealChanges(
            foods=foods,
            total_calories=total,
            recommended_steps=(
                recommended_steps_for(total, self.step_factor)
                if total is not None
                else None
            ),
            meal_type=(
                parse_meal_type(patch.meal_type) if patch.meal_type is not None else None
            ),
            notes=parse_notes(patch.notes) if patch.notes is not None else None,
            consumed_at=_aware(patch.consumed_at) if patch.consumed_at else None,
        )

    def _with_retry(self, func: Callable[[], T], *, action: str) -> T:
        retrying = Retrying(
            stop=stop_after_attempt(self.retry_attempts),
            wait=wait_exponential(multiplier=self.retry_wait_seconds, max=1.0),
            retry=retry_if_exception_type(StorageContentionError),
            before_sleep=before_sleep_log(_logger, logging.WARNING),
            reraise=True,
        )
        try:
            return retrying(func)
        except StorageContentionError as exc:
            _logger.warning(
                "Ledger %s gave up after %s attempts",
                action,
                self.retry_attempts,
            )
            raise ConflictError() from exc

    def _invalidate(self, owner_id: UUID) -> None:
        if self.cache is not None:
            self.cache.delete_prefix(stats_cache_prefix(owner_id))


def parse_foods(items: Sequence[Mapping[str, object] | FoodItem] | None) -> list[FoodItem]:
    """Validate raw food payloads and normalize them into FoodItems."""
    if not isinstance(items, Sequence) or isinstance(items, str) or not items:
        raise ValidationError(
            "Foods array is required and must contain at least one item"
        )
    return [_parse_food(item) for item in items]


def parse_meal_type(value: str | None) -> MealType:
    if value is None or value == "":
        return MealType.OTHER
    try:
        return MealType(str(value).lower())
    except ValueError as exc:
        allowed = ", ".join(member.value for member in MealType)
        raise ValidationError(f"Meal type must be one of: {allowed}") from exc


def parse_notes(value: str | None) -> str:
    notes = value or ""
    if len(notes) > MAX_NOTES_LENGTH:
        raise ValidationError(f"Notes cannot exceed {MAX_NOTES_LENGTH} characters")
    return notes


def _parse_food(item: Mapping[str, object] | FoodItem) -> FoodItem:
    if isinstance(item, FoodItem):
        raw: Mapping[str, object] = item.to_dict()
    elif isinstance(item, Mapping):
        raw = item
    else:
        raise ValidationError("Each food item must be an object")

    name = raw.get("name")
    calories = raw.get("calories")
    if (
        not isinstance(name, str)
        or not name.strip()
        or not _is_number(calories)
        or calories < 0
    ):
        raise ValidationError(
            "Each food item must have a valid name and non-negative calories"
        )

    confidence = raw.get("confidence")
    if confidence is None:
        confidence = 1.0
    if not _is_number(confidence) or not 0.0 <= confidence <= 1.0:
        raise ValidationError("Food confidence must be between 0 and 1")

    nutrition = raw.get("nutrition") or {}
    if not isinstance(nutrition, Mapping) or not all(
        _is_number(value) for value in nutrition.values()
    ):
        raise ValidationError("Food nutrition must map nutrients to numbers")

    serving_size = raw.get("serving_size") or {"amount": 1, "unit": "piece"}
    if not isinstance(serving_size, Mapping):
        raise ValidationError("Food serving size must be an object")

    return FoodItem(
        name=name.strip().lower(),
        calories=round_half_up(float(calories)),
        nutrition={str(key): float(value) for key, value in nutrition.items()},
        serving_size=dict(serving_size),
        confidence=float(confidence),
    )


def _is_number(value: object) -> bool:
    return isinstance(value, int | float) and not isinstance(value, bool)


def _aware(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value
