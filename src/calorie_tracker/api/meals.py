"""Meal ledger endpoints."""

from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from calorie_tracker.api.dependencies import current_user, get_container
from calorie_tracker.api.schemas import MealCreateRequest, MealUpdateRequest
from calorie_tracker.api.serializers import (
    envelope,
    meal_to_dict,
    overview_to_dict,
    page_to_dict,
)
from calorie_tracker.containers import AppContainer
from calorie_tracker.domain.meals import MealFilters, MealPatch
from calorie_tracker.domain.models import UserAccount
from calorie_tracker.services.meals import parse_meal_type

router = APIRouter(prefix="/meals", tags=["meals"])


@router.post("", status_code=status.HTTP_201_CREATED)
@router.post("/logMeal", status_code=status.HTTP_201_CREATED)
def log_meal(
    payload: MealCreateRequest,
    user: UserAccount = Depends(current_user),
    container: AppContainer = Depends(get_container),
) -> dict[str, object]:
    meal = container.meal_service.log_meal(
        user.id,
        payload.foods,  # type: ignore[arg-type]
        meal_type=payload.meal_type,
        notes=payload.notes,
        consumed_at=payload.consumed_at,
    )
    return envelope({"meal": meal_to_dict(meal)}, message="Meal logged successfully")


@router.get("/history")
def history(  # noqa: PLR0913
    page: int = 1,
    page_size: int = Query(default=20, alias="limit"),
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    meal_type: str | None = None,
    user: UserAccount = Depends(current_user),
    container: AppContainer = Depends(get_container),
) -> dict[str, object]:
    filters = MealFilters(
        start=start_date,
        end=end_date,
        meal_type=parse_meal_type(meal_type) if meal_type else None,
    )
    result = container.meal_service.list_meals(
        user.id, filters, page=page, page_size=page_size
    )
    return envelope(page_to_dict(result))


@router.get("/progress")
def progress(
    user: UserAccount = Depends(current_user),
    container: AppContainer = Depends(get_container),
) -> dict[str, object]:
    return envelope(overview_to_dict(container.stats_service.overview(user.id)))


@router.get("/{meal_id}")
def get_meal(
    meal_id: UUID,
    user: UserAccount = Depends(current_user),
    container: AppContainer = Depends(get_container),
) -> dict[str, object]:
    return envelope({"meal": meal_to_dict(container.meal_service.get_meal(meal_id, user.id))})


@router.put("/{meal_id}")
def update_meal(
    meal_id: UUID,
    payload: MealUpdateRequest,
    user: UserAccount = Depends(current_user),
    container: AppContainer = Depends(get_container),
) -> dict[str, object]:
    meal = container.meal_service.update_meal(
        meal_id,
        user.id,
        MealPatch(
            foods=payload.foods,
            meal_type=payload.meal_type,
            notes=payload.notes,
            consumed_at=payload.consumed_at,
        ),
    )
    return envelope({"meal": meal_to_dict(meal)}, message="Meal updated successfully")


@router.delete("/{meal_id}")
def delete_meal(
    meal_id: UUID,
    user: UserAccount = Depends(current_user),
    container: AppContainer = Depends(get_container),
) -> dict[str, object]:
    meal = container.meal_service.delete_meal(meal_id, user.id)
    return envelope({"meal": meal_to_dict(meal)}, message="Meal deleted successfully")
