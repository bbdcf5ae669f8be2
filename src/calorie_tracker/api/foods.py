"""Reference food catalog endpoints."""

from fastapi import APIRouter, Depends, Query

from calorie_tracker.api.dependencies import current_user, get_container
from calorie_tracker.api.serializers import (
    consumption_to_dict,
    envelope,
    food_to_dict,
    similar_foods_to_dict,
)
from calorie_tracker.containers import AppContainer
from calorie_tracker.domain.models import UserAccount

router = APIRouter(prefix="/foods", tags=["foods"])


@router.get("")
def list_foods(container: AppContainer = Depends(get_container)) -> dict[str, object]:
    catalog = container.catalog_service
    return envelope(
        {
            "foods": [food_to_dict(food) for food in catalog.list_foods()],
            "categories": {
                category: [food.name for food in foods]
                for category, foods in catalog.categorized().items()
            },
        }
    )


@router.get("/search")
def search_foods(
    q: str | None = None,
    max_calories: int | None = Query(default=None, alias="maxCalories", ge=0),
    min_protein: float | None = Query(default=None, alias="minProtein", ge=0),
    category: str | None = None,
    container: AppContainer = Depends(get_container),
) -> dict[str, object]:
    foods = container.catalog_service.search(
        query=q, max_calories=max_calories, min_protein=min_protein, category=category
    )
    return envelope(
        {"foods": [food_to_dict(food) for food in foods], "count": len(foods)}
    )


@router.get("/popular/consumed")
def popular_consumed(
    limit: int = Query(default=10, ge=1, le=50),
    user: UserAccount = Depends(current_user),
    container: AppContainer = Depends(get_container),
) -> dict[str, object]:
    report = container.insights_service.popular_foods(user.id, limit=limit)
    return envelope(consumption_to_dict(report))


@router.get("/recommendations/similar")
def similar_foods(
    limit: int = Query(default=10, ge=1, le=50),
    user: UserAccount = Depends(current_user),
    container: AppContainer = Depends(get_container),
) -> dict[str, object]:
    similar = container.insights_service.similar_foods(user.id, limit=limit)
    return envelope(similar_foods_to_dict(similar))


@router.get("/{name}")
def get_food(name: str, container: AppContainer = Depends(get_container)) -> dict[str, object]:
    return envelope({"food": food_to_dict(container.catalog_service.get_food(name))})
