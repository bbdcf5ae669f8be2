"""Description-driven meal logging."""

from fastapi import APIRouter, Depends, status

from calorie_tracker.api.dependencies import current_user, get_container
from calorie_tracker.api.schemas import SmartLogRequest
from calorie_tracker.api.serializers import envelope, meal_to_dict
from calorie_tracker.containers import AppContainer
from calorie_tracker.domain.models import UserAccount

router = APIRouter(prefix="/ai", tags=["ai"])


@router.post("/smart-log", status_code=status.HTTP_201_CREATED)
async def smart_log(
    payload: SmartLogRequest,
    user: UserAccount = Depends(current_user),
    container: AppContainer = Depends(get_container),
) -> dict[str, object]:
    result = await container.smart_log_service.log_description(
        user.id,
        payload.description,
        meal_type=payload.meal_type,
        consumed_at=payload.consumed_at,
    )
    return envelope(
        {
            "meal": meal_to_dict(result.meal),
            "analysis": {
                "confidence": result.classification.confidence,
                "method": result.classification.method,
                "detected_food_count": len(result.classification.foods),
            },
        },
        message="Meal smart-logged successfully",
    )
