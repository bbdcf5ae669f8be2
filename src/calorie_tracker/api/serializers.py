"""Response payload builders; password hashes never leave the service."""

from typing import Any

from calorie_tracker.domain.catalog import ConsumptionReport, FoodCatalogEntry, SimilarFoods
from calorie_tracker.domain.meals import MealPage, MealRecord, recommended_steps_for
from calorie_tracker.domain.models import UserAccount
from calorie_tracker.domain.stats import GoalProgress, PeriodTotals, ProgressOverview
from calorie_tracker.domain.vision import BatchItemResult, Classification


def envelope(data: Any = None, message: str = "OK") -> dict[str, Any]:
    return {"success": True, "message": message, "data": data}


def user_to_dict(user: UserAccount) -> dict[str, Any]:
    return {
        "id": str(user.id),
        "username": user.username,
        "daily_calorie_goal": user.daily_calorie_goal,
        "lifetime_calories": user.lifetime_calories,
        "profile": user.profile.to_dict(),
        "created_at": user.created_at.isoformat() if user.created_at else None,
    }


def meal_to_dict(meal: MealRecord) -> dict[str, Any]:
    return {
        "id": str(meal.id),
        "foods": [food.to_dict() for food in meal.foods],
        "total_calories": meal.total_calories,
        "recommended_steps": meal.recommended_steps,
        "meal_type": meal.meal_type.value,
        "notes": meal.notes,
        "consumed_at": meal.consumed_at.isoformat(),
        "created_at": meal.created_at.isoformat(),
        "updated_at": meal.updated_at.isoformat() if meal.updated_at else None,
    }


def page_to_dict(page: MealPage) -> dict[str, Any]:
    return {
        "meals": [meal_to_dict(meal) for meal in page.items],
        "pagination": {
            "page": page.page,
            "page_size": page.page_size,
            "total": page.total,
            "total_pages": page.total_pages,
            "has_next": page.has_next,
            "has_prev": page.has_prev,
        },
    }


def totals_to_dict(totals: PeriodTotals) -> dict[str, Any]:
    return {
        "start": totals.start.isoformat(),
        "end": totals.end.isoformat(),
        "total_calories": totals.total_calories,
        "meal_count": totals.meal_count,
        "total_steps": totals.total_steps,
    }


def progress_to_dict(progress: GoalProgress) -> dict[str, Any]:
    return {
        "current": progress.current,
        "goal": progress.goal,
        "percentage": progress.percentage,
        "remaining": progress.remaining,
    }


def overview_to_dict(overview: ProgressOverview) -> dict[str, Any]:
    week = totals_to_dict(overview.week)
    week["average_daily"] = overview.week_average_daily
    return {
        "today": totals_to_dict(overview.today),
        "weekly": week,
        "lifetime": {"total_calories": overview.lifetime_calories},
        "daily_progress": progress_to_dict(overview.daily_progress),
        "recent_meals": [meal_to_dict(meal) for meal in overview.recent_meals],
        "stats": {
            "total_meals_logged": overview.total_meals_logged,
            "average_calories_per_meal": overview.average_calories_per_meal,
        },
    }


def food_to_dict(food: FoodCatalogEntry) -> dict[str, Any]:
    return food.to_dict()


def classification_to_dict(
    classification: Classification, recommended_steps: int
) -> dict[str, Any]:
    return {
        "foods": [food.to_dict() for food in classification.foods],
        "total_calories": classification.total_calories,
        "recommended_steps": recommended_steps,
        "analysis": {
            "detected_food_count": len(classification.foods),
            "average_confidence": classification.confidence,
            "analysis_method": classification.method,
        },
    }


def consumption_to_dict(report: ConsumptionReport) -> dict[str, Any]:
    return {
        "popular_foods": [
            {
                "name": food.name,
                "times_consumed": food.times_consumed,
                "total_calories": food.total_calories,
                "average_calories": food.average_calories,
                "last_consumed": food.last_consumed.isoformat(),
                "catalog_info": food.catalog_entry.to_dict() if food.catalog_entry else None,
            }
            for food in report.foods
        ],
        "summary": {
            "unique_foods": report.unique_foods,
            "total_consumptions": report.total_consumptions,
        },
    }


def similar_foods_to_dict(similar: SimilarFoods) -> dict[str, Any]:
    return {
        "recommendations": [
            {
                **item.food.to_dict(),
                "calorie_difference": item.calorie_difference,
                "similarity": item.similarity,
            }
            for item in similar.recommendations
        ],
        "based_on": {
            "recent_foods": similar.recent_foods,
            "average_calories": similar.average_calories,
        },
    }


def batch_to_dict(results: list[BatchItemResult], step_factor: float) -> dict[str, Any]:
    items: list[dict[str, Any]] = []
    detected: list[dict[str, Any]] = []
    for index, result in enumerate(results):
        item: dict[str, Any] = {
            "index": index,
            "filename": result.filename,
            "success": result.succeeded,
        }
        if result.classification is not None:
            steps = recommended_steps_for(
                result.classification.total_calories, step_factor
            )
            item["analysis"] = classification_to_dict(result.classification, steps)
            detected.extend(food.to_dict() for food in result.classification.foods)
        else:
            item["error"] = result.error
        items.append(item)
    total_calories = sum(
        result.classification.total_calories
        for result in results
        if result.classification is not None
    )
    return {
        "results": items,
        "batch_summary": {
            "total_images": len(results),
            "successful_analyses": sum(1 for result in results if result.succeeded),
            "total_foods_detected": len(detected),
            "total_calories": total_calories,
            "recommended_steps": recommended_steps_for(total_calories, step_factor),
        },
        "all_detected_foods": detected,
    }
