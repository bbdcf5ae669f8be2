"""Aggregated calorie statistics endpoints."""

from datetime import date

from fastapi import APIRouter, Depends, Query

from calorie_tracker.api.dependencies import current_user, get_container
from calorie_tracker.api.serializers import envelope, progress_to_dict, totals_to_dict
from calorie_tracker.containers import AppContainer
from calorie_tracker.domain.models import UserAccount

router = APIRouter(prefix="/analytics", tags=["analytics"])


@router.get("/daily")
def daily(
    day: date | None = Query(default=None, alias="date"),
    user: UserAccount = Depends(current_user),
    container: AppContainer = Depends(get_container),
) -> dict[str, object]:
    stats = container.stats_service
    return envelope(totals_to_dict(stats.daily_totals(user.id, day or stats.today())))


@router.get("/weekly")
def weekly(
    day: date | None = Query(default=None, alias="date"),
    user: UserAccount = Depends(current_user),
    container: AppContainer = Depends(get_container),
) -> dict[str, object]:
    stats = container.stats_service
    return envelope(totals_to_dict(stats.weekly_totals(user.id, day or stats.today())))


@router.get("/progress")
def progress(
    day: date | None = Query(default=None, alias="date"),
    user: UserAccount = Depends(current_user),
    container: AppContainer = Depends(get_container),
) -> dict[str, object]:
    return envelope(progress_to_dict(container.stats_service.progress(user.id, day)))
