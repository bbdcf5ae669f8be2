"""Registration, login and profile endpoints."""

from fastapi import APIRouter, Depends, status

from calorie_tracker.api.dependencies import current_user, get_container
from calorie_tracker.api.schemas import (
    LoginRequest,
    ProfileUpdateRequest,
    RegisterRequest,
)
from calorie_tracker.api.serializers import envelope, user_to_dict
from calorie_tracker.containers import AppContainer
from calorie_tracker.domain.models import UserAccount

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", status_code=status.HTTP_201_CREATED)
def register(
    payload: RegisterRequest, container: AppContainer = Depends(get_container)
) -> dict[str, object]:
    result = container.user_service.register(
        username=payload.username,
        password=payload.password,
        daily_calorie_goal=payload.daily_calorie_goal,
        profile=payload.profile,
    )
    return envelope(
        {"user": user_to_dict(result.user), "token": result.token},
        message="User registered successfully",
    )


@router.post("/login")
def login(
    payload: LoginRequest, container: AppContainer = Depends(get_container)
) -> dict[str, object]:
    result = container.user_service.login(payload.username, payload.password)
    return envelope(
        {"user": user_to_dict(result.user), "token": result.token},
        message="Login successful",
    )


@router.get("/me")
def me(user: UserAccount = Depends(current_user)) -> dict[str, object]:
    return envelope({"user": user_to_dict(user)})


@router.put("/profile")
def update_profile(
    payload: ProfileUpdateRequest,
    user: UserAccount = Depends(current_user),
    container: AppContainer = Depends(get_container),
) -> dict[str, object]:
    updated = container.user_service.update_settings(
        user.id,
        daily_calorie_goal=payload.daily_calorie_goal,
        profile=payload.profile,
    )
    return envelope({"user": user_to_dict(updated)}, message="Profile updated")
