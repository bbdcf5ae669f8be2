"""Request bodies for the HTTP API."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class RegisterRequest(BaseModel):
    username: str
    password: str
    daily_calorie_goal: int | None = None
    profile: dict[str, Any] | None = None


class LoginRequest(BaseModel):
    username: str
    password: str


class ProfileUpdateRequest(BaseModel):
    daily_calorie_goal: int | None = None
    profile: dict[str, Any] | None = None


class MealCreateRequest(BaseModel):
    """Meal payload; client-supplied totals are ignored."""

    foods: list[dict[str, Any]] | None = None
    meal_type: str | None = None
    notes: str | None = None
    consumed_at: datetime | None = None


class MealUpdateRequest(BaseModel):
    foods: list[dict[str, Any]] | None = None
    meal_type: str | None = None
    notes: str | None = None
    consumed_at: datetime | None = None


class AnalyzeImageRequest(BaseModel):
    """Base64 image, optionally as a data URL."""

    image_base64: str = Field(min_length=1)
    filename: str | None = None
    description: str | None = None


class AnalyzeTextRequest(BaseModel):
    description: str = Field(min_length=1)


class AnalyzeBatchRequest(BaseModel):
    images: list[AnalyzeImageRequest]


class SmartLogRequest(BaseModel):
    description: str = Field(min_length=1)
    meal_type: str | None = None
    consumed_at: datetime | None = None
