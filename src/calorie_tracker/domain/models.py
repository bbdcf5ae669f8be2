"""Domain models for user accounts."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from uuid import UUID

DEFAULT_DAILY_CALORIE_GOAL = 2000


class ActivityLevel(StrEnum):
    """Self-reported activity level."""

    SEDENTARY = "sedentary"
    LIGHT = "light"
    MODERATE = "moderate"
    ACTIVE = "active"
    VERY_ACTIVE = "very_active"


@dataclass(frozen=True)
class UserProfile:
    """Optional demographic fields for a user."""

    first_name: str | None = None
    last_name: str | None = None
    age: int | None = None
    weight_kg: float | None = None
    height_cm: float | None = None
    activity_level: ActivityLevel = ActivityLevel.MODERATE

    def to_dict(self) -> dict[str, object]:
        return {
            "first_name": self.first_name,
            "last_name": self.last_name,
            "age": self.age,
            "weight_kg": self.weight_kg,
            "height_cm": self.height_cm,
            "activity_level": self.activity_level.value,
        }

    @classmethod
    def from_dict(cls, raw: dict[str, object] | None) -> "UserProfile":
        if not raw:
            return cls()
        level = raw.get("activity_level") or ActivityLevel.MODERATE.value
        return cls(
            first_name=raw.get("first_name"),
            last_name=raw.get("last_name"),
            age=raw.get("age"),
            weight_kg=raw.get("weight_kg"),
            height_cm=raw.get("height_cm"),
            activity_level=ActivityLevel(str(level)),
        )


@dataclass(frozen=True)
class UserAccount:
    """Represents a registered user stored in the database."""

    id: UUID
    username: str
    password_hash: str
    daily_calorie_goal: int = DEFAULT_DAILY_CALORIE_GOAL
    lifetime_calories: int = 0
    profile: UserProfile = field(default_factory=UserProfile)
    created_at: datetime | None = None
