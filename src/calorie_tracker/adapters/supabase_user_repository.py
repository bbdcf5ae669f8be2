"""Supabase-backed user repository."""

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from supabase import Client

from calorie_tracker.adapters.supabase_errors import execute
from calorie_tracker.domain.models import UserAccount, UserProfile
from calorie_tracker.errors import StorageError
from calorie_tracker.services.users import UserRepository

USER_COLUMNS = (
    "id, username, password_hash, daily_calorie_goal, lifetime_calories, "
    "profile, created_at"
)


@dataclass
class SupabaseUserRepository(UserRepository):
    """Supabase implementation for user persistence."""

    client: Client

    def get_by_id(self, user_id: UUID) -> UserAccount | None:
        response = execute(
            self.client.table("users")
            .select(USER_COLUMNS)
            .eq("id", str(user_id))
            .limit(1)
        )
        return parse_user(response.data[0]) if response.data else None

    def get_by_username(self, username: str) -> UserAccount | None:
        response = execute(
            self.client.table("users")
            .select(USER_COLUMNS)
            .eq("username", username)
            .limit(1)
        )
        return parse_user(response.data[0]) if response.data else None

    def create_user(
        self,
        username: str,
        password_hash: str,
        daily_calorie_goal: int,
        profile: UserProfile,
    ) -> UserAccount:
        """Create a new user row and return it."""
        response = execute(
            self.client.table("users").insert(
                {
                    "username": username,
                    "password_hash": password_hash,
                    "daily_calorie_goal": daily_calorie_goal,
                    "profile": profile.to_dict(),
                }
            ),
            integrity_message="Username already exists",
        )
        if not response.data:
            raise StorageError("Failed to create user in Supabase")
        return parse_user(response.data[0])

    def update_settings(
        self, user_id: UUID, daily_calorie_goal: int, profile: UserProfile
    ) -> UserAccount | None:
        response = execute(
            self.client.table("users")
            .update(
                {"daily_calorie_goal": daily_calorie_goal, "profile": profile.to_dict()}
            )
            .eq("id", str(user_id))
        )
        return parse_user(response.data[0]) if response.data else None


def parse_user(row: dict[str, object]) -> UserAccount:
    created_raw = row.get("created_at")
    return UserAccount(
        id=UUID(str(row["id"])),
        username=str(row["username"]),
        password_hash=str(row.get("password_hash", "")),
        daily_calorie_goal=int(row.get("daily_calorie_goal", 0)),
        lifetime_calories=int(row.get("lifetime_calories", 0)),
        profile=UserProfile.from_dict(row.get("profile")),  # type: ignore[arg-type]
        created_at=(
            datetime.fromisoformat(created_raw)
            if isinstance(created_raw, str) and created_raw
            else None
        ),
    )
