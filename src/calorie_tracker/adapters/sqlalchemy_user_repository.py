"""SQLAlchemy-backed user repository."""

from dataclasses import dataclass
from uuid import UUID

from sqlalchemy import select

from calorie_tracker.adapters.sqlalchemy_database import Database, UserRow
from calorie_tracker.domain.models import UserAccount, UserProfile
from calorie_tracker.services.users import UserRepository


@dataclass
class SqlAlchemyUserRepository(UserRepository):
    """SQLAlchemy implementation for user persistence."""

    database: Database

    def get_by_id(self, user_id: UUID) -> UserAccount | None:
        with self.database.transaction() as session:
            row = session.get(UserRow, user_id)
            return row.to_account() if row else None

    def get_by_username(self, username: str) -> UserAccount | None:
        with self.database.transaction() as session:
            row = session.scalars(
                select(UserRow).where(UserRow.username == username).limit(1)
            ).first()
            return row.to_account() if row else None

    def create_user(
        self,
        username: str,
        password_hash: str,
        daily_calorie_goal: int,
        profile: UserProfile,
    ) -> UserAccount:
        """Insert a user; a unique-constraint hit means the name is taken."""
        with self.database.transaction(
            integrity_message="Username already exists"
        ) as session:
            row = UserRow(
                username=username,
                password_hash=password_hash,
                daily_calorie_goal=daily_calorie_goal,
                lifetime_calories=0,
                profile=profile.to_dict(),
            )
            session.add(row)
            session.flush()
            return row.to_account()

    def update_settings(
        self, user_id: UUID, daily_calorie_goal: int, profile: UserProfile
    ) -> UserAccount | None:
        with self.database.transaction() as session:
            row = session.get(UserRow, user_id)
            if row is None:
                return None
            row.daily_calorie_goal = daily_calorie_goal
            row.profile = profile.to_dict()
            session.flush()
            return row.to_account()
