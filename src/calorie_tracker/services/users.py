"""User account business logic."""

import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass, replace
from typing import Protocol
from uuid import UUID

from calorie_tracker.domain.models import (
    DEFAULT_DAILY_CALORIE_GOAL,
    ActivityLevel,
    UserAccount,
    UserProfile,
)
from calorie_tracker.errors import AuthenticationError, NotFoundError, ValidationError
from calorie_tracker.services.auth import TokenService, hash_password, verify_password

_USERNAME_PATTERN = re.compile(r"^[a-z0-9_-]+$")
_SPECIAL_CHARACTERS = set("!@#$%^&*()_+-=[]{};':\"\\|,.<>/?`~")
USERNAME_MIN_LENGTH = 3
USERNAME_MAX_LENGTH = 30
PASSWORD_MIN_LENGTH = 8
MAX_DAILY_CALORIE_GOAL = 20000

_logger = logging.getLogger(__name__)


class UserRepository(Protocol):
    """Persistence interface for user data."""

    def get_by_id(self, user_id: UUID) -> UserAccount | None:
        """Return a user by id."""

    def get_by_username(self, username: str) -> UserAccount | None:
        """Return a user by normalized username."""

    def create_user(
        self,
        username: str,
        password_hash: str,
        daily_calorie_goal: int,
        profile: UserProfile,
    ) -> UserAccount:
        """Create a user; raise ValidationError when the username is taken."""

    def update_settings(
        self, user_id: UUID, daily_calorie_goal: int, profile: UserProfile
    ) -> UserAccount | None:
        """Persist goal and profile changes."""


@dataclass(frozen=True)
class AuthResult:
    """Authenticated user plus a freshly issued token."""

    user: UserAccount
    token: str


@dataclass
class UserService:
    """Application service for registration, login and settings."""

    repository: UserRepository
    tokens: TokenService

    def register(
        self,
        username: str,
        password: str,
        daily_calorie_goal: int | None = None,
        profile: Mapping[str, object] | None = None,
    ) -> AuthResult:
        """Create an account and return it with a token."""
        normalized = normalize_username(username)
        errors = _username_errors(normalized) + _password_errors(password)
        if errors:
            raise ValidationError(f"Validation failed: {', '.join(errors)}")
        goal = _parse_goal(
            DEFAULT_DAILY_CALORIE_GOAL if daily_calorie_goal is None else daily_calorie_goal
        )
        parsed_profile = merge_profile(UserProfile(), profile)
        if self.repository.get_by_username(normalized) is not None:
            raise ValidationError("Username already exists")
        user = self.repository.create_user(
            username=normalized,
            password_hash=hash_password(password),
            daily_calorie_goal=goal,
            profile=parsed_profile,
        )
        _logger.info("User registered", extra={"user_id": str(user.id)})
        return AuthResult(user=user, token=self.tokens.issue(user))

    def login(self, username: str, password: str) -> AuthResult:
        """Verify credentials and return a new token."""
        if not username or not password:
            raise ValidationError("Username and password are required")
        user = self.repository.get_by_username(normalize_username(username))
        if user is None or not verify_password(password, user.password_hash):
            raise AuthenticationError("Invalid credentials")
        return AuthResult(user=user, token=self.tokens.issue(user))

    def authenticate(self, token: str) -> UserAccount:
        """Resolve a bearer token to a stored user."""
        user_id = self.tokens.verify(token)
        user = self.repository.get_by_id(user_id)
        if user is None:
            raise AuthenticationError("User not found, token invalid")
        return user

    def get_user(self, user_id: UUID) -> UserAccount:
        """Return a user or raise NotFoundError."""
        user = self.repository.get_by_id(user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user

    def update_settings(
        self,
        user_id: UUID,
        daily_calorie_goal: int | None = None,
        profile: Mapping[str, object] | None = None,
    ) -> UserAccount:
        """Update the daily goal and merge profile fields."""
        user = self.get_user(user_id)
        goal = (
            user.daily_calorie_goal
            if daily_calorie_goal is None
            else _parse_goal(daily_calorie_goal)
        )
        updated = self.repository.update_settings(
            user_id, goal, merge_profile(user.profile, profile)
        )
        if updated is None:
            raise NotFoundError("User not found")
        return updated


def normalize_username(username: str) -> str:
    return (username or "").strip().lower()


def merge_profile(
    current: UserProfile, changes: Mapping[str, object] | None
) -> UserProfile:
    """Apply profile field changes on top of the current profile."""
    if not changes:
        return current
    allowed = set(current.to_dict())
    unknown = set(changes) - allowed
    if unknown:
        raise ValidationError(f"Unknown profile fields: {', '.join(sorted(unknown))}")
    merged = current
    if "activity_level" in changes:
        try:
            level = ActivityLevel(str(changes["activity_level"]))
        except ValueError as exc:
            raise ValidationError("Invalid activity level") from exc
        merged = replace(merged, activity_level=level)
    for key in ("age", "weight_kg", "height_cm"):
        if key in changes:
            value = changes[key]
            if value is not None and (
                not isinstance(value, int | float)
                or isinstance(value, bool)
                or value < 0
            ):
                raise ValidationError(f"Profile {key} must be a non-negative number")
            merged = replace(merged, **{key: value})
    for key in ("first_name", "last_name"):
        if key in changes:
            value = changes[key]
            merged = replace(merged, **{key: None if value is None else str(value)})
    return merged


def _username_errors(username: str) -> list[str]:
    if not USERNAME_MIN_LENGTH <= len(username) <= USERNAME_MAX_LENGTH:
        return [
            f"Username must be between {USERNAME_MIN_LENGTH} and "
            f"{USERNAME_MAX_LENGTH} characters"
        ]
    if not _USERNAME_PATTERN.match(username):
        return ["Username can only contain letters, numbers, hyphens, and underscores"]
    return []


def _password_errors(password: str) -> list[str]:
    password = password or ""
    if (
        len(password) < PASSWORD_MIN_LENGTH
        or not any(char.islower() for char in password)
        or not any(char.isupper() for char in password)
        or not any(char.isdigit() for char in password)
        or not any(char in _SPECIAL_CHARACTERS for char in password)
    ):
        return [
            f"Password must be at least {PASSWORD_MIN_LENGTH} characters and contain "
            "upper and lower case letters, a number and a special character"
        ]
    return []


def _parse_goal(value: object) -> int:
    if (
        not isinstance(value, int)
        or isinstance(value, bool)
        or not 0 < value <= MAX_DAILY_CALORIE_GOAL
    ):
        raise ValidationError(
            f"Daily calorie goal must be between 1 and {MAX_DAILY_CALORIE_GOAL}"
        )
    return value
