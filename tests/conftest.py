"""Shared test fixtures."""

import threading
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from uuid import UUID, uuid4

import pytest

from calorie_tracker.config import Settings
from calorie_tracker.containers import AppContainer
from calorie_tracker.domain.meals import MealChanges, MealDraft, MealFilters, MealRecord
from calorie_tracker.domain.models import UserAccount, UserProfile
from calorie_tracker.domain.stats import PeriodTotals
from calorie_tracker.errors import NotFoundError, ValidationError
from calorie_tracker.services.auth import TokenService
from calorie_tracker.services.cache import InMemoryCache
from calorie_tracker.services.catalog import FoodCatalogService
from calorie_tracker.services.insights import FoodInsightsService
from calorie_tracker.services.meals import MealLedgerRepository, MealLedgerService
from calorie_tracker.services.smart_log import SmartLogService
from calorie_tracker.services.stats import AggregationService, StatsRepository
from calorie_tracker.services.users import UserRepository, UserService
from calorie_tracker.services.vision import (
    ClarifaiClient,
    ClassificationRequest,
    ClassificationService,
    FilenameHeuristicClassifier,
    ImageSignatureClassifier,
    VisionClient,
)

JPEG_HEADER = b"\xff\xd8\xff\xe0"
PNG_HEADER = b"\x89PNG\r\n\x1a\n"


@dataclass
class InMemoryUserRepository(UserRepository):
    """In-memory user repository for tests."""

    users: dict[UUID, UserAccount] = field(default_factory=dict)
    lock: threading.Lock = field(default_factory=threading.Lock)

    def get_by_id(self, user_id: UUID) -> UserAccount | None:
        return self.users.get(user_id)

    def get_by_username(self, username: str) -> UserAccount | None:
        for user in self.users.values():
            if user.username == username:
                return user
        return None

    def create_user(
        self,
        username: str,
        password_hash: str,
        daily_calorie_goal: int,
        profile: UserProfile,
    ) -> UserAccount:
        if self.get_by_username(username) is not None:
            raise ValidationError("Username already exists")
        user = UserAccount(
            id=uuid4(),
            username=username,
            password_hash=password_hash,
            daily_calorie_goal=daily_calorie_goal,
            profile=profile,
            created_at=datetime.now(tz=UTC),
        )
        self.users[user.id] = user
        return user

    def update_settings(
        self, user_id: UUID, daily_calorie_goal: int, profile: UserProfile
    ) -> UserAccount | None:
        user = self.users.get(user_id)
        if user is None:
            return None
        updated = replace(user, daily_calorie_goal=daily_calorie_goal, profile=profile)
        self.users[user_id] = updated
        return updated

    def add_user(
        self, username: str = "alice", daily_calorie_goal: int = 2000
    ) -> UserAccount:
        return self.create_user(username, "unused-hash", daily_calorie_goal, UserProfile())

    def adjust_lifetime(self, user_id: UUID, delta: int) -> None:
        user = self.users.get(user_id)
        if user is None:
            raise NotFoundError("User not found")
        self.users[user_id] = replace(
            user, lifetime_calories=user.lifetime_calories + delta
        )


@dataclass
class InMemoryMealLedgerRepository(MealLedgerRepository):
    """In-memory ledger; a lock stands in for the storage transaction."""

    users: InMemoryUserRepository
    meals: dict[UUID, MealRecord] = field(default_factory=dict)

    def create_meal(self, owner_id: UUID, draft: MealDraft) -> MealRecord:
        with self.users.lock:
            if owner_id not in self.users.users:
                raise NotFoundError("User not found")
            record = MealRecord(
                id=uuid4(),
                owner_id=owner_id,
                foods=list(draft.foods),
                total_calories=draft.total_calories,
                recommended_steps=draft.recommended_steps,
                meal_type=draft.meal_type,
                notes=draft.notes,
                consumed_at=draft.consumed_at,
                created_at=datetime.now(tz=UTC),
            )
            self.meals[record.id] = record
            self.users.adjust_lifetime(owner_id, draft.total_calories)
            return record

    def update_meal(
        self, meal_id: UUID, owner_id: UUID, changes: MealChanges
    ) -> MealRecord | None:
        with self.users.lock:
            current = self._owned(meal_id, owner_id)
            if current is None:
                return None
            updated = replace(current, updated_at=datetime.now(tz=UTC))
            if changes.foods is not None:
                updated = replace(
                    updated,
                    foods=list(changes.foods),
                    total_calories=changes.total_calories or 0,
                    recommended_steps=changes.recommended_steps or 0,
                )
            if changes.meal_type is not None:
                updated = replace(updated, meal_type=changes.meal_type)
            if changes.notes is not None:
                updated = replace(updated, notes=changes.notes)
            if changes.consumed_at is not None:
                updated = replace(updated, consumed_at=changes.consumed_at)
            self.meals[meal_id] = updated
            self.users.adjust_lifetime(
                owner_id, updated.total_calories - current.total_calories
            )
            return updated

    def delete_meal(self, meal_id: UUID, owner_id: UUID) -> MealRecord | None:
        with self.users.lock:
            current = self._owned(meal_id, owner_id)
            if current is None:
                return None
            del self.meals[meal_id]
            self.users.adjust_lifetime(owner_id, -current.total_calories)
            return current

    def get_meal(self, meal_id: UUID, owner_id: UUID) -> MealRecord | None:
        return self._owned(meal_id, owner_id)

    def list_meals(
        self, owner_id: UUID, filters: MealFilters, offset: int, limit: int
    ) -> tuple[list[MealRecord], int]:
        matches = [
            meal
            for meal in self.meals.values()
            if meal.owner_id == owner_id
            and (filters.start is None or meal.consumed_at >= filters.start)
            and (filters.end is None or meal.consumed_at <= filters.end)
            and (filters.meal_type is None or meal.meal_type == filters.meal_type)
        ]
        matches.sort(key=lambda meal: meal.consumed_at, reverse=True)
        return matches[offset : offset + limit], len(matches)

    def _owned(self, meal_id: UUID, owner_id: UUID) -> MealRecord | None:
        meal = self.meals.get(meal_id)
        if meal is None or meal.owner_id != owner_id:
            return None
        return meal


@dataclass
class InMemoryStatsRepository(StatsRepository):
    """In-memory stats repository reading the fake ledger."""

    ledger: InMemoryMealLedgerRepository
    summarize_calls: int = 0

    def summarize_meals(
        self, owner_id: UUID, start: datetime, end: datetime
    ) -> PeriodTotals:
        self.summarize_calls += 1
        meals = [
            meal
            for meal in self.ledger.meals.values()
            if meal.owner_id == owner_id and start <= meal.consumed_at < end
        ]
        return PeriodTotals(
            start=start,
            end=end,
            total_calories=sum(meal.total_calories for meal in meals),
            meal_count=len(meals),
            total_steps=sum(meal.recommended_steps for meal in meals),
        )

    def list_recent_meals(self, owner_id: UUID, limit: int) -> list[MealRecord]:
        meals = [m for m in self.ledger.meals.values() if m.owner_id == owner_id]
        return sorted(meals, key=lambda meal: meal.consumed_at, reverse=True)[:limit]

    def count_meals(self, owner_id: UUID) -> int:
        return sum(1 for m in self.ledger.meals.values() if m.owner_id == owner_id)


@dataclass
class FakeVisionClient(VisionClient):
    """Fake vision client returning a fixed payload."""

    payload: dict[str, object] = field(
        default_factory=lambda: {
            "foods": [
                {
                    "name": "Rice",
                    "confidence": 0.72,
                    "calories": 206,
                    "serving_unit": "cup cooked",
                }
            ]
        }
    )
    prompts: list[str] = field(default_factory=list)

    async def extract(  # noqa: PLR0913
        self,
        *,
        model: str,
        reasoning_effort: str | None,
        store: bool,
        image_data_url: str,
        schema: dict[str, object],
        prompt: str,
    ) -> dict[str, object]:
        self.prompts.append(prompt)
        return self.payload


@dataclass
class FakeClarifaiClient(ClarifaiClient):
    """Fake Clarifai client returning fixed concepts."""

    concepts: list[dict[str, object]] = field(
        default_factory=lambda: [
            {"name": "banana", "value": 0.97},
            {"name": "bread", "value": 0.8},
            {"name": "salmon", "value": 0.6},
            {"name": "apple", "value": 0.4},
        ]
    )

    async def predict(self, image_base64: str) -> dict[str, object]:
        return {"outputs": [{"data": {"concepts": self.concepts}}]}


@dataclass
class FailingClassifier:
    """Classifier that always raises."""

    name: str = "failing"
    calls: int = 0

    async def classify(self, request: ClassificationRequest):  # type: ignore[no-untyped-def]
        self.calls += 1
        raise RuntimeError("provider down")


@dataclass
class EmptyClassifier:
    """Classifier that never has an answer."""

    name: str = "empty"

    async def classify(self, request: ClassificationRequest):  # type: ignore[no-untyped-def]
        return None


@pytest.fixture
def settings() -> Settings:
    return Settings(
        environment="test",
        jwt_secret="test-secret",
        storage_backend="sqlalchemy",
        database_url="sqlite://",
        openai_api_key=None,
        clarifai_api_key=None,
    )


@pytest.fixture
def user_repository() -> InMemoryUserRepository:
    return InMemoryUserRepository()


@pytest.fixture
def meal_repository(
    user_repository: InMemoryUserRepository,
) -> InMemoryMealLedgerRepository:
    return InMemoryMealLedgerRepository(users=user_repository)


@pytest.fixture
def stats_repository(
    meal_repository: InMemoryMealLedgerRepository,
) -> InMemoryStatsRepository:
    return InMemoryStatsRepository(ledger=meal_repository)


@pytest.fixture
def cache() -> InMemoryCache:
    return InMemoryCache(max_entries=100)


@pytest.fixture
def tokens() -> TokenService:
    return TokenService(secret="test-secret")


@pytest.fixture
def container(  # noqa: PLR0913
    settings: Settings,
    user_repository: InMemoryUserRepository,
    meal_repository: InMemoryMealLedgerRepository,
    stats_repository: InMemoryStatsRepository,
    cache: InMemoryCache,
    tokens: TokenService,
) -> AppContainer:
    async def close_resources() -> None:
        return None

    meal_service = MealLedgerService(repository=meal_repository, cache=cache)
    catalog_service = FoodCatalogService()
    classification_service = ClassificationService(
        providers=[FilenameHeuristicClassifier(), ImageSignatureClassifier()]
    )
    return AppContainer(
        settings=settings,
        user_service=UserService(repository=user_repository, tokens=tokens),
        meal_service=meal_service,
        stats_service=AggregationService(
            repository=stats_repository, accounts=user_repository, cache=cache
        ),
        catalog_service=catalog_service,
        classification_service=classification_service,
        insights_service=FoodInsightsService(
            repository=stats_repository, catalog=catalog_service
        ),
        smart_log_service=SmartLogService(
            classifier=classification_service, ledger=meal_service
        ),
        close_resources=close_resources,
    )
