"""Dependency container wiring for the application."""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import create_client

from calorie_tracker.adapters.clarifai_client import HttpxClarifaiClient
from calorie_tracker.adapters.openai_vision_client import OpenAIVisionClient
from calorie_tracker.adapters.sqlalchemy_database import Database
from calorie_tracker.adapters.sqlalchemy_meal_ledger_repository import (
    SqlAlchemyMealLedgerRepository,
)
from calorie_tracker.adapters.sqlalchemy_stats_repository import (
    SqlAlchemyStatsRepository,
)
from calorie_tracker.adapters.sqlalchemy_user_repository import SqlAlchemyUserRepository
from calorie_tracker.adapters.supabase_meal_ledger_repository import (
    SupabaseMealLedgerRepository,
)
from calorie_tracker.adapters.supabase_stats_repository import SupabaseStatsRepository
from calorie_tracker.adapters.supabase_user_repository import SupabaseUserRepository
from calorie_tracker.config import Settings
from calorie_tracker.errors import ValidationError
from calorie_tracker.services.auth import TokenService
from calorie_tracker.services.cache import InMemoryCache
from calorie_tracker.services.catalog import FoodCatalogService
from calorie_tracker.services.insights import FoodInsightsService
from calorie_tracker.services.meals import MealLedgerRepository, MealLedgerService
from calorie_tracker.services.smart_log import SmartLogService
from calorie_tracker.services.stats import AggregationService, StatsRepository
from calorie_tracker.services.users import UserRepository, UserService
from calorie_tracker.services.vision import (
    ClarifaiFoodClassifier,
    ClassificationService,
    FilenameHeuristicClassifier,
    FoodClassifier,
    ImageSignatureClassifier,
    OpenAIFoodClassifier,
)

_logger = logging.getLogger(__name__)


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    user_service: UserService
    meal_service: MealLedgerService
    stats_service: AggregationService
    catalog_service: FoodCatalogService
    classification_service: ClassificationService
    insights_service: FoodInsightsService
    smart_log_service: SmartLogService
    close_resources: Callable[[], Awaitable[None]]


@dataclass(frozen=True)
class _Repositories:
    users: UserRepository
    meals: MealLedgerRepository
    stats: StatsRepository
    dispose: Callable[[], None]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    repositories = _build_repositories(resolved_settings)
    cache = InMemoryCache(max_entries=resolved_settings.stats_cache_max_entries)
    tokens = TokenService(
        secret=resolved_settings.jwt_secret,
        algorithm=resolved_settings.jwt_algorithm,
        expire_minutes=resolved_settings.jwt_expire_minutes,
    )
    catalog_service = FoodCatalogService()

    closers: list[Callable[[], Awaitable[None]]] = []
    providers: list[FoodClassifier] = []
    if resolved_settings.openai_api_key:
        openai_client = OpenAIVisionClient.create(resolved_settings.openai_api_key)
        closers.append(openai_client.close)
        providers.append(
            OpenAIFoodClassifier(
                client=openai_client,
                model=resolved_settings.openai_model,
                reasoning_effort=resolved_settings.openai_reasoning_effort,
                store=resolved_settings.openai_store,
            )
        )
    if resolved_settings.clarifai_api_key:
        clarifai_client = HttpxClarifaiClient.create(
            api_key=resolved_settings.clarifai_api_key,
            base_url=resolved_settings.clarifai_base_url,
        )
        closers.append(clarifai_client.close)
        providers.append(ClarifaiFoodClassifier(client=clarifai_client))
    providers.append(FilenameHeuristicClassifier(catalog=catalog_service))
    providers.append(ImageSignatureClassifier(foods=catalog_service.foods))
    _logger.info(
        "Food classifiers configured",
        extra={"providers": [provider.name for provider in providers]},
    )

    async def close_resources() -> None:
        for close in closers:
            await close()
        repositories.dispose()

    meal_service = MealLedgerService(
        repository=repositories.meals,
        step_factor=resolved_settings.step_factor,
        cache=cache,
        retry_attempts=resolved_settings.ledger_retry_attempts,
    )
    classification_service = ClassificationService(
        providers=providers, max_image_bytes=resolved_settings.max_image_bytes
    )
    return AppContainer(
        settings=resolved_settings,
        user_service=UserService(repository=repositories.users, tokens=tokens),
        meal_service=meal_service,
        stats_service=AggregationService(
            repository=repositories.stats,
            accounts=repositories.users,
            timezone_name=resolved_settings.timezone,
            cache=cache,
            cache_ttl_seconds=resolved_settings.stats_cache_ttl_seconds,
        ),
        catalog_service=catalog_service,
        classification_service=classification_service,
        insights_service=FoodInsightsService(
            repository=repositories.stats, catalog=catalog_service
        ),
        smart_log_service=SmartLogService(
            classifier=classification_service,
            ledger=meal_service,
            timezone_name=resolved_settings.timezone,
        ),
        close_resources=close_resources,
    )


def _build_repositories(settings: Settings) -> _Repositories:
    backend = settings.storage_backend.lower()
    if backend == "supabase":
        if not settings.supabase_url or not settings.supabase_service_key:
            raise ValidationError(
                "SUPABASE_URL and SUPABASE_SERVICE_KEY are required for supabase storage"
            )
        client = create_client(settings.supabase_url, settings.supabase_service_key)
        return _Repositories(
            users=SupabaseUserRepository(client),
            meals=SupabaseMealLedgerRepository(client),
            stats=SupabaseStatsRepository(client),
            dispose=lambda: None,
        )
    if backend == "sqlalchemy":
        database = Database.create(
            settings.database_url, timeout_seconds=settings.database_timeout_seconds
        )
        database.create_schema()
        return _Repositories(
            users=SqlAlchemyUserRepository(database),
            meals=SqlAlchemyMealLedgerRepository(database),
            stats=SqlAlchemyStatsRepository(database),
            dispose=database.dispose,
        )
    raise ValidationError(f"Unknown storage backend: {settings.storage_backend}")
