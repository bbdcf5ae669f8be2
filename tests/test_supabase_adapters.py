"""Tests for Supabase adapter implementations."""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from uuid import uuid4

import pytest
from supabase import PostgrestAPIError

from calorie_tracker.adapters.supabase_meal_ledger_repository import (
    SupabaseMealLedgerRepository,
)
from calorie_tracker.adapters.supabase_stats_repository import SupabaseStatsRepository
from calorie_tracker.adapters.supabase_user_repository import SupabaseUserRepository
from calorie_tracker.domain.meals import (
    FoodItem,
    MealChanges,
    MealDraft,
    MealFilters,
    MealType,
)
from calorie_tracker.domain.models import UserProfile
from calorie_tracker.errors import (
    NotFoundError,
    StorageContentionError,
    StorageError,
    ValidationError,
)


@dataclass
class FakeResponse:
    data: object
    count: int | None = None


@dataclass
class FakeQuery:
    """Chainable stand-in for a PostgREST request builder."""

    response: FakeResponse | Exception
    calls: list[tuple[str, tuple[object, ...]]] = field(default_factory=list)

    def __getattr__(self, name: str):  # type: ignore[no-untyped-def]
        def record(*args, **_kwargs) -> "FakeQuery":  # type: ignore[no-untyped-def]
            self.calls.append((name, args))
            return self

        return record

    def execute(self) -> FakeResponse:
        if isinstance(self.response, Exception):
            raise self.response
        return self.response


@dataclass
class FakeSupabaseClient:
    responses: list[FakeResponse | Exception] = field(default_factory=list)
    tables: list[str] = field(default_factory=list)
    rpcs: list[tuple[str, dict[str, object]]] = field(default_factory=list)
    queries: list[FakeQuery] = field(default_factory=list)

    def queue(self, data: object, count: int | None = None) -> None:
        self.responses.append(FakeResponse(data=data, count=count))

    def fail(self, code: str, message: str = "boom") -> None:
        self.responses.append(PostgrestAPIError({"code": code, "message": message}))

    def table(self, name: str) -> FakeQuery:
        self.tables.append(name)
        return self._next()

    def rpc(self, function: str, params: dict[str, object]) -> FakeQuery:
        self.rpcs.append((function, params))
        return self._next()

    def _next(self) -> FakeQuery:
        response = self.responses.pop(0) if self.responses else FakeResponse(data=[])
        query = FakeQuery(response=response)
        self.queries.append(query)
        return query


def _user_row(**overrides: object) -> dict[str, object]:
    row: dict[str, object] = {
        "id": str(uuid4()),
        "username": "alice",
        "password_hash": "hash",
        "daily_calorie_goal": 2000,
        "lifetime_calories": 95,
        "profile": {"first_name": "Alice", "activity_level": "light"},
        "created_at": "2024-03-06T12:00:00+00:00",
    }
    row.update(overrides)
    return row


def _meal_row(owner_id: str, **overrides: object) -> dict[str, object]:
    row: dict[str, object] = {
        "id": str(uuid4()),
        "owner_id": owner_id,
        "foods": [{"name": "apple", "calories": 95}],
        "total_calories": 95,
        "recommended_steps": 5,
        "meal_type": "snack",
        "notes": "",
        "consumed_at": "2024-03-06T12:00:00+00:00",
        "created_at": "2024-03-06T12:00:01+00:00",
        "updated_at": None,
    }
    row.update(overrides)
    return row


def _draft() -> MealDraft:
    return MealDraft(
        foods=[FoodItem(name="apple", calories=95)],
        total_calories=95,
        recommended_steps=5,
        meal_type=MealType.SNACK,
        notes="",
        consumed_at=datetime(2024, 3, 6, 12, tzinfo=UTC),
    )


def test_user_repository_roundtrip() -> None:
    client = FakeSupabaseClient()
    row = _user_row()
    client.queue([row])
    client.queue([row])

    repository = SupabaseUserRepository(client)
    created = repository.create_user("alice", "hash", 2000, UserProfile())
    fetched = repository.get_by_username("alice")

    assert str(created.id) == row["id"]
    assert fetched is not None
    assert fetched.profile.first_name == "Alice"
    assert fetched.lifetime_calories == 95
    assert client.tables == ["users", "users"]


def test_user_repository_maps_unique_violation() -> None:
    client = FakeSupabaseClient()
    client.fail("23505", "duplicate key value")

    with pytest.raises(ValidationError) as excinfo:
        SupabaseUserRepository(client).create_user("alice", "hash", 2000, UserProfile())

    assert excinfo.value.message == "Username already exists"


def test_user_repository_missing_user_returns_none() -> None:
    client = FakeSupabaseClient()
    client.queue([])

    assert SupabaseUserRepository(client).get_by_id(uuid4()) is None


def test_ledger_logs_meal_through_rpc() -> None:
    client = FakeSupabaseClient()
    owner_id = uuid4()
    client.queue(_meal_row(str(owner_id)))

    meal = SupabaseMealLedgerRepository(client).create_meal(owner_id, _draft())

    function, params = client.rpcs[0]
    assert function == "log_meal"
    assert params["p_owner_id"] == str(owner_id)
    assert params["p_total_calories"] == 95
    assert params["p_foods"] == [FoodItem(name="apple", calories=95).to_dict()]
    assert meal.total_calories == 95
    assert meal.meal_type is MealType.SNACK


def test_ledger_update_and_delete_return_none_when_missing() -> None:
    client = FakeSupabaseClient()
    client.queue(None)
    client.queue({"id": None})
    repository = SupabaseMealLedgerRepository(client)

    assert repository.update_meal(uuid4(), uuid4(), MealChanges(notes="x")) is None
    assert repository.delete_meal(uuid4(), uuid4()) is None
    assert [name for name, _ in client.rpcs] == ["update_meal", "delete_meal"]


def test_ledger_delete_returns_removed_meal() -> None:
    client = FakeSupabaseClient()
    owner_id = uuid4()
    row = _meal_row(str(owner_id), total_calories=300)
    client.queue([row])

    removed = SupabaseMealLedgerRepository(client).delete_meal(uuid4(), owner_id)

    assert removed is not None
    assert removed.total_calories == 300


def test_ledger_lists_with_count_and_range() -> None:
    client = FakeSupabaseClient()
    owner_id = uuid4()
    client.queue([_meal_row(str(owner_id))], count=7)

    items, total = SupabaseMealLedgerRepository(client).list_meals(
        owner_id,
        MealFilters(start=datetime(2024, 3, 1, tzinfo=UTC), meal_type=MealType.SNACK),
        offset=4,
        limit=2,
    )

    assert total == 7
    assert len(items) == 1
    calls = client.queries[0].calls
    assert ("range", (4, 5)) in calls
    assert ("eq", ("meal_type", "snack")) in calls
    assert any(name == "gte" for name, _ in calls)


def test_ledger_maps_contention_and_missing_user() -> None:
    client = FakeSupabaseClient()
    client.fail("40001", "could not serialize access")
    client.fail("P0002", "User not found")
    client.fail("XX000", "internal")
    repository = SupabaseMealLedgerRepository(client)

    with pytest.raises(StorageContentionError):
        repository.create_meal(uuid4(), _draft())
    with pytest.raises(NotFoundError):
        repository.create_meal(uuid4(), _draft())
    with pytest.raises(StorageError):
        repository.create_meal(uuid4(), _draft())


def test_stats_repository_summarizes_through_rpc() -> None:
    client = FakeSupabaseClient()
    owner_id = uuid4()
    client.queue([{"total_calories": 380, "meal_count": 2, "total_steps": 19}])
    client.queue([_meal_row(str(owner_id))])
    client.queue([{"id": "x"}], count=12)
    repository = SupabaseStatsRepository(client)
    start = datetime(2024, 3, 6, tzinfo=UTC)
    end = datetime(2024, 3, 7, tzinfo=UTC)

    totals = repository.summarize_meals(owner_id, start, end)
    recent = repository.list_recent_meals(owner_id, limit=10)
    count = repository.count_meals(owner_id)

    assert (totals.total_calories, totals.meal_count, totals.total_steps) == (380, 2, 19)
    assert client.rpcs[0] == (
        "summarize_meals",
        {
            "p_owner_id": str(owner_id),
            "p_start": start.isoformat(),
            "p_end": end.isoformat(),
        },
    )
    assert recent[0].total_calories == 95
    assert count == 12


def test_stats_repository_handles_empty_summary() -> None:
    client = FakeSupabaseClient()
    client.queue([])
    start = datetime(2024, 3, 6, tzinfo=UTC)

    totals = SupabaseStatsRepository(client).summarize_meals(uuid4(), start, start)

    assert (totals.total_calories, totals.meal_count) == (0, 0)


def test_ledger_partial_update_sends_nulls_for_unset_fields() -> None:
    client = FakeSupabaseClient()
    owner_id = uuid4()
    meal_id = uuid4()
    client.queue([_meal_row(str(owner_id), notes="tasty")])

    updated = SupabaseMealLedgerRepository(client).update_meal(
        meal_id, owner_id, MealChanges(notes="tasty")
    )

    function, params = client.rpcs[0]
    assert function == "update_meal"
    assert params == {
        "p_meal_id": str(meal_id),
        "p_owner_id": str(owner_id),
        "p_foods": None,
        "p_total_calories": None,
        "p_recommended_steps": None,
        "p_meal_type": None,
        "p_notes": "tasty",
        "p_consumed_at": None,
    }
    assert updated is not None
    assert updated.notes == "tasty"
