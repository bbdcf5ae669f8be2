"""Supabase repository for the meal ledger.

Mutations go through Postgres functions (see ``supabase/migrations``) so the
meal row and the owner's lifetime counter change in one transaction.
"""

from dataclasses import dataclass
from datetime import UTC, datetime
from uuid import UUID

from supabase import Client

from calorie_tracker.adapters.supabase_errors import execute
from calorie_tracker.domain.meals import (
    FoodItem,
    MealChanges,
    MealDraft,
    MealFilters,
    MealRecord,
    MealType,
)
from calorie_tracker.errors import StorageError
from calorie_tracker.services.meals import MealLedgerRepository

MEAL_COLUMNS = (
    "id, owner_id, foods, total_calories, recommended_steps, meal_type, notes, "
    "consumed_at, created_at, updated_at"
)


@dataclass
class SupabaseMealLedgerRepository(MealLedgerRepository):
    """Supabase implementation for meals and counter sync."""

    client: Client

    def create_meal(self, owner_id: UUID, draft: MealDraft) -> MealRecord:
        row = self._call("log_meal", {"p_owner_id": str(owner_id), **_draft_params(draft)})
        if row is None:
            raise StorageError("Failed to log meal in Supabase")
        return parse_meal(row)

    def update_meal(
        self, meal_id: UUID, owner_id: UUID, changes: MealChanges
    ) -> MealRecord | None:
        row = self._call(
            "update_meal",
            {
                "p_meal_id": str(meal_id),
                "p_owner_id": str(owner_id),
                **_changes_params(changes),
            },
        )
        return parse_meal(row) if row else None

    def delete_meal(self, meal_id: UUID, owner_id: UUID) -> MealRecord | None:
        row = self._call(
            "delete_meal", {"p_meal_id": str(meal_id), "p_owner_id": str(owner_id)}
        )
        return parse_meal(row) if row else None

    def get_meal(self, meal_id: UUID, owner_id: UUID) -> MealRecord | None:
        response = execute(
            self.client.table("meals")
            .select(MEAL_COLUMNS)
            .eq("id", str(meal_id))
            .eq("owner_id", str(owner_id))
            .limit(1)
        )
        return parse_meal(response.data[0]) if response.data else None

    def list_meals(
        self, owner_id: UUID, filters: MealFilters, offset: int, limit: int
    ) -> tuple[list[MealRecord], int]:
        query = (
            self.client.table("meals")
            .select(MEAL_COLUMNS, count="exact")
            .eq("owner_id", str(owner_id))
        )
        if filters.start is not None:
            query = query.gte("consumed_at", _iso(filters.start))
        if filters.end is not None:
            query = query.lte("consumed_at", _iso(filters.end))
        if filters.meal_type is not None:
            query = query.eq("meal_type", filters.meal_type.value)
        response = execute(
            query.order("consumed_at", desc=True)
            .order("created_at", desc=True)
            .range(offset, offset + limit - 1)
        )
        items = [parse_meal(row) for row in response.data or []]
        total = response.count if response.count is not None else len(items)
        return items, int(total)

    def _call(self, function: str, params: dict[str, object]) -> dict[str, object] | None:
        response = execute(self.client.rpc(function, params))
        data = response.data
        if isinstance(data, list):
            data = data[0] if data else None
        if not data or not data.get("id"):
            return None
        return data


def _draft_params(draft: MealDraft) -> dict[str, object]:
    return {
        "p_foods": [food.to_dict() for food in draft.foods],
        "p_total_calories": draft.total_calories,
        "p_recommended_steps": draft.recommended_steps,
        "p_meal_type": draft.meal_type.value,
        "p_notes": draft.notes,
        "p_consumed_at": _iso(draft.consumed_at),
    }


def _changes_params(changes: MealChanges) -> dict[str, object]:
    """Unset fields go out as null; the function keeps the locked row's values."""
    return {
        "p_foods": (
            [food.to_dict() for food in changes.foods]
            if changes.foods is not None
            else None
        ),
        "p_total_calories": changes.total_calories,
        "p_recommended_steps": changes.recommended_steps,
        "p_meal_type": changes.meal_type.value if changes.meal_type else None,
        "p_notes": changes.notes,
        "p_consumed_at": _iso(changes.consumed_at) if changes.consumed_at else None,
    }


def _iso(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.isoformat()


def _parse_datetime(raw: object) -> datetime | None:
    if not isinstance(raw, str) or not raw:
        return None
    return datetime.fromisoformat(raw)


def parse_meal(row: dict[str, object]) -> MealRecord:
    created_at = _parse_datetime(row.get("created_at"))
    consumed_at = _parse_datetime(row.get("consumed_at")) or created_at
    return MealRecord(
        id=UUID(str(row["id"])),
        owner_id=UUID(str(row["owner_id"])),
        foods=[FoodItem.from_dict(food) for food in row.get("foods") or []],  # type: ignore[union-attr]
        total_calories=int(row.get("total_calories", 0)),
        recommended_steps=int(row.get("recommended_steps", 0)),
        meal_type=MealType(str(row.get("meal_type") or MealType.OTHER.value)),
        notes=str(row.get("notes") or ""),
        consumed_at=consumed_at or datetime.now(tz=UTC),
        created_at=created_at or datetime.now(tz=UTC),
        updated_at=_parse_datetime(row.get("updated_at")),
    )
