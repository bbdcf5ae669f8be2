"""Supabase repository for meal statistics."""

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from supabase import Client

from calorie_tracker.adapters.supabase_errors import execute
from calorie_tracker.adapters.supabase_meal_ledger_repository import (
    MEAL_COLUMNS,
    parse_meal,
)
from calorie_tracker.domain.meals import MealRecord
from calorie_tracker.domain.stats import PeriodTotals
from calorie_tracker.services.stats import StatsRepository


@dataclass
class SupabaseStatsRepository(StatsRepository):
    """Supabase implementation for stats queries."""

    client: Client

    def summarize_meals(
        self, owner_id: UUID, start: datetime, end: datetime
    ) -> PeriodTotals:
        """Sum meals in [start, end) on the database side."""
        response = execute(
            self.client.rpc(
                "summarize_meals",
                {
                    "p_owner_id": str(owner_id),
                    "p_start": start.isoformat(),
                    "p_end": end.isoformat(),
                },
            )
        )
        data = response.data
        if isinstance(data, list):
            data = data[0] if data else {}
        data = data or {}
        return PeriodTotals(
            start=start,
            end=end,
            total_calories=int(data.get("total_calories") or 0),
            meal_count=int(data.get("meal_count") or 0),
            total_steps=int(data.get("total_steps") or 0),
        )

    def list_recent_meals(self, owner_id: UUID, limit: int) -> list[MealRecord]:
        response = execute(
            self.client.table("meals")
            .select(MEAL_COLUMNS)
            .eq("owner_id", str(owner_id))
            .order("consumed_at", desc=True)
            .limit(limit)
        )
        return [parse_meal(row) for row in response.data or []]

    def count_meals(self, owner_id: UUID) -> int:
        response = execute(
            self.client.table("meals")
            .select("id", count="exact")
            .eq("owner_id", str(owner_id))
            .limit(1)
        )
        return int(response.count or 0)
