"""SQLAlchemy repository for meal statistics."""

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from sqlalchemy import func, select

from calorie_tracker.adapters.sqlalchemy_database import Database, MealRow
from calorie_tracker.domain.meals import MealRecord
from calorie_tracker.domain.stats import PeriodTotals
from calorie_tracker.services.stats import StatsRepository


@dataclass
class SqlAlchemyStatsRepository(StatsRepository):
    """SQLAlchemy implementation for stats queries."""

    database: Database

    def summarize_meals(
        self, owner_id: UUID, start: datetime, end: datetime
    ) -> PeriodTotals:
        with self.database.transaction() as session:
            calories, count, steps = session.execute(
                select(
                    func.coalesce(func.sum(MealRow.total_calories), 0),
                    func.count(MealRow.id),
                    func.coalesce(func.sum(MealRow.recommended_steps), 0),
                ).where(
                    MealRow.owner_id == owner_id,
                    MealRow.consumed_at >= start,
                    MealRow.consumed_at < end,
                )
            ).one()
        return PeriodTotals(
            start=start,
            end=end,
            total_calories=int(calories),
            meal_count=int(count),
            total_steps=int(steps),
        )

    def list_recent_meals(self, owner_id: UUID, limit: int) -> list[MealRecord]:
        with self.database.transaction() as session:
            rows = session.scalars(
                select(MealRow)
                .where(MealRow.owner_id == owner_id)
                .order_by(MealRow.consumed_at.desc())
                .limit(limit)
            ).all()
            return [row.to_record() for row in rows]

    def count_meals(self, owner_id: UUID) -> int:
        with self.database.transaction() as session:
            return int(
                session.scalar(
                    select(func.count(MealRow.id)).where(MealRow.owner_id == owner_id)
                )
                or 0
            )
