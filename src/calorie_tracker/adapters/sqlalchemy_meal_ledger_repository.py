"""SQLAlchemy repository for the meal ledger."""

from dataclasses import dataclass
from datetime import UTC, datetime
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from calorie_tracker.adapters.sqlalchemy_database import Database, MealRow, UserRow
from calorie_tracker.domain.meals import (
    MealChanges,
    MealDraft,
    MealFilters,
    MealRecord,
)
from calorie_tracker.errors import NotFoundError
from calorie_tracker.services.meals import MealLedgerRepository


@dataclass
class SqlAlchemyMealLedgerRepository(MealLedgerRepository):
    """Keeps meals and the owner's lifetime counter in one transaction."""

    database: Database

    def create_meal(self, owner_id: UUID, draft: MealDraft) -> MealRecord:
        with self.database.transaction() as session:
            row = MealRow(
                owner_id=owner_id,
                foods=[food.to_dict() for food in draft.foods],
                total_calories=draft.total_calories,
                recommended_steps=draft.recommended_steps,
                meal_type=draft.meal_type.value,
                notes=draft.notes,
                consumed_at=draft.consumed_at,
            )
            session.add(row)
            session.flush()
            _adjust_lifetime(session, owner_id, draft.total_calories)
            return row.to_record()

    def update_meal(
        self, meal_id: UUID, owner_id: UUID, changes: MealChanges
    ) -> MealRecord | None:
        with self.database.transaction() as session:
            row = _locked_meal(session, meal_id, owner_id)
            if row is None:
                return None
            delta = 0
            if changes.foods is not None:
                total = changes.total_calories or 0
                delta = total - row.total_calories
                row.foods = [food.to_dict() for food in changes.foods]
                row.total_calories = total
                row.recommended_steps = changes.recommended_steps or 0
            if changes.meal_type is not None:
                row.meal_type = changes.meal_type.value
            if changes.notes is not None:
                row.notes = changes.notes
            if changes.consumed_at is not None:
                row.consumed_at = changes.consumed_at
            row.updated_at = datetime.now(tz=UTC)
            session.flush()
            if delta:
                _adjust_lifetime(session, owner_id, delta)
            return row.to_record()

    def delete_meal(self, meal_id: UUID, owner_id: UUID) -> MealRecord | None:
        with self.database.transaction() as session:
            row = _locked_meal(session, meal_id, owner_id)
            if row is None:
                return None
            record = row.to_record()
            session.delete(row)
            session.flush()
            _adjust_lifetime(session, owner_id, -record.total_calories)
            return record

    def get_meal(self, meal_id: UUID, owner_id: UUID) -> MealRecord | None:
        with self.database.transaction() as session:
            row = session.scalars(
                select(MealRow).where(MealRow.id == meal_id, MealRow.owner_id == owner_id)
            ).first()
            return row.to_record() if row else None

    def list_meals(
        self, owner_id: UUID, filters: MealFilters, offset: int, limit: int
    ) -> tuple[list[MealRecord], int]:
        conditions = [MealRow.owner_id == owner_id]
        if filters.start is not None:
            conditions.append(MealRow.consumed_at >= filters.start)
        if filters.end is not None:
            conditions.append(MealRow.consumed_at <= filters.end)
        if filters.meal_type is not None:
            conditions.append(MealRow.meal_type == filters.meal_type.value)
        with self.database.transaction() as session:
            total = session.scalar(
                select(func.count()).select_from(MealRow).where(*conditions)
            )
            rows = session.scalars(
                select(MealRow)
                .where(*conditions)
                .order_by(MealRow.consumed_at.desc(), MealRow.created_at.desc())
                .offset(offset)
                .limit(limit)
            ).all()
            return [row.to_record() for row in rows], int(total or 0)


def _locked_meal(session: Session, meal_id: UUID, owner_id: UUID) -> MealRow | None:
    return session.scalars(
        select(MealRow)
        .where(MealRow.id == meal_id, MealRow.owner_id == owner_id)
        .with_for_update()
    ).first()


def _adjust_lifetime(session: Session, owner_id: UUID, delta: int) -> None:
    """Apply the delta as an in-database increment."""
    result = session.execute(
        update(UserRow)
        .where(UserRow.id == owner_id)
        .values(lifetime_calories=UserRow.lifetime_calories + delta)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise NotFoundError("User not found")
