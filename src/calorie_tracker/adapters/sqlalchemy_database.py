"""SQLAlchemy engine, session handling and table mappings."""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import UTC, datetime
from uuid import UUID, uuid4

from sqlalchemy import (
    JSON,
    DateTime,
    Engine,
    ForeignKey,
    Index,
    Integer,
    String,
    TypeDecorator,
    Uuid,
    create_engine,
    event,
)
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column, sessionmaker
from sqlalchemy.pool import StaticPool

from calorie_tracker.domain.meals import FoodItem, MealRecord, MealType
from calorie_tracker.domain.models import UserAccount, UserProfile
from calorie_tracker.errors import (
    AppError,
    StorageContentionError,
    StorageError,
    ValidationError,
)

_logger = logging.getLogger(__name__)

_CONTENTION_MARKERS = (
    "database is locked",
    "database table is locked",
    "could not serialize",
    "deadlock detected",
    "lock timeout",
)


class UTCDateTime(TypeDecorator):
    """Stores datetimes as naive UTC and returns them timezone-aware."""

    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect) -> datetime | None:  # type: ignore[no-untyped-def]
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC).replace(tzinfo=None)

    def process_result_value(self, value: datetime | None, dialect) -> datetime | None:  # type: ignore[no-untyped-def]
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value.astimezone(UTC)


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


class Base(DeclarativeBase):
    pass


class UserRow(Base):
    __tablename__ = "users"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    username: Mapped[str] = mapped_column(String(30), unique=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    daily_calorie_goal: Mapped[int] = mapped_column(Integer, nullable=False)
    lifetime_calories: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    profile: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime, nullable=False, default=_utcnow
    )

    def to_account(self) -> UserAccount:
        return UserAccount(
            id=self.id,
            username=self.username,
            password_hash=self.password_hash,
            daily_calorie_goal=self.daily_calorie_goal,
            lifetime_calories=self.lifetime_calories,
            profile=UserProfile.from_dict(self.profile),
            created_at=self.created_at,
        )


class MealRow(Base):
    __tablename__ = "meals"
    __table_args__ = (Index("ix_meals_owner_consumed_at", "owner_id", "consumed_at"),)

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    owner_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("users.id"), nullable=False
    )
    foods: Mapped[list] = mapped_column(JSON, nullable=False)
    total_calories: Mapped[int] = mapped_column(Integer, nullable=False)
    recommended_steps: Mapped[int] = mapped_column(Integer, nullable=False)
    meal_type: Mapped[str] = mapped_column(String(16), nullable=False)
    notes: Mapped[str] = mapped_column(String(500), nullable=False, default="")
    consumed_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime, nullable=False, default=_utcnow
    )
    updated_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)

    def to_record(self) -> MealRecord:
        return MealRecord(
            id=self.id,
            owner_id=self.owner_id,
            foods=[FoodItem.from_dict(food) for food in self.foods],
            total_calories=self.total_calories,
            recommended_steps=self.recommended_steps,
            meal_type=MealType(self.meal_type),
            notes=self.notes,
            consumed_at=self.consumed_at,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


@dataclass
class Database:
    """Owns the engine and hands out transactional sessions."""

    engine: Engine
    session_factory: sessionmaker[Session]

    @classmethod
    def create(cls, url: str, timeout_seconds: float = 10.0) -> "Database":
        """Create an engine with a bounded wait for locks and connections."""
        if url.startswith("sqlite"):
            kwargs: dict[str, object] = {
                "connect_args": {
                    "timeout": timeout_seconds,
                    "check_same_thread": False,
                }
            }
            if ":memory:" in url or url in {"sqlite://", "sqlite:///"}:
                kwargs["poolclass"] = StaticPool
        else:
            kwargs = {"pool_timeout": timeout_seconds, "pool_pre_ping": True}
        engine = create_engine(url, **kwargs)
        if url.startswith("sqlite"):
            _use_immediate_transactions(engine)
        return cls(
            engine=engine,
            session_factory=sessionmaker(bind=engine, expire_on_commit=False),
        )

    def create_schema(self) -> None:
        """Create missing tables."""
        Base.metadata.create_all(self.engine)
        _logger.info("Database schema ensured")

    @contextmanager
    def transaction(
        self, integrity_message: str = "Data integrity violation"
    ) -> Iterator[Session]:
        """Yield a session whose work commits on success and rolls back on error."""
        session = self.session_factory()
        try:
            with session.begin():
                yield session
        except AppError:
            raise
        except IntegrityError as exc:
            raise ValidationError(integrity_message) from exc
        except OperationalError as exc:
            if _is_contention(exc):
                _logger.info("Storage contention", extra={"error": str(exc.orig)})
                raise StorageContentionError() from exc
            _logger.exception("Storage operation failed")
            raise StorageError() from exc
        except SQLAlchemyError as exc:
            _logger.exception("Storage operation failed")
            raise StorageError() from exc
        finally:
            session.close()

    def dispose(self) -> None:
        self.engine.dispose()


def _use_immediate_transactions(engine: Engine) -> None:
    """Take the SQLite write lock up front so the busy timeout can queue writers."""

    @event.listens_for(engine, "connect")
    def _disable_driver_transactions(dbapi_connection, _record) -> None:  # type: ignore[no-untyped-def]
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _begin_immediate(connection) -> None:  # type: ignore[no-untyped-def]
        connection.exec_driver_sql("BEGIN IMMEDIATE")


def _is_contention(exc: OperationalError) -> bool:
    message = str(exc.orig).lower()
    return any(marker in message for marker in _CONTENTION_MARKERS)
