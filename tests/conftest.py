"""Shared test fixtures."""

from dataclasses import dataclass
from datetime import UTC, date, datetime
from decimal import Decimal
from uuid import UUID, uuid4

import pytest

from meal_analytics.adapters.memory_store import InMemoryUnitOfWork
from meal_analytics.config import Settings
from meal_analytics.containers import AppContainer
from meal_analytics.domain.entries import Macros, RawEntry, RawEntryChange
from meal_analytics.domain.errors import StorageError
from meal_analytics.services.admin import AdminService
from meal_analytics.services.analytics import AnalyticsService
from meal_analytics.services.dispatcher import ChangeDispatcher
from meal_analytics.services.meals import MealLogService
from meal_analytics.services.recompute import RecomputeEngine
from meal_analytics.services.transactions import StorageUnit

TODAY = date(2025, 1, 2)


def make_entry(  # noqa: PLR0913
    eaten_on: date,
    calories: float | str = 0,
    protein: float | str = 0,
    carbs: float | str = 0,
    fat: float | str = 0,
    *,
    with_macros: bool = True,
    tenant_id: UUID | None = None,
    created_at: datetime | None = None,
) -> RawEntry:
    """Build a raw entry with exact decimal macros."""
    macros = (
        Macros(
            calories=Decimal(str(calories)),
            protein=Decimal(str(protein)),
            carbs=Decimal(str(carbs)),
            fat=Decimal(str(fat)),
        )
        if with_macros
        else None
    )
    return RawEntry(
        id=uuid4(),
        eaten_on=eaten_on,
        macros=macros,
        created_at=created_at or datetime.now(tz=UTC),
        tenant_id=tenant_id,
    )


def insert_entries(
    unit_of_work: InMemoryUnitOfWork,
    dispatcher: ChangeDispatcher,
    *entries: RawEntry,
) -> None:
    """Save entries and dispatch their insert events, one unit each."""
    for entry in entries:
        with unit_of_work.transaction() as unit:
            unit.entries.save_entry(entry)
            dispatcher.on_raw_entry_change(unit, RawEntryChange.inserted(entry))


@dataclass
class FixedClock:
    """Clock returning a fixed date."""

    today: date = TODAY

    def __call__(self) -> date:
        return self.today


@dataclass
class FailingEngine(RecomputeEngine):
    """Recompute engine that fails for one date, like a storage timeout."""

    fail_on: date | None = None

    def recompute(
        self, unit: StorageUnit, day: date, tenant_id: UUID | None = None
    ) -> None:
        super().recompute(unit, day, tenant_id)
        if day == self.fail_on:
            raise StorageError("statement timeout")


@pytest.fixture
def settings() -> Settings:
    return Settings(admin_token="admin-token")


@pytest.fixture
def unit_of_work() -> InMemoryUnitOfWork:
    return InMemoryUnitOfWork()


@pytest.fixture
def engine() -> RecomputeEngine:
    return RecomputeEngine()


@pytest.fixture
def dispatcher(engine: RecomputeEngine) -> ChangeDispatcher:
    return ChangeDispatcher(engine)


@pytest.fixture
def meal_log_service(
    unit_of_work: InMemoryUnitOfWork, dispatcher: ChangeDispatcher
) -> MealLogService:
    return MealLogService(
        unit_of_work=unit_of_work,
        dispatcher=dispatcher,
        clock=lambda: datetime(2025, 1, 2, 12, 0, tzinfo=UTC),
    )


@pytest.fixture
def analytics_service(unit_of_work: InMemoryUnitOfWork) -> AnalyticsService:
    return AnalyticsService(buckets=unit_of_work.buckets, clock=FixedClock())


@pytest.fixture
def container(
    settings: Settings,
    unit_of_work: InMemoryUnitOfWork,
    engine: RecomputeEngine,
    dispatcher: ChangeDispatcher,
    meal_log_service: MealLogService,
    analytics_service: AnalyticsService,
) -> AppContainer:
    admin_service = AdminService(
        unit_of_work=unit_of_work,
        engine=engine,
        buckets=unit_of_work.buckets,
    )
    return AppContainer(
        settings=settings,
        unit_of_work=unit_of_work,
        bucket_store=unit_of_work.buckets,
        recompute_engine=engine,
        dispatcher=dispatcher,
        meal_log_service=meal_log_service,
        analytics_service=analytics_service,
        admin_service=admin_service,
    )
