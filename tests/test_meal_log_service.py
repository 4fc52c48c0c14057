"""Tests for meal log service."""

from concurrent.futures import ThreadPoolExecutor
from datetime import UTC, date, datetime
from decimal import Decimal
from uuid import uuid4

import pytest

from meal_analytics.domain.buckets import BucketKey, Granularity
from meal_analytics.domain.entries import Macros
from meal_analytics.domain.errors import EntryNotFoundError, StorageError
from meal_analytics.services.dispatcher import ChangeDispatcher
from meal_analytics.services.meals import MealLogDraft, MealLogService
from tests.conftest import FailingEngine

JAN_1 = date(2025, 1, 1)
JAN_2 = date(2025, 1, 2)


def _macros(calories: int, protein: int = 0) -> Macros:
    return Macros(calories=Decimal(calories), protein=Decimal(protein))


def test_log_meal_saves_entry_and_daily_bucket(
    unit_of_work, meal_log_service
) -> None:
    entry = meal_log_service.log_meal(
        MealLogDraft(eaten_on=JAN_1, macros=_macros(450, 30), meal_name="Oats")
    )

    assert unit_of_work.entries.get_entry(entry.id) == entry
    bucket = unit_of_work.buckets.get(Granularity.DAILY, BucketKey(JAN_1))
    assert bucket is not None
    assert bucket.calories == 450
    assert bucket.protein == 30
    assert bucket.entry_count == 1


def test_update_meal_moves_entry_between_days(unit_of_work, meal_log_service) -> None:
    entry = meal_log_service.log_meal(
        MealLogDraft(eaten_on=JAN_1, macros=_macros(500))
    )

    updated = meal_log_service.update_meal(entry.id, {"eaten_on": JAN_2})

    assert updated.eaten_on == JAN_2
    assert unit_of_work.buckets.get(Granularity.DAILY, BucketKey(JAN_1)) is None
    destination = unit_of_work.buckets.get(Granularity.DAILY, BucketKey(JAN_2))
    assert destination is not None
    assert destination.calories == 500


def test_update_meal_macros_recomputes_the_day(
    unit_of_work, meal_log_service
) -> None:
    entry = meal_log_service.log_meal(
        MealLogDraft(eaten_on=JAN_1, macros=_macros(500))
    )

    meal_log_service.update_meal(entry.id, {"macros": _macros(650)})

    bucket = unit_of_work.buckets.get(Granularity.DAILY, BucketKey(JAN_1))
    assert bucket is not None
    assert bucket.calories == 650
    weekly = unit_of_work.buckets.get(
        Granularity.WEEKLY, BucketKey(date(2024, 12, 30))
    )
    assert weekly is not None
    assert weekly.avg_calories == 650


def test_update_meal_rejects_unknown_fields(meal_log_service) -> None:
    entry = meal_log_service.log_meal(MealLogDraft(eaten_on=JAN_1))

    with pytest.raises(ValueError, match="created_at"):
        meal_log_service.update_meal(entry.id, {"created_at": None})


def test_update_missing_meal_raises(meal_log_service) -> None:
    with pytest.raises(EntryNotFoundError):
        meal_log_service.update_meal(uuid4(), {"notes": "late"})


def test_delete_meal_removes_buckets(unit_of_work, meal_log_service) -> None:
    entry = meal_log_service.log_meal(
        MealLogDraft(eaten_on=JAN_1, macros=_macros(500))
    )

    removed = meal_log_service.delete_meal(entry.id)

    assert removed.id == entry.id
    assert meal_log_service.get_meal(entry.id) is None
    assert unit_of_work.buckets.get(Granularity.DAILY, BucketKey(JAN_1)) is None
    assert unit_of_work.buckets.get(Granularity.MONTHLY, BucketKey(JAN_1)) is None


def test_delete_missing_meal_raises(meal_log_service) -> None:
    with pytest.raises(EntryNotFoundError):
        meal_log_service.delete_meal(uuid4())


def test_bulk_log_is_all_or_nothing(unit_of_work) -> None:
    service = MealLogService(
        unit_of_work=unit_of_work,
        dispatcher=ChangeDispatcher(FailingEngine(fail_on=JAN_2)),
    )

    with pytest.raises(StorageError):
        service.log_meals(
            [
                MealLogDraft(eaten_on=JAN_1, macros=_macros(300)),
                MealLogDraft(eaten_on=JAN_2, macros=_macros(700)),
            ]
        )

    assert unit_of_work.entries.entries == {}
    assert all(not table for table in unit_of_work.buckets.tables.values())


def test_failed_recompute_rolls_back_the_entry_write(unit_of_work) -> None:
    service = MealLogService(
        unit_of_work=unit_of_work,
        dispatcher=ChangeDispatcher(FailingEngine(fail_on=JAN_1)),
    )

    with pytest.raises(StorageError) as excinfo:
        service.log_meal(MealLogDraft(eaten_on=JAN_1, macros=_macros(300)))

    assert excinfo.value.retryable
    assert unit_of_work.entries.entries == {}
    assert unit_of_work.buckets.get(Granularity.DAILY, BucketKey(JAN_1)) is None


def test_failed_update_keeps_previous_state(unit_of_work, meal_log_service) -> None:
    entry = meal_log_service.log_meal(
        MealLogDraft(eaten_on=JAN_1, macros=_macros(500))
    )
    failing = MealLogService(
        unit_of_work=unit_of_work,
        dispatcher=ChangeDispatcher(FailingEngine(fail_on=JAN_2)),
    )

    with pytest.raises(StorageError):
        failing.update_meal(entry.id, {"eaten_on": JAN_2})

    assert unit_of_work.entries.get_entry(entry.id) == entry
    origin = unit_of_work.buckets.get(Granularity.DAILY, BucketKey(JAN_1))
    assert origin is not None
    assert origin.calories == 500
    assert unit_of_work.buckets.get(Granularity.DAILY, BucketKey(JAN_2)) is None


def test_relog_meal_scales_macros_and_defaults_to_today(
    unit_of_work, meal_log_service
) -> None:
    source = meal_log_service.log_meal(
        MealLogDraft(
            eaten_on=JAN_1,
            macros=_macros(250, 10),
            meal_name="Yogurt",
            items=["yogurt", "honey"],
            rating=4,
        )
    )

    copy = meal_log_service.relog_meal(source.id, multiplier=Decimal("2.0"))

    assert copy.id != source.id
    assert copy.eaten_on == JAN_2
    assert copy.meal_name == "Yogurt (2x)"
    assert copy.items == ["yogurt", "honey"]
    assert copy.rating == 4
    assert copy.macros == _macros(500, 20)
    bucket = unit_of_work.buckets.get(Granularity.DAILY, BucketKey(JAN_2))
    assert bucket is not None
    assert bucket.calories == 500


@pytest.mark.parametrize(
    ("multiplier", "expected"),
    [
        (Decimal(10), "Oats (10x)"),
        (Decimal("100.0"), "Oats (100x)"),
        (Decimal("0.5"), "Oats (0.5x)"),
    ],
)
def test_relog_meal_names_multiplier_in_plain_notation(
    meal_log_service, multiplier, expected
) -> None:
    source = meal_log_service.log_meal(
        MealLogDraft(eaten_on=JAN_1, macros=_macros(100), meal_name="Oats")
    )

    copy = meal_log_service.relog_meal(source.id, multiplier=multiplier)

    assert copy.meal_name == expected


def test_relog_meal_keeps_name_without_multiplier(meal_log_service) -> None:
    source = meal_log_service.log_meal(
        MealLogDraft(eaten_on=JAN_1, meal_name="Soup", notes="spicy")
    )

    copy = meal_log_service.relog_meal(source.id, eaten_on=JAN_1)

    assert copy.meal_name == "Soup"
    assert copy.notes == "spicy"
    assert copy.eaten_on == JAN_1
    assert copy.macros is None


def test_relog_missing_meal_raises(meal_log_service) -> None:
    with pytest.raises(EntryNotFoundError):
        meal_log_service.relog_meal(uuid4())


def test_relog_rejects_non_positive_multiplier(meal_log_service) -> None:
    source = meal_log_service.log_meal(MealLogDraft(eaten_on=JAN_1))

    with pytest.raises(ValueError, match="multiplier"):
        meal_log_service.relog_meal(source.id, multiplier=Decimal(0))


def test_list_meals_orders_newest_day_and_entry_first(unit_of_work, dispatcher) -> None:
    ticks = iter(datetime(2025, 1, 2, hour, tzinfo=UTC) for hour in range(8, 20))
    service = MealLogService(
        unit_of_work=unit_of_work, dispatcher=dispatcher, clock=lambda: next(ticks)
    )
    breakfast = service.log_meal(MealLogDraft(eaten_on=JAN_1, meal_name="Oats"))
    lunch = service.log_meal(MealLogDraft(eaten_on=JAN_2, meal_name="Soup"))
    dinner = service.log_meal(MealLogDraft(eaten_on=JAN_1, meal_name="Rice"))

    assert service.list_meals() == [lunch, dinner, breakfast]
    assert service.list_meals(JAN_1) == [dinner, breakfast]
    assert service.list_meals(date(2025, 1, 3)) == []


def test_list_meals_filters_by_tenant(meal_log_service) -> None:
    tenant = uuid4()
    mine = meal_log_service.log_meal(MealLogDraft(eaten_on=JAN_1, tenant_id=tenant))
    meal_log_service.log_meal(MealLogDraft(eaten_on=JAN_1, tenant_id=uuid4()))

    scoped = meal_log_service.list_meals(JAN_1, tenant, all_tenants=False)

    assert scoped == [mine]
    assert len(meal_log_service.list_meals(JAN_1)) == 2


def test_concurrent_writes_on_one_day_converge(unit_of_work, engine) -> None:
    service = MealLogService(
        unit_of_work=unit_of_work, dispatcher=ChangeDispatcher(engine)
    )
    seeded = [
        service.log_meal(MealLogDraft(eaten_on=JAN_1, macros=_macros(100 + index)))
        for index in range(8)
    ]

    def write(index: int) -> None:
        service.log_meal(MealLogDraft(eaten_on=JAN_1, macros=_macros(10 * index)))
        service.delete_meal(seeded[index].id)

    with ThreadPoolExecutor(max_workers=8) as executor:
        list(executor.map(write, range(8)))

    incremental = {
        granularity: dict(table)
        for granularity, table in unit_of_work.buckets.tables.items()
    }
    with unit_of_work.transaction() as unit:
        engine.rebuild_all(unit)

    assert unit_of_work.buckets.tables == incremental
    daily = unit_of_work.buckets.get(Granularity.DAILY, BucketKey(JAN_1))
    assert daily is not None
    assert daily.entry_count == 8
    assert daily.calories == sum(10 * index for index in range(8))
