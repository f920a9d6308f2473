from __future__ import annotations

import uuid
from dataclasses import replace
from datetime import date, datetime, timedelta, timezone

import pytest

from subtracker.domain.errors import ConstraintViolation, DuplicateKey, NotFoundError, StoreFailure
from subtracker.domain.models import CostFilter, Subscription, SubscriptionFilter
from subtracker.domain.ports.persistence import SubscriptionRepository
from subtracker.infrastructure.persistence.sqlite import SQLiteSubscriptionRepository

USER_A = uuid.UUID("60601fee-2bf1-4721-ae6f-7636e79a0cba")
USER_B = uuid.UUID("11111111-2222-4333-8444-555555555555")
BASE_TIME = datetime(2024, 1, 1, 9, 0, tzinfo=timezone.utc)


def _subscription(
    *,
    service_name: str = "Netflix",
    price: int = 999,
    user_id: uuid.UUID = USER_A,
    start_date: date = date(2024, 1, 1),
    end_date: date | None = None,
    minutes: int = 0,
) -> Subscription:
    created = BASE_TIME + timedelta(minutes=minutes)
    return Subscription(
        id=uuid.uuid4(),
        service_name=service_name,
        price=price,
        user_id=user_id,
        start_date=start_date,
        end_date=end_date,
        created_at=created,
        updated_at=created,
    )


def test_create_then_get_returns_equal_entity(repository: SubscriptionRepository) -> None:
    subscription = _subscription(end_date=date(2024, 12, 1))
    repository.create(subscription)

    stored = repository.get_by_id(subscription.id)

    assert stored == subscription
    assert stored.created_at == stored.updated_at


def test_get_missing_raises_not_found(repository: SubscriptionRepository) -> None:
    with pytest.raises(NotFoundError):
        repository.get_by_id(uuid.uuid4())


def test_create_rejects_constraint_violations(repository: SubscriptionRepository) -> None:
    with pytest.raises(ConstraintViolation):
        repository.create(_subscription(price=0))
    with pytest.raises(ConstraintViolation):
        repository.create(_subscription(start_date=date(2024, 6, 1), end_date=date(2024, 5, 1)))
    with pytest.raises(ConstraintViolation):
        repository.create(_subscription(service_name=""))

    assert repository.list(SubscriptionFilter()) == []


def test_create_out_of_range_price_is_store_failure(repository: SubscriptionRepository) -> None:
    with pytest.raises(StoreFailure):
        repository.create(_subscription(price=10**20))

    assert repository.list(SubscriptionFilter()) == []


def test_sqlite_list_out_of_range_offset_is_store_failure(tmp_path) -> None:
    repo = SQLiteSubscriptionRepository(tmp_path / "subscriptions.db")
    try:
        with pytest.raises(StoreFailure):
            repo.list(SubscriptionFilter(offset=10**20))
    finally:
        repo.close()


def test_create_duplicate_id_raises_duplicate_key(repository: SubscriptionRepository) -> None:
    subscription = _subscription()
    repository.create(subscription)

    with pytest.raises(DuplicateKey):
        repository.create(replace(subscription, service_name="Spotify"))


def test_update_overwrites_mutable_fields_only(repository: SubscriptionRepository) -> None:
    subscription = _subscription()
    repository.create(subscription)

    changed = replace(
        subscription,
        service_name="Netflix Premium",
        price=1499,
        user_id=USER_B,
        start_date=date(2024, 2, 1),
        end_date=date(2024, 8, 1),
        created_at=BASE_TIME + timedelta(days=30),
        updated_at=BASE_TIME + timedelta(days=1),
    )
    repository.update(changed)

    stored = repository.get_by_id(subscription.id)
    assert stored.service_name == "Netflix Premium"
    assert stored.price == 1499
    assert stored.start_date == date(2024, 2, 1)
    assert stored.end_date == date(2024, 8, 1)
    assert stored.updated_at == BASE_TIME + timedelta(days=1)
    assert stored.user_id == USER_A
    assert stored.created_at == BASE_TIME


def test_update_missing_raises_not_found(repository: SubscriptionRepository) -> None:
    with pytest.raises(NotFoundError):
        repository.update(_subscription())


def test_delete_removes_row_and_second_delete_is_not_found(repository: SubscriptionRepository) -> None:
    subscription = _subscription()
    repository.create(subscription)

    repository.delete(subscription.id)

    with pytest.raises(NotFoundError):
        repository.get_by_id(subscription.id)
    with pytest.raises(NotFoundError):
        repository.delete(subscription.id)


def test_list_orders_newest_first_and_filters(repository: SubscriptionRepository) -> None:
    oldest = _subscription(service_name="Netflix", minutes=0)
    middle = _subscription(service_name="Spotify", minutes=1)
    newest = _subscription(service_name="Netflix", user_id=USER_B, minutes=2)
    for item in (oldest, middle, newest):
        repository.create(item)

    assert [item.id for item in repository.list(SubscriptionFilter())] == [newest.id, middle.id, oldest.id]
    assert [item.id for item in repository.list(SubscriptionFilter(user_id=USER_A))] == [middle.id, oldest.id]
    assert [item.id for item in repository.list(SubscriptionFilter(service_name="Netflix"))] == [
        newest.id,
        oldest.id,
    ]
    assert [
        item.id for item in repository.list(SubscriptionFilter(user_id=USER_A, service_name="Netflix"))
    ] == [oldest.id]
    assert repository.list(SubscriptionFilter(service_name="Hulu")) == []


def test_list_applies_limit_and_offset(repository: SubscriptionRepository) -> None:
    items = [_subscription(minutes=index) for index in range(5)]
    for item in items:
        repository.create(item)
    newest_first = [item.id for item in reversed(items)]

    assert [item.id for item in repository.list(SubscriptionFilter(limit=2))] == newest_first[:2]
    assert [item.id for item in repository.list(SubscriptionFilter(limit=2, offset=2))] == newest_first[2:4]
    assert [item.id for item in repository.list(SubscriptionFilter(limit=0, offset=3))] == newest_first[3:]
    assert [item.id for item in repository.list(SubscriptionFilter(limit=0))] == newest_first


def test_calculate_cost_sums_overlapping_windows(repository: SubscriptionRepository) -> None:
    repository.create(_subscription(service_name="Netflix", price=999, start_date=date(2024, 1, 1)))
    repository.create(
        _subscription(
            service_name="Spotify",
            price=300,
            start_date=date(2023, 6, 1),
            end_date=date(2024, 3, 1),
        )
    )
    # Ends before the period starts.
    repository.create(
        _subscription(service_name="Hulu", price=500, start_date=date(2023, 1, 1), end_date=date(2023, 12, 1))
    )
    # Starts after the period ends.
    repository.create(_subscription(service_name="Disney", price=700, start_date=date(2024, 7, 1)))
    repository.create(
        _subscription(service_name="Netflix", price=400, user_id=USER_B, start_date=date(2024, 6, 1))
    )

    period = {"start_period": date(2024, 1, 1), "end_period": date(2024, 6, 1)}
    assert repository.calculate_cost(CostFilter(**period)) == 999 + 300 + 400
    assert repository.calculate_cost(CostFilter(**period, user_id=USER_A)) == 999 + 300
    assert repository.calculate_cost(CostFilter(**period, service_name="Netflix")) == 999 + 400
    assert repository.calculate_cost(CostFilter(**period, user_id=USER_B, service_name="Spotify")) == 0


def test_calculate_cost_boundaries_are_inclusive(repository: SubscriptionRepository) -> None:
    repository.create(
        _subscription(price=100, start_date=date(2023, 1, 1), end_date=date(2024, 1, 1))
    )
    repository.create(_subscription(price=10, start_date=date(2024, 6, 1)))

    assert repository.calculate_cost(CostFilter(start_period=date(2024, 1, 1), end_period=date(2024, 6, 1))) == 110
    assert repository.calculate_cost(CostFilter(start_period=date(2024, 2, 1), end_period=date(2024, 5, 1))) == 0


def test_sqlite_repository_persists_across_connections(tmp_path) -> None:
    path = tmp_path / "nested" / "subscriptions.db"
    first = SQLiteSubscriptionRepository(path)
    subscription = _subscription()
    first.create(subscription)
    first.close()

    second = SQLiteSubscriptionRepository(path)
    try:
        assert second.get_by_id(subscription.id) == subscription
    finally:
        second.close()
