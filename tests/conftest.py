from __future__ import annotations

from collections.abc import Generator
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from subtracker.application.services.subscription_service import SubscriptionService
from subtracker.core.app_factory import create_application
from subtracker.core.config import Settings
from subtracker.domain.ports.persistence import SubscriptionRepository
from subtracker.infrastructure.persistence.memory import InMemorySubscriptionRepository
from subtracker.infrastructure.persistence.sqlite import SQLiteSubscriptionRepository


class FakeClock:
    """Deterministic UTC clock that advances one second per call."""

    def __init__(self, start: datetime | None = None) -> None:
        self.current = start or datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        value = self.current
        self.current = self.current + timedelta(seconds=1)
        return value


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture(params=["sqlite", "memory"])
def repository(request: pytest.FixtureRequest, tmp_path: Path) -> Generator[SubscriptionRepository, None, None]:
    if request.param == "sqlite":
        repo: SubscriptionRepository = SQLiteSubscriptionRepository(tmp_path / "subscriptions.db")
    else:
        repo = InMemorySubscriptionRepository()
    try:
        yield repo
    finally:
        repo.close()


@pytest.fixture()
def service(repository: SubscriptionRepository, clock: FakeClock) -> SubscriptionService:
    return SubscriptionService(repository, clock=clock)


@pytest.fixture()
def settings(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Settings:
    monkeypatch.setenv("APP_ENV", "test")
    monkeypatch.setenv("DATABASE_PATH", str(tmp_path / "api.db"))
    monkeypatch.setenv("STORAGE_BACKEND", "sqlite")
    monkeypatch.delenv("LOG_FORMAT", raising=False)
    return Settings()


@pytest.fixture()
def client(settings: Settings) -> Generator[TestClient, None, None]:
    app = create_application(settings)
    with TestClient(app) as test_client:
        yield test_client
