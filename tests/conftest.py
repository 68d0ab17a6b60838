"""
Shared fixtures for the test-suite.

Every application built here uses the in-memory backend and the
``test`` environment unless a test asks for something else.
"""

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from recordapi.core.config import Settings
from recordapi.infrastructure.companies.documents import COMPANY_DESCRIPTOR
from recordapi.infrastructure.records.memory_collection import InMemoryCollection
from recordapi.main import create_app


class TickingClock:
    """Deterministic clock advancing one second per reading."""

    def __init__(self) -> None:
        self.now = datetime(2024, 1, 1, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        self.now += timedelta(seconds=1)
        return self.now


@pytest.fixture
def companies() -> InMemoryCollection:
    return InMemoryCollection(COMPANY_DESCRIPTOR, clock=TickingClock())


def make_settings(**overrides) -> Settings:
    values = {
        "environment": "test",
        "storage_backend": "memory",
        "rate_limit_default": "1000/minute",
        "log_level": "WARNING",
    }
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def client() -> TestClient:
    return TestClient(create_app(make_settings()), raise_server_exceptions=False)


@pytest.fixture
def app_factory():
    """Build a test client from settings overrides."""

    def factory(**overrides) -> TestClient:
        return TestClient(create_app(make_settings(**overrides)), raise_server_exceptions=False)

    return factory
