"""Shared pytest fixtures."""

import os
import sys
from collections.abc import AsyncGenerator, Iterator
from typing import Any

import pytest
import pytest_asyncio
import structlog
from hypothesis import HealthCheck, settings

from estate_listings.config import Settings
from estate_listings.db import Database
from estate_listings.models import Identity, Role
from fakes import FakeAssetGateway


def pytest_configure(config: pytest.Config) -> None:
    """Force line-buffered stdout when piped."""
    if hasattr(sys.stdout, "reconfigure") and not sys.stdout.isatty():
        sys.stdout.reconfigure(line_buffering=True)
    if hasattr(sys.stderr, "reconfigure") and not sys.stderr.isatty():
        sys.stderr.reconfigure(line_buffering=True)


# Hypothesis settings profiles for different environments
settings.register_profile("fast", max_examples=10)
settings.register_profile(
    "ci",
    max_examples=200,
    suppress_health_check=[HealthCheck.too_slow],
)
settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "fast"))


@pytest.fixture(autouse=True)
def _isolate_settings_from_dotenv(monkeypatch: pytest.MonkeyPatch) -> None:
    """Prevent the local .env file from leaking into test Settings instances."""
    monkeypatch.setattr(
        Settings,
        "model_config",
        {**Settings.model_config, "env_file": None},
    )


@pytest.fixture(autouse=True)
def _reset_structlog() -> Iterator[None]:
    """Drop logging config bound to a per-test capture stream (capsys closes it)."""
    yield
    structlog.reset_defaults()


@pytest.fixture
def assets() -> FakeAssetGateway:
    return FakeAssetGateway()


@pytest_asyncio.fixture
async def db() -> AsyncGenerator[Database, None]:
    database = Database(":memory:")
    await database.initialize()
    yield database
    await database.close()


@pytest.fixture
def admin() -> Identity:
    return Identity(user_id="admin-1", email="admin@example.com", name="Admin", role=Role.ADMIN)


@pytest.fixture
def viewer() -> Identity:
    return Identity(user_id="viewer-1", email="viewer@example.com", role=Role.VIEWER)


def make_listing_payload(**overrides: Any) -> dict[str, Any]:
    """A valid create-listing request body."""
    payload: dict[str, Any] = {
        "title": "Ocean View Villa",
        "description": "Bright villa with a sea view.",
        "price": 450000,
        "location": "Lisbon",
        "bedrooms": 3,
        "bathrooms": 2,
        "property_type": "house",
        "status": "for_sale",
        "images": [],
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def listing_payload() -> dict[str, Any]:
    return make_listing_payload()


@pytest.fixture
def make_payload() -> Any:
    """Factory fixture for create-listing bodies with overrides."""
    return make_listing_payload
