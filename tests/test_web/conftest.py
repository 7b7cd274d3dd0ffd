"""Fixtures for web route tests."""

from typing import Any

import pytest
import pytest_asyncio
from fastapi import FastAPI
from fastapi.testclient import TestClient

from estate_listings.auth import hash_password
from estate_listings.config import Settings
from estate_listings.db import Database, UserRepository
from estate_listings.models import Role
from estate_listings.web.app import create_app
from fakes import FakeAssetGateway

ADMIN_EMAIL = "admin@example.com"
ADMIN_PASSWORD = "correct horse"
VIEWER_EMAIL = "viewer@example.com"
VIEWER_PASSWORD = "battery staple"


@pytest.fixture
def settings() -> Settings:
    return Settings(
        database_path=":memory:",
        session_secret="test-secret",
        site_base_url="https://homes.example.com/",
    )


@pytest_asyncio.fixture
async def seeded_users(db: Database) -> Database:
    users = UserRepository(db)
    await users.create_user(ADMIN_EMAIL, hash_password(ADMIN_PASSWORD), name="Admin")
    await users.create_user(VIEWER_EMAIL, hash_password(VIEWER_PASSWORD), role=Role.VIEWER)
    return db


@pytest.fixture
def app(seeded_users: Database, settings: Settings, assets: FakeAssetGateway) -> FastAPI:
    return create_app(settings, db=seeded_users, assets=assets)


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    return TestClient(app)


@pytest.fixture
def admin_client(client: TestClient) -> TestClient:
    resp = client.post("/api/auth/login", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD})
    assert resp.status_code == 200
    return client


@pytest.fixture
def viewer_client(client: TestClient) -> TestClient:
    resp = client.post(
        "/api/auth/login", json={"email": VIEWER_EMAIL, "password": VIEWER_PASSWORD}
    )
    assert resp.status_code == 200
    return client


@pytest.fixture
def create_listing(admin_client: TestClient, make_payload: Any) -> Any:
    """Create a listing through the admin API and return the response body."""

    def _create(**overrides: Any) -> dict[str, Any]:
        resp = admin_client.post("/api/admin/listings", json=make_payload(**overrides))
        assert resp.status_code == 201, resp.text
        body: dict[str, Any] = resp.json()
        return body

    return _create
