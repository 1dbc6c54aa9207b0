"""
Pytest configuration and shared fixtures.
"""

from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from api.config import APIConfig
from api.dependencies import build_services
from api.main import create_app
from catalog.credentials import CredentialCodec
from catalog.listing import ListingEngine
from catalog.models import AuthContext
from catalog.ownership import OwnershipPolicy
from tests.fakes import (
    FakeAuthorRepository,
    FakeBookRepository,
    FakeFavoriteRepository,
    FakeUserRepository,
    InMemoryStore,
)
from utilities.config import AppConfig

TEST_SECRET = "test-signing-secret"
TEST_PASSWORD = "Passw0rd!"


@pytest.fixture
def settings():
    """Configuration with a signing secret and the cheapest bcrypt cost."""
    return AppConfig(
        _env_file=None,
        jwt_secret=TEST_SECRET,
        bcrypt_salt_rounds=4,
        default_page_limit=10,
        max_page_limit=100,
    )


@pytest.fixture
def codec(settings):
    return CredentialCodec.from_config(settings)


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def users(store):
    return FakeUserRepository(store)


@pytest.fixture
def authors(store):
    return FakeAuthorRepository(store)


@pytest.fixture
def books(store):
    return FakeBookRepository(store)


@pytest.fixture
def favorites(store):
    return FakeFavoriteRepository(store)


@pytest.fixture
def listing():
    return ListingEngine()


@pytest.fixture
def ownership():
    return OwnershipPolicy()


@pytest.fixture
def owner(store):
    """Context of a user who owns the resources created in a test."""
    return AuthContext.for_user(store.seed_user("a@x.com", name="Alice"))


@pytest.fixture
def stranger(store):
    """Context of a second, unrelated user."""
    return AuthContext.for_user(store.seed_user("b@y.com", name="Bob"))


@pytest.fixture
def services(settings, users, authors, books, favorites):
    return build_services(
        settings,
        users=users,
        authors=authors,
        books=books,
        favorites=favorites,
        health_check=AsyncMock(return_value={"status": "healthy", "database": "test"}),
    )


@pytest.fixture
def client(services, settings):
    """TestClient over the real application with in-memory storage."""
    app = create_app(services=services, settings=settings, api_settings=APIConfig(_env_file=None))
    with TestClient(app) as test_client:
        yield test_client
