"""Pytest configuration and fixtures."""
import os

# Settings are read once at import time; point them at throwaway backends
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/15")

from decimal import Decimal

import fakeredis
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from inventory.config import get_settings
from inventory.database import Base, get_db
from inventory.main import app
from inventory.redis_client import get_redis
from inventory.schemas.product import ProductCreate
from inventory.services.inventory_service import InventoryService


@pytest.fixture
def test_db():
    """Create a test database for testing."""
    # One shared in-memory SQLite connection, usable from the TestClient threadpool
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)

    yield engine

    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(test_db):
    return sessionmaker(autocommit=False, autoflush=False, bind=test_db)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def fake_redis():
    """In-process Redis, emptied around each test."""
    client = fakeredis.FakeRedis(decode_responses=True)
    client.flushall()
    yield client
    client.flushall()


@pytest.fixture
def settings():
    # Exact stream trimming so retention is observable in tests
    return get_settings().model_copy(update={"event_trim_approximate": False})


@pytest.fixture
def service(db, fake_redis, settings):
    return InventoryService.build(db, fake_redis, settings)


@pytest.fixture
def client(session_factory, fake_redis):
    """TestClient wired to the test database and fake Redis."""

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_redis] = lambda: fake_redis

    yield TestClient(app)

    app.dependency_overrides.clear()


@pytest.fixture
def make_product(service):
    """Create a product through the service with sensible defaults."""

    def _make(**overrides):
        data = {
            "name": "Widget",
            "price": Decimal("9.99"),
            "quantity_in_stock": 5,
        }
        data.update(overrides)
        return service.create_product(ProductCreate(**data))

    return _make
