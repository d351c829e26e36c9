"""
Pytest configuration and fixtures for backend tests.
"""

from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from data_services.main import create_app
from data_services.models import Base
from data_services.routers.dependencies import (
    get_cache_coordinator,
    get_permission_context,
    get_row_registry,
)
from data_services.rows import RowRegistry, TwoLevelCached
from data_services.services.crud import CacheInvalidationCoordinator, RedisGenerationStore, UnitOfWork
from data_services.services.permissions import PermissionContext
from shared.config.constants import ActiveState
from shared.infrastructure.db import get_db
from tests.models import Category, Product, ProductLog, ProductTag, Supplier, Tag


# SQLite in-memory database for testing
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db_session():
    """
    Create a fresh database session for each test.
    Uses SQLite in-memory for isolation.
    """
    Base.metadata.create_all(bind=engine)

    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def statements():
    """Record every SQL statement sent to the test engine."""
    executed: list[str] = []

    def before_cursor_execute(conn, cursor, statement, parameters, context, executemany):
        executed.append(statement)

    event.listen(engine, "before_cursor_execute", before_cursor_execute)
    try:
        yield executed
    finally:
        event.remove(engine, "before_cursor_execute", before_cursor_execute)


# =============================================================================
# Row registry
# =============================================================================


@pytest.fixture
def registry():
    """A registry with every test row type."""
    registry = RowRegistry()
    registry.register(
        Category,
        entity_type="categories",
        name_field="name",
        is_active_field="is_active",
        cache=TwoLevelCached(generation_keys=("catalog", "menu")),
    )
    registry.register(
        Product,
        entity_type="products",
        name_field="name",
        is_active_field="is_active",
        parent_id_field="category_id",
        modify_permission="Catalog:Modify",
        capture_log=ProductLog,
    )
    registry.register(Tag, entity_type="tags", is_active_field="is_active")
    registry.register(ProductTag, entity_type="product_tags")
    registry.register(
        Supplier,
        entity_type="suppliers",
        name_field="name",
        is_active_field="is_active",
        read_permission="Purchasing:Read",
        modify_permission="",
    )
    return registry


# =============================================================================
# Collaborators
# =============================================================================


@pytest.fixture
def generation_store():
    """Generation store double recording bumps instead of talking to redis."""
    store = MagicMock(spec=RedisGenerationStore)
    store.bump.return_value = 1
    return store


@pytest.fixture
def cache(generation_store):
    return CacheInvalidationCoordinator(generation_store)


@pytest.fixture
def uow(db_session):
    return UnitOfWork(db_session)


@pytest.fixture
def admin_ctx():
    return PermissionContext({"sub": "1", "email": "admin@test.com", "roles": ["ADMIN"]})


@pytest.fixture
def user_ctx():
    """Logged in user without any permission token."""
    return PermissionContext({"sub": "2", "email": "user@test.com", "roles": [], "permissions": []})


# =============================================================================
# Seed data
# =============================================================================


@pytest.fixture
def seed_categories(db_session):
    """Five categories, two of them soft-deleted."""
    categories = [
        Category(id=1, name="Burgers", description="Beef and chicken"),
        Category(id=2, name="Drinks", description="Cold drinks"),
        Category(id=3, name="Desserts", is_active=ActiveState.DELETED),
        Category(id=4, name="Salads"),
        Category(id=5, name="Archived", is_active=0),
    ]
    db_session.add_all(categories)
    db_session.commit()
    return categories


@pytest.fixture
def seed_products(db_session, seed_categories):
    products = [
        Product(id=10, name="Classic Burger", category_id=1, price_cents=1500, internal_code="B-01", cost_cents=600),
        Product(id=11, name="Cheese Burger", category_id=1, price_cents=1700, notes="Cheddar"),
        Product(id=12, name="Cola", category_id=2, price_cents=500, supplier_name="Acme"),
        Product(id=13, name="Lemonade 100%", category_id=2, price_cents=600),
        Product(id=14, name="Old Burger", category_id=1, price_cents=900, is_active=ActiveState.DELETED),
    ]
    db_session.add_all(products)
    db_session.commit()
    return products


# =============================================================================
# HTTP client
# =============================================================================


@pytest.fixture
def client(db_session, registry, cache):
    """
    Create a test client with database session, registry and cache overrides.
    The current user is an admin unless a test overrides get_permission_context.
    """
    app = create_app()

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_row_registry] = lambda: registry
    app.dependency_overrides[get_cache_coordinator] = lambda: cache
    app.dependency_overrides[get_permission_context] = lambda: PermissionContext(
        {"sub": "1", "email": "admin@test.com", "roles": ["ADMIN"]}
    )

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
