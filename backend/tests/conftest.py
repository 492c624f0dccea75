"""Pytest configuration and fixtures."""

import pytest
from decimal import Decimal
from typing import Generator

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.cache import RedisCacheClient, SimpleCache, get_cache
from app.core.rbac import UserRole
from app.core.security import get_password_hash, create_staff_token
from app.db.base import Base
from app.db.session import enable_sqlite_foreign_keys, get_db
from app.main import app
# Import all models to ensure they're registered with Base.metadata
from app.models import *
from app.models.menu import Category, MenuItem
from app.models.restaurant import Desk
from app.models.shop import Shop
from app.models.user import User
from app.services.session_service import SessionService

# Use in-memory SQLite for tests
TEST_DATABASE_URL = "sqlite:///:memory:"

PIZZA_OPTIONS = [
    {
        "id": "size",
        "name": "Size",
        "type": "radio",
        "options": [
            {"id": "small", "name": "Small", "price": -2},
            {"id": "large", "name": "Large", "price": 3},
        ],
    },
    {"id": "cheese", "name": "Extra cheese", "type": "checkbox", "price": 1.5},
]


@pytest.fixture(scope="function")
def db_engine():
    """Create a test database engine."""
    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(engine)
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def db_session(db_engine) -> Generator[Session, None, None]:
    """Create a test database session."""
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def cache() -> RedisCacheClient:
    """Fresh in-memory cache per test."""
    return RedisCacheClient(SimpleCache())


@pytest.fixture(scope="function")
def client(db_session: Session, cache: RedisCacheClient) -> Generator[TestClient, None, None]:
    """Create a test client with database and cache overrides."""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_cache] = lambda: cache
    # Disable rate limiting during tests to avoid flaky failures
    from app.core.rate_limit import limiter
    limiter.enabled = False
    # Don't raise server exceptions so we can test error status codes
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client
    limiter.enabled = True
    app.dependency_overrides.clear()


@pytest.fixture
def shop(db_session: Session) -> Shop:
    """The default shop (id 1)."""
    shop = Shop(name="Test Bistro", slug="test-bistro", currency="USD", active=True)
    db_session.add(shop)
    db_session.commit()
    db_session.refresh(shop)
    return shop


@pytest.fixture
def other_shop(db_session: Session) -> Shop:
    shop = Shop(name="Other Place", slug="other-place", currency="USD", active=True)
    db_session.add(shop)
    db_session.commit()
    db_session.refresh(shop)
    return shop


def _make_user(db_session: Session, shop: Shop, username: str, role: UserRole) -> User:
    user = User(
        shop_id=shop.id,
        username=username,
        password_hash=get_password_hash("testpass123"),
        role=role,
        name=username.title(),
        is_active=True,
    )
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture
def admin_user(db_session: Session, shop: Shop) -> User:
    return _make_user(db_session, shop, "admin", UserRole.ADMIN)


@pytest.fixture
def staff_user(db_session: Session, shop: Shop) -> User:
    return _make_user(db_session, shop, "waiter", UserRole.STAFF)


def token_for(user: User) -> str:
    return create_staff_token(user.id, user.username, user.role.value, user.shop_id)


@pytest.fixture
def staff_token(staff_user: User) -> str:
    return token_for(staff_user)


@pytest.fixture
def auth_headers(staff_token: str) -> dict:
    """Staff authentication headers."""
    return {"Authorization": f"Bearer {staff_token}"}


@pytest.fixture
def admin_headers(admin_user: User) -> dict:
    return {"Authorization": f"Bearer {token_for(admin_user)}"}


@pytest.fixture
def category(db_session: Session, shop: Shop) -> Category:
    category = Category(shop_id=shop.id, name="Mains", sort_order=0)
    db_session.add(category)
    db_session.commit()
    db_session.refresh(category)
    return category


@pytest.fixture
def pizza(db_session: Session, shop: Shop, category: Category) -> MenuItem:
    """Menu item with a radio and a checkbox option."""
    item = MenuItem(
        shop_id=shop.id,
        category_id=category.id,
        name="Margherita Pizza",
        description="Tomato, mozzarella, basil",
        price=Decimal("10.00"),
        is_available=True,
        customization_options=PIZZA_OPTIONS,
    )
    db_session.add(item)
    db_session.commit()
    db_session.refresh(item)
    return item


@pytest.fixture
def soda(db_session: Session, shop: Shop, category: Category) -> MenuItem:
    item = MenuItem(
        shop_id=shop.id,
        category_id=category.id,
        name="Soda",
        price=Decimal("2.50"),
        is_available=True,
    )
    db_session.add(item)
    db_session.commit()
    db_session.refresh(item)
    return item


@pytest.fixture
def desk(db_session: Session, shop: Shop) -> Desk:
    desk = Desk(shop_id=shop.id, name="5", number=5, capacity=4, status="available")
    db_session.add(desk)
    db_session.commit()
    db_session.refresh(desk)
    return desk


@pytest.fixture
def customer_session(db_session: Session, cache: RedisCacheClient, shop: Shop):
    """Active ordering session at table 5."""
    return SessionService(db_session, cache).create("5", shop.id)


@pytest.fixture
def customer_headers(customer_session) -> dict:
    return {"X-Session-ID": customer_session.id, "X-Table-Number": "5"}
