"""Pytest configuration and fixtures"""
import os

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

# Set test environment variables before the app reads its settings
os.environ.setdefault("DATABASE_URL", "sqlite://")

from app.database import get_session  # noqa: E402
from app.main import app  # noqa: E402
from app.models import cart as _cart_models  # noqa: E402,F401
from app.repositories.cart_repo import CartRepository  # noqa: E402
from app.services.cart_service import CartService  # noqa: E402


@pytest.fixture
def engine():
    """In-memory SQLite engine shared across connections"""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def repo():
    return CartRepository()


@pytest.fixture
def service(repo):
    return CartService(repo)


@pytest.fixture
def client(engine):
    """TestClient wired to the in-memory engine"""

    def _get_session():
        with Session(engine) as session:
            yield session

    app.dependency_overrides[get_session] = _get_session
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def mug():
    """Sample item with an extra attribute"""
    return {"sku": "MUG-1", "discount_price": 12.5, "name": "Coffee mug"}


@pytest.fixture
def tee():
    return {"sku": "TEE-1", "discount_price": 20, "size": "M"}


@pytest.fixture
def assert_consistent():
    """Check every derived field of a CartState against its items"""

    def check(state):
        assert state.total_unique_items == len(state.items)
        assert state.total_items == sum(i.quantity for i in state.items)
        assert state.cart_total == pytest.approx(
            sum(i.quantity * i.discount_price for i in state.items)
        )
        assert state.is_empty == (state.total_unique_items == 0)
        for item in state.items:
            assert item.item_total == pytest.approx(item.quantity * item.discount_price)

    return check
