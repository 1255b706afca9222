import os
import tempfile

# Point the app at a throwaway SQLite database before anything imports settings.
_DB_DIR = tempfile.mkdtemp(prefix="storefront-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_DB_DIR, 'storefront.db')}"
os.environ["STATS_CACHE_BACKEND"] = "memory"
os.environ["STATS_WARM_ON_WRITE"] = "false"
os.environ.setdefault("JWT_SECRET", "test-secret")

from decimal import Decimal
from itertools import count

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import text

from storefront import models  # noqa: F401
from storefront.core.security import create_access_token
from storefront.db import Base, engine
from storefront.db_distributors import create_distributor
from storefront.db_products import create_product
from storefront.db_users import UserRole, create_user

_seq = count(1)


@pytest.fixture(scope="session", autouse=True)
def _schema():
    Base.metadata.create_all(engine)
    yield
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture(autouse=True)
def _clean_tables(_schema):
    yield
    with engine.begin() as conn:
        for table in reversed(Base.metadata.sorted_tables):
            conn.execute(text(f"DELETE FROM {table.name}"))


@pytest.fixture
def client():
    from storefront.main import app

    app.state.stats_cache.invalidate()
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def auth_headers(user: dict) -> dict:
    token = create_access_token({"sub": str(user["id"]), "user_id": user["id"]})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def make_user():
    def _make(role: str = UserRole.CUSTOMER, distributor_id=None, email=None) -> dict:
        return create_user(
            email=email or f"user{next(_seq)}@example.org",
            name="Test User",
            hashed_password="not-a-real-hash",
            role=role,
            distributor_id=distributor_id,
        )

    return _make


@pytest.fixture
def make_product():
    def _make(base_price="100.00", category="Electronics", stock=100, name=None) -> dict:
        n = next(_seq)
        return create_product(
            name=name or f"Product {n}",
            base_price=Decimal(base_price),
            category=category,
            stock=stock,
            sku=f"SKU-{n}",
        )

    return _make


@pytest.fixture
def make_distributor():
    def _make(name=None, email_domain=None, default_discount_percent=None) -> dict:
        n = next(_seq)
        return create_distributor(
            name=name or f"Distributor {n}",
            email_domain=email_domain or f"dist{n}.example.com",
            default_discount_percent=default_discount_percent,
        )

    return _make


@pytest.fixture
def admin(make_user):
    return make_user(role=UserRole.ADMIN, email="admin@example.org")
