# tests/conftest.py
import os
import sys
import uuid

import pytest
from fastapi.testclient import TestClient

# ensure project root is importable
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from storefront.config import Settings  # noqa: E402
from storefront.core.security import create_access_token, hash_password  # noqa: E402
from storefront.main import create_app  # noqa: E402
from storefront.utils.timestamps import format_datetime, utcnow  # noqa: E402

TEST_SECRET = "test-secret"


@pytest.fixture
def settings(tmp_path):
    """Settings pointing at an isolated data dir for each test."""
    return Settings(DATA_DIR=tmp_path / "data", JWT_SECRET=TEST_SECRET, PAYMENT_PROVIDER="test")


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def db(app):
    return app.state.db


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def make_user(db):
    """
    Create a user row directly in the store and return it.
    Usage: user = make_user(is_admin=True)
    """
    def _fn(username=None, password="testpass", is_admin=False):
        username = username or f"user_{uuid.uuid4().hex[:8]}"
        return db.create_record(
            "users",
            {
                "username": username,
                "email": f"{username}@example.test",
                "password_hash": hash_password(password),
                "is_admin": is_admin,
                "created_at": format_datetime(utcnow()),
            },
            id_field="id",
        )
    return _fn


@pytest.fixture
def auth_header():
    """
    Build an Authorization header for a user row.
    Usage: hdr = auth_header(user)
    """
    def _h(user):
        return {"Authorization": f"Bearer {create_access_token(user['id'], TEST_SECRET)}"}
    return _h


@pytest.fixture
def user(make_user):
    return make_user()


@pytest.fixture
def user_headers(user, auth_header):
    return auth_header(user)


@pytest.fixture
def admin_headers(make_user, auth_header):
    return auth_header(make_user(username="admin", is_admin=True))


@pytest.fixture
def make_product(db):
    def _fn(title="Chair", price=100.0, stock=10, category_id=""):
        return db.create_record(
            "products",
            {"title": title, "price": price, "stock": stock, "category_id": category_id},
            id_field="id",
        )
    return _fn


@pytest.fixture
def add_to_cart(db):
    """Put a cart line for `user` straight into the store."""
    def _fn(user, product, quantity=1):
        return db.create_record(
            "cart_items",
            {"user_id": user["id"], "product_id": product["id"], "quantity": quantity},
            id_field="id",
        )
    return _fn


@pytest.fixture
def stock_of(db):
    def _fn(product):
        return int(float(db.get_record("products", "id", product["id"])["stock"]))
    return _fn
