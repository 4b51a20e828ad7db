"""pytest configuration and shared fixtures."""
from __future__ import annotations

import sys
from pathlib import Path

import pytest

# Ensure the project root is available on sys.path so tests can import the barbershop package.
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from werkzeug.security import generate_password_hash  # noqa: E402

from barbershop import create_app  # noqa: E402
from barbershop.auth import build_token  # noqa: E402
from barbershop.extensions import db  # noqa: E402
from barbershop.models import AuthAccount, Product, Service, User  # noqa: E402


@pytest.fixture
def app():
    app = create_app({
        "TESTING": True,
        "SECRET_KEY": "test-secret",
        "SQLALCHEMY_DATABASE_URI": "sqlite:///:memory:",
    })
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


def create_user(*, role: str = "client", email: str = "client@example.com", password: str = "Secret123!") -> User:
    user = User(name=f"{role.title()} User", email=email, role=role, phone="555-0000")
    db.session.add(user)
    db.session.flush()
    db.session.add(AuthAccount(user_id=user.user_id, password_hash=generate_password_hash(password)))
    db.session.commit()
    return user


def auth_header(user: User) -> dict[str, str]:
    token = build_token({"user_id": user.user_id, "role": user.role})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def client_user(app) -> User:
    return create_user()


@pytest.fixture
def admin_user(app) -> User:
    return create_user(role="admin", email="admin@example.com")


@pytest.fixture
def catalog(app) -> dict[str, int]:
    """One product with stock 5 (3 already sold) and one 30-minute service."""
    product = Product(
        name="Beard Oil",
        description="Cedarwood",
        price_cents=1000,
        quantity=5,
        sold_quantity=3,
        image_url="/img/oil.jpg",
    )
    service = Service(
        name="Classic Haircut",
        description="Scissor cut",
        price_cents=3000,
        duration_minutes=30,
        image_url="/img/cut.jpg",
    )
    db.session.add_all([product, service])
    db.session.commit()
    return {"product_id": product.product_id, "service_id": service.service_id}


@pytest.fixture
def headers_for(app):
    """Build an ``Authorization`` header for a user."""
    return auth_header


@pytest.fixture
def make_user(app):
    return create_user
