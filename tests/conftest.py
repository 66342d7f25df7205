import json
import os
import uuid
from datetime import timedelta

# Settings are read once at import time; configure them before importing app.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET_KEY"] = "test-secret-key"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["ENVIRONMENT"] = "production"
os.environ["SUPABASE_URL"] = "https://project.supabase.co"
os.environ["STORAGE_BUCKET"] = "assets"
os.environ["STRIPE_SECRET_KEY"] = "sk_test_dummy"
os.environ["STRIPE_WEBHOOK_SECRET"] = "whsec_dummy"

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session

from app.core.errors import BadRequestError
from app.core.payment_client import CheckoutSession, get_payment_gateway
from app.core.security import create_access_token, hash_password
from app.core.time_utils import utc_now
from app.main import app
from app.models.category import Category
from app.models.coupon import Coupon
from app.models.product import Product
from app.models.user import User

API = "/api/v1"
PASSWORD = "secret123"


class FakeGateway:
    """Stands in for Stripe: records sessions, accepts signature 'valid'."""

    def __init__(self):
        self.sessions: list[dict] = []

    def create_session(self, **kwargs) -> CheckoutSession:
        self.sessions.append(kwargs)
        return CheckoutSession(id="cs_test_1", url="https://checkout.test/cs_test_1")

    def verify_webhook(self, payload: bytes, signature: str | None) -> dict:
        if signature != "valid":
            raise BadRequestError("Webhook signature verification failed")
        return json.loads(payload)


@pytest.fixture
def client():
    """Fresh app + in-memory database per test (lifespan runs)."""
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def session(client):
    with Session(client.app.state.engine) as s:
        yield s


@pytest.fixture
def gateway(client):
    fake = FakeGateway()
    app.dependency_overrides[get_payment_gateway] = lambda: fake
    return fake


def make_user(
    session: Session,
    role: str = "user",
    email: str | None = None,
    password: str = PASSWORD,
    name: str = "Test User",
) -> User:
    user = User(
        name=name,
        email=email or f"{role}-{uuid.uuid4().hex[:8]}@example.com",
        password=hash_password(password),
        role=role,
    )
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


def auth_headers(user: User, issued_at=None) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user.id, issued_at)}"}


def make_category(session: Session, name: str = "Electronics") -> Category:
    category = Category(name=name)
    session.add(category)
    session.commit()
    session.refresh(category)
    return category


def make_product(
    session: Session,
    category: Category,
    title: str = "Phone",
    price: float = 100.0,
    quantity: int = 10,
    description: str = "A perfectly ordinary product description",
) -> Product:
    product = Product(
        title=title,
        description=description,
        price=price,
        quantity=quantity,
        category_id=category.id,
    )
    session.add(product)
    session.commit()
    session.refresh(product)
    return product


def make_coupon(
    session: Session,
    name: str = "SAVE20",
    discount: float = 20,
    maximum_discount_amount: float | None = None,
    expires_in: timedelta = timedelta(days=1),
) -> Coupon:
    coupon = Coupon(
        name=name,
        discount=discount,
        expire_at=utc_now() + expires_in,
        maximum_discount_amount=maximum_discount_amount,
    )
    session.add(coupon)
    session.commit()
    session.refresh(coupon)
    return coupon
