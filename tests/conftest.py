"""
Test configuration and fixtures

- Settings are read at import time, so the environment is pinned to an
  in-memory SQLite database and a known JWT secret before any
  marketplace module is imported.
- Every test gets freshly created tables.
- Users and products are seeded directly; orders go through the API.
"""

import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["JWT_ALG"] = "HS256"
os.environ["ENVIRONMENT"] = "test"
os.environ["PRICING_POLICY"] = "client"
os.environ["ORDER_PAY_REQUIRES_ACCESS"] = "false"

import uuid  # noqa: E402
from collections.abc import Callable  # noqa: E402
from typing import Any  # noqa: E402

from fastapi.testclient import TestClient  # noqa: E402
from jose import jwt  # noqa: E402
import pytest  # noqa: E402
from sqlmodel import Session, SQLModel  # noqa: E402

from marketplace.database import engine  # noqa: E402
from marketplace.main import app  # noqa: E402
from marketplace.models.product import Product  # noqa: E402
from marketplace.models.user import User  # noqa: E402
from marketplace.schemas.user import CurrentUser  # noqa: E402

TEST_SECRET = "test-secret"

SHIPPING_ADDRESS = {
    "fullName": "Asha Menon",
    "address": "Berth 4, Willingdon Island",
    "city": "Kochi",
    "postalCode": "682003",
    "country": "India",
    "port": "Cochin Port",
}


def make_token(user_id: uuid.UUID | str, **claims: Any) -> str:
    return jwt.encode({"sub": str(user_id), **claims}, TEST_SECRET, algorithm="HS256")


@pytest.fixture(autouse=True)
def _tables():
    SQLModel.metadata.create_all(engine)
    yield
    SQLModel.metadata.drop_all(engine)


@pytest.fixture
def session():
    with Session(engine) as s:
        yield s


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


@pytest.fixture
def make_user(session: Session) -> Callable[..., User]:
    def _make(role: str = "buyer", name: str | None = None, is_active: bool = True) -> User:
        uid = uuid.uuid4()
        user = User(
            id=uid,
            email=f"{role}-{uid.hex[:8]}@example.com",
            name=name or f"{role.title()} {uid.hex[:4]}",
            role=role,
            is_active=is_active,
        )
        session.add(user)
        session.commit()
        session.refresh(user)
        return user

    return _make


@pytest.fixture
def make_product(session: Session) -> Callable[..., Product]:
    def _make(
        seller: User,
        stock: int = 10,
        price: float = 500.0,
        name: str = "Container Handling",
    ) -> Product:
        product = Product(name=name, price=price, stock=stock, seller_id=seller.id)
        session.add(product)
        session.commit()
        session.refresh(product)
        return product

    return _make


@pytest.fixture
def token() -> Callable[..., str]:
    return make_token


@pytest.fixture
def auth() -> Callable[[User], dict[str, str]]:
    def _auth(user: User) -> dict[str, str]:
        return {"Authorization": f"Bearer {make_token(user.id)}"}

    return _auth


@pytest.fixture
def as_current() -> Callable[[User], CurrentUser]:
    def _as_current(user: User) -> CurrentUser:
        return CurrentUser(id=user.id, role=user.role, is_active=user.is_active)

    return _as_current


@pytest.fixture
def order_payload() -> Callable[..., dict[str, Any]]:
    """Build a POST /orders body from (product, quantity) pairs."""

    def _payload(*lines: tuple[Product, int], **overrides: Any) -> dict[str, Any]:
        items = [
            {
                "product": str(product.id),
                "name": product.name,
                "quantity": quantity,
                "price": product.price,
                "image": "",
                "seller": str(product.seller_id),
            }
            for product, quantity in lines
        ]
        items_price = sum(product.price * quantity for product, quantity in lines)
        body = {
            "items": items,
            "shippingAddress": dict(SHIPPING_ADDRESS),
            "paymentMethod": "CARD",
            "itemsPrice": items_price,
            "taxPrice": round(items_price * 0.1, 2),
            "shippingPrice": 100,
            "totalPrice": round(items_price * 1.1 + 100, 2),
        }
        body.update(overrides)
        return body

    return _payload


@pytest.fixture
def place_order(client, auth, order_payload) -> Callable[..., dict[str, Any]]:
    """Place an order through the API and return the created order."""

    def _place(buyer: User, *lines: tuple[Product, int]) -> dict[str, Any]:
        res = client.post("/api/orders", json=order_payload(*lines), headers=auth(buyer))
        assert res.status_code == 201, res.text
        return res.json()["data"]

    return _place


@pytest.fixture
def reload(session: Session):
    """Re-read a row from the database, dropping anything cached in the session."""

    def _reload(model, pk):
        session.expire_all()
        return session.get(model, pk)

    return _reload
