from __future__ import annotations

import bcrypt
import pytest

from after_sales import AfterSalesService
from app import create_app
from config import TestingConfig
from order_feed import OrderFeed
from table_renderer import TableRenderer
from tests.fakes import FakeOrderSource

STAFF_USER = "staff"
STAFF_PASSWORD = "s3cret-pass"


def completed_row(order_id: int, **overrides) -> dict:
    row = {
        "id": order_id,
        "status": "completed",
        "customer_id": order_id,
        "customers": {"id": order_id, "name": f"Customer {order_id}", "phone": f"0700 000 00{order_id}"},
        "products": {"name": "Linen Shirt", "image_url": None},
        "color": "Black",
        "price": 1000,
        "created_at": "2024-01-01T08:00:00+00:00",
        "completed_at": "2024-01-05T10:30:00+00:00",
        "comments": "",
    }
    row.update(overrides)
    return row


@pytest.fixture
def staff_users() -> dict[str, str]:
    hashed = bcrypt.hashpw(STAFF_PASSWORD.encode("utf-8"), bcrypt.gensalt(rounds=4)).decode("utf-8")
    return {STAFF_USER: hashed}


@pytest.fixture
def source() -> FakeOrderSource:
    return FakeOrderSource(
        rows=[
            completed_row(1, color="Black", price=1000, completed_at="2024-01-05T10:30:00+00:00"),
            completed_row(2, color="White", price=1200, completed_at="2024-01-10T09:00:00+00:00"),
            completed_row(
                3,
                products={"name": "Ankara Dress"},
                color="Maroon",
                price=4200,
                completed_at="2024-01-07T12:00:00+00:00",
            ),
        ]
    )


@pytest.fixture
def service(source) -> AfterSalesService:
    svc = AfterSalesService(OrderFeed(source), TableRenderer())
    svc.reload()
    return svc


@pytest.fixture
def app(service, staff_users):
    class _Config(TestingConfig):
        USERS_DICT = staff_users
        CORS_ALLOWED_ORIGINS = "https://shop.example.com"

    return create_app(_Config, service=service)


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def logged_in_client(client):
    client.post("/login", data={"username": STAFF_USER, "password": STAFF_PASSWORD})
    return client


@pytest.fixture
def api_token(client) -> str:
    resp = client.post("/api/v1/auth/login", json={"username": STAFF_USER, "password": STAFF_PASSWORD})
    return resp.get_json()["data"]["token"]
