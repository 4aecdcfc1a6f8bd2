from auth import issue_token
from tests.conftest import STAFF_PASSWORD, STAFF_USER, completed_row
from tests.fakes import FakeQueryError


def _auth(token):
    return {"Authorization": f"Bearer {token}"}


def test_login_requires_both_fields(client):
    resp = client.post("/api/v1/auth/login", json={"username": STAFF_USER})

    assert resp.status_code == 400


def test_login_rejects_bad_password(client):
    resp = client.post("/api/v1/auth/login", json={"username": STAFF_USER, "password": "nope"})

    assert resp.status_code == 401
    assert resp.get_json()["success"] is False


def test_login_returns_bearer_token(client):
    resp = client.post("/api/v1/auth/login", json={"username": STAFF_USER, "password": STAFF_PASSWORD})

    data = resp.get_json()["data"]
    assert resp.status_code == 200
    assert data["token_type"] == "Bearer"
    assert data["username"] == STAFF_USER


def test_me(client, api_token):
    resp = client.get("/api/v1/auth/me", headers=_auth(api_token))

    assert resp.get_json()["data"] == {"username": STAFF_USER}


def test_missing_token(client):
    resp = client.get("/api/v1/after-sales/orders")

    assert resp.status_code == 401
    assert resp.get_json()["code"] == "AUTH_REQUIRED"


def test_invalid_token(client):
    resp = client.get("/api/v1/after-sales/orders", headers=_auth("not-a-jwt"))

    assert resp.status_code == 401
    assert resp.get_json()["code"] == "INVALID_TOKEN"


def test_expired_token(client, app):
    token, _ = issue_token(STAFF_USER, app.config["JWT_SECRET"], -60)

    resp = client.get("/api/v1/after-sales/orders", headers=_auth(token))

    assert resp.status_code == 401
    assert resp.get_json()["code"] == "TOKEN_EXPIRED"


def test_token_for_removed_user_is_rejected(client, app):
    token, _ = issue_token("former-staff", app.config["JWT_SECRET"], 600)

    resp = client.get("/api/v1/after-sales/orders", headers=_auth(token))

    assert resp.status_code == 401


def test_orders_default_view(client, api_token):
    resp = client.get("/api/v1/after-sales/orders", headers=_auth(api_token))

    data = resp.get_json()["data"]
    assert data["count"] == 3
    assert [o["id"] for o in data["orders"]] == [2, 3, 1]
    assert data["filters"]["sort"] == "date"
    assert data["status"]["ok"] is True


def test_orders_filtered_and_sorted(client, api_token):
    resp = client.get("/api/v1/after-sales/orders?item=Linen%20Shirt&sort=price-high", headers=_auth(api_token))

    prices = [o["price"] for o in resp.get_json()["data"]["orders"]]
    assert prices == [1200, 1000]


def test_orders_bad_sort(client, api_token):
    resp = client.get("/api/v1/after-sales/orders?sort=cheapest", headers=_auth(api_token))

    assert resp.status_code == 400


def test_options(client, api_token):
    data = client.get("/api/v1/after-sales/options", headers=_auth(api_token)).get_json()["data"]

    assert data["items"] == ["Ankara Dress", "Linen Shirt"]
    assert data["colors"] == ["Black", "Maroon", "White"]
    assert "price-high" in data["sort_modes"]


def test_add_order_shows_immediately(client, api_token, service):
    version = service.version
    row = completed_row(77, customers={"name": "Fresh Customer", "phone": "0799"})

    resp = client.post("/api/v1/after-sales/orders", json=row, headers=_auth(api_token))

    assert resp.status_code == 201
    assert resp.get_json()["data"]["customer_name"] == "Fresh Customer"
    assert service.version == version + 1
    ids = [o["id"] for o in client.get("/api/v1/after-sales/orders", headers=_auth(api_token)).get_json()["data"]["orders"]]
    assert 77 in ids


def test_add_order_rejects_non_object(client, api_token):
    resp = client.post("/api/v1/after-sales/orders", json=[1, 2], headers=_auth(api_token))

    assert resp.status_code == 400


def test_reload_failure_is_503(client, api_token, source):
    source.errors["completed_at"] = FakeQueryError("permission denied for table orders")

    resp = client.post("/api/v1/after-sales/reload", headers=_auth(api_token))

    assert resp.status_code == 503
    assert resp.get_json()["error"].startswith("permission:")


def test_cors_allows_configured_origin_only(client):
    allowed = client.options("/api/v1/after-sales/orders", headers={"Origin": "https://shop.example.com"})
    other = client.options("/api/v1/after-sales/orders", headers={"Origin": "https://evil.example.com"})

    assert allowed.status_code == 204
    assert allowed.headers["Access-Control-Allow-Origin"] == "https://shop.example.com"
    assert "Access-Control-Allow-Origin" not in other.headers
