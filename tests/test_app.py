import pytest

from app import create_app
from config import TestingConfig, load_users
from tests.conftest import STAFF_PASSWORD, STAFF_USER
from tests.fakes import FakeQueryError


def test_pages_require_login(client):
    resp = client.get("/after-sales")

    assert resp.status_code == 302
    assert resp.headers["Location"].endswith("/login")


def test_index_redirects_to_after_sales(client):
    resp = client.get("/")

    assert resp.status_code == 302
    assert resp.headers["Location"].endswith("/after-sales")


def test_login_rejects_bad_password(client):
    resp = client.post("/login", data={"username": STAFF_USER, "password": "wrong"})

    assert resp.status_code == 200
    assert b"Invalid credentials" in resp.data


def test_login_and_logout(client):
    resp = client.post("/login", data={"username": STAFF_USER, "password": STAFF_PASSWORD})
    assert resp.status_code == 302
    assert resp.headers["Location"].endswith("/after-sales")

    client.get("/logout")

    assert client.get("/after-sales").status_code == 302


def test_after_sales_page_lists_completed_orders(logged_in_client):
    resp = logged_in_client.get("/after-sales")

    assert resp.status_code == 200
    html = resp.get_data(as_text=True)
    assert 'id="afterSalesTableBody"' in html
    assert "Customer 1" in html and "Customer 2" in html and "Customer 3" in html
    assert "KES 4,200" in html
    assert '<option value="Ankara Dress">Ankara Dress</option>' in html
    # Newest completion first.
    assert html.index("Customer 2") < html.index("Customer 3") < html.index("Customer 1")
    assert 'id="loadBanner" class="alert alert-warning" style="display: none;"' in html


def test_filter_change_is_kept_in_session(logged_in_client):
    resp = logged_in_client.post("/after-sales/filters", json={"field": "color", "value": "White"})

    assert resp.status_code == 200
    data = resp.get_json()["data"]
    assert data["count"] == 1
    assert data["filters"]["color"] == "White"
    assert "Customer 2" in data["html"]

    rows = logged_in_client.get("/after-sales/rows").get_json()["data"]
    assert rows["count"] == 1


def test_filter_with_no_matches_renders_hint(logged_in_client):
    resp = logged_in_client.post("/after-sales/filters", data={"field": "search", "value": "nobody"})

    data = resp.get_json()["data"]
    assert data["count"] == 0
    assert "No orders found matching your search/filters" in data["html"]


def test_invalid_filter_is_rejected(logged_in_client):
    assert logged_in_client.post("/after-sales/filters", json={"field": "owner", "value": "x"}).status_code == 400
    assert logged_in_client.post("/after-sales/filters", json={"field": "sort", "value": "nope"}).status_code == 400


def test_rows_unchanged_since_version_is_204(logged_in_client, service):
    assert logged_in_client.get(f"/after-sales/rows?since={service.version}").status_code == 204

    service.reload()

    resp = logged_in_client.get(f"/after-sales/rows?since={service.version - 1}")
    assert resp.status_code == 200
    assert resp.get_json()["data"]["version"] == service.version


def test_reload_failure_shows_degraded_state(logged_in_client, source):
    source.errors["completed_at"] = FakeQueryError("permission denied for table orders")

    resp = logged_in_client.post("/after-sales/reload")

    body = resp.get_json()
    assert body["success"] is False
    assert body["data"]["count"] == 0
    assert body["data"]["status"]["ok"] is False

    page = logged_in_client.get("/after-sales").get_data(as_text=True)
    assert 'style="display: block;"' in page
    assert "No completed orders found" in page


def test_create_app_requires_secret_key(service):
    class _NoSecret(TestingConfig):
        SECRET_KEY = None

    with pytest.raises(ValueError):
        create_app(_NoSecret, service=service)


def test_load_users_parses_userx_entries():
    users = load_users(
        {
            "USER1": "amina:$2b$12$hash",
            "USER2": "broken-entry",
            "USERNAME": "root",
            "PATH": "/usr/bin",
        }
    )

    assert users == {"amina": "$2b$12$hash"}


def test_filter_value_is_coerced_to_text(logged_in_client):
    resp = logged_in_client.post("/after-sales/filters", json={"field": "search", "value": 1200})

    assert resp.status_code == 200
    data = resp.get_json()["data"]
    assert data["filters"]["search"] == "1200"
    assert data["count"] == 1


def test_filter_body_must_be_an_object(logged_in_client):
    resp = logged_in_client.post("/after-sales/filters", json=["item", "Linen Shirt"])

    assert resp.status_code == 400
    assert resp.get_json()["success"] is False
