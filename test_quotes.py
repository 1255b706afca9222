from decimal import Decimal

import pytest
from sqlalchemy import text

from conftest import auth_headers
from storefront.db import engine
from storefront.db_orders import OrderStatus
from storefront.db_products import get_product
from storefront.db_quotes import QuoteStatus, get_quote
from storefront.db_users import UserRole
from storefront.errors import InsufficientStock, ValidationError
from storefront.services import quotes as quotes_service
from storefront.services.statistics import compute_statistics


def _order_count() -> int:
    with engine.connect() as conn:
        return conn.execute(text("SELECT COUNT(*) FROM orders")).scalar_one()


def _request(client, product_id, quantity=10, headers=None, email="buyer@gmail.com"):
    return client.post(
        "/api/v1/quote-requests",
        json={"product_id": product_id, "quantity": quantity, "email": email, "po_number": "PO-77"},
        headers=headers or {},
    )


def test_guest_quote_request(client, make_product):
    product = make_product()

    resp = _request(client, product["id"])

    assert resp.status_code == 201
    quote = resp.json()
    assert quote["status"] == QuoteStatus.REQUESTED
    assert quote["requester_id"] is None
    assert quote["contact_email"] == "buyer@gmail.com"
    assert quote["po_number"] == "PO-77"
    assert quote["product_name"] == product["name"]
    assert [e["status"] for e in quote["history"]] == [QuoteStatus.REQUESTED]


def test_quote_request_validation(client, make_product):
    product = make_product()

    assert _request(client, 999999).status_code == 404
    assert _request(client, product["id"], quantity=0).status_code == 400
    assert _request(client, product["id"], email="nope").status_code == 400


def test_signed_in_request_links_requester_and_distributor(client, make_user, make_distributor, make_product):
    dist = make_distributor()
    user = make_user(role=UserRole.DISTRIBUTOR, distributor_id=dist["id"])
    other = make_user()
    product = make_product()

    quote = _request(client, product["id"], headers=auth_headers(user)).json()

    assert quote["requester_id"] == user["id"]
    assert quote["distributor_id"] == dist["id"]
    mine = client.get("/api/v1/quote-requests", headers=auth_headers(user)).json()
    assert [q["id"] for q in mine] == [quote["id"]]
    assert client.get("/api/v1/quote-requests", headers=auth_headers(other)).json() == []


def test_admin_prices_quote(client, admin, make_product):
    product = make_product()
    quote = _request(client, product["id"]).json()
    url = f"/api/v1/admin/quotes/{quote['id']}"
    headers = auth_headers(admin)

    unpriced = client.patch(url, json={"status": "quoted"}, headers=headers)
    assert unpriced.status_code == 400
    assert unpriced.json() == {"error": "A quoted status needs a price"}

    priced = client.patch(url, json={"status": "quoted", "price": 45.5, "note": "volume deal"}, headers=headers)
    assert priced.status_code == 200
    body = priced.json()
    assert Decimal(str(body["price"])) == Decimal("45.5")
    assert body["history"][-1]["changed_by"] == "admin@example.org"
    assert body["history"][-1]["note"] == "volume deal"

    assert client.patch(url, json={"status": "teleported"}, headers=headers).status_code == 400
    assert client.patch(url, json={"status": "ordered"}, headers=headers).status_code == 400

    listed = client.get("/api/v1/admin/quotes", params={"status": "quoted"}, headers=headers).json()
    assert [q["id"] for q in listed] == [quote["id"]]


def test_convert_quote_creates_invoice_order(client, admin, make_user, make_product):
    from storefront.main import app

    buyer = make_user()
    product = make_product(base_price="60.00", stock=20)
    quote = _request(client, product["id"], quantity=10, headers=auth_headers(buyer)).json()
    headers = auth_headers(admin)
    client.patch(f"/api/v1/admin/quotes/{quote['id']}", json={"status": "quoted", "price": 45.5}, headers=headers)
    client.get("/api/v1/admin/stats", headers=headers)

    resp = client.post(f"/api/v1/admin/quotes/{quote['id']}/convert", headers=headers)

    assert resp.status_code == 200
    order = resp.json()["order"]
    assert order["user_id"] == buyer["id"]
    assert order["status"] == OrderStatus.PENDING_PAYMENT
    assert order["payment_method"] == "invoice"
    assert Decimal(str(order["total_price"])) == Decimal("455")
    line = order["items"][0]
    assert Decimal(str(line["price"])) == Decimal("45.5")
    assert Decimal(str(line["base_price"])) == Decimal("60")
    converted = resp.json()["quote"]
    assert converted["status"] == QuoteStatus.ORDERED
    assert converted["order_id"] == order["id"]
    assert get_product(product["id"])["stock"] == 10
    assert app.state.stats_cache.peek() is None

    again = client.post(f"/api/v1/admin/quotes/{quote['id']}/convert", headers=headers)
    assert again.status_code == 400
    assert again.json() == {"error": "Quote already converted to order"}
    assert _order_count() == 1


def test_convert_requires_price_and_requester(client, admin, make_user, make_product):
    product = make_product()
    headers = auth_headers(admin)

    guest_quote = _request(client, product["id"]).json()
    client.patch(f"/api/v1/admin/quotes/{guest_quote['id']}", json={"status": "quoted", "price": 5}, headers=headers)
    resp = client.post(f"/api/v1/admin/quotes/{guest_quote['id']}/convert", headers=headers)
    assert resp.status_code == 400
    assert resp.json() == {"error": "Quote has no registered requester"}

    buyer = make_user()
    unpriced = _request(client, product["id"], headers=auth_headers(buyer)).json()
    resp = client.post(f"/api/v1/admin/quotes/{unpriced['id']}/convert", headers=headers)
    assert resp.json() == {"error": "Quote has no price"}
    assert _order_count() == 0


def test_convert_without_stock_persists_nothing(make_user, make_product):
    buyer = make_user()
    product = make_product(stock=3)
    quote = quotes_service.request_quote(product["id"], 5, "b@gmail.com", user=buyer)
    quotes_service.change_quote(quote["id"], QuoteStatus.QUOTED, "admin@example.org", price=Decimal("9.99"))

    with pytest.raises(InsufficientStock):
        quotes_service.convert_quote(quote["id"], "admin@example.org")

    assert get_product(product["id"])["stock"] == 3
    assert get_quote(quote["id"])["order_id"] is None
    assert get_quote(quote["id"])["status"] == QuoteStatus.QUOTED
    assert _order_count() == 0


def test_cancelled_quote_cannot_be_converted(make_user, make_product):
    buyer = make_user()
    product = make_product()
    quote = quotes_service.request_quote(product["id"], 1, "b@gmail.com", user=buyer)
    quotes_service.change_quote(quote["id"], QuoteStatus.CANCELLED, "admin@example.org", price=Decimal("1"))

    with pytest.raises(ValidationError):
        quotes_service.convert_quote(quote["id"], "admin@example.org")


def test_quote_admin_routes_require_admin(client, make_user, make_product):
    customer = make_user()
    product = make_product()
    quote = _request(client, product["id"]).json()

    for method, path in [
        ("get", "/api/v1/admin/quotes"),
        ("get", f"/api/v1/admin/quotes/{quote['id']}"),
        ("post", f"/api/v1/admin/quotes/{quote['id']}/convert"),
    ]:
        assert client.request(method, path, headers=auth_headers(customer)).status_code == 403


def test_statistics_count_quotes_by_status(make_product):
    product = make_product()
    quotes_service.request_quote(product["id"], 2, "a@gmail.com")
    quotes_service.request_quote(product["id"], 3, "b@gmail.com")

    stats = compute_statistics()

    assert stats["quotes_by_status"][QuoteStatus.REQUESTED] == 2
    assert stats["quotes_by_status"][QuoteStatus.ORDERED] == 0
