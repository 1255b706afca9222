from decimal import Decimal

import pytest

from conftest import auth_headers
from storefront.db_pricing_rules import upsert_distributor_price
from storefront.db_users import UserRole
from storefront.errors import NotFound, ValidationError
from storefront.services import cart as cart_service
from storefront.services.pricing import PricingContext


def test_add_item_accumulates_quantity(make_user, make_product):
    user = make_user()
    product = make_product(base_price="10.00")
    ctx = PricingContext.for_user(user)

    cart_service.add_item(user["id"], product["id"], 2, ctx)
    line = cart_service.add_item(user["id"], product["id"], 3, ctx)

    assert line["quantity"] == 5
    cart = cart_service.get_cart(user["id"], ctx)
    assert len(cart["items"]) == 1
    assert cart["subtotal"] == Decimal("50")


def test_add_item_validation(make_user, make_product):
    user = make_user()
    product = make_product()
    ctx = PricingContext.for_user(user)

    with pytest.raises(ValidationError):
        cart_service.add_item(user["id"], product["id"], 0, ctx)
    with pytest.raises(NotFound):
        cart_service.add_item(user["id"], 987654, 1, ctx)


def test_cart_lines_are_priced_live_at_their_quantity(make_user, make_product, make_distributor):
    dist = make_distributor()
    user = make_user(role=UserRole.DISTRIBUTOR, distributor_id=dist["id"])
    product = make_product(base_price="120.00")
    ctx = PricingContext.for_user(user)
    cart_service.add_item(user["id"], product["id"], 12, ctx)

    assert cart_service.get_cart(user["id"], ctx)["items"][0]["price"] == Decimal("120")

    upsert_distributor_price(
        product["id"],
        dist["id"],
        Decimal("100"),
        [{"min_qty": 1, "max_qty": 10, "price": "90"}, {"min_qty": 11, "max_qty": None, "price": "80"}],
    )

    line = cart_service.get_cart(user["id"], ctx)["items"][0]
    assert line["price"] == Decimal("80")
    assert line["base_price"] == Decimal("120")
    assert line["line_total"] == Decimal("960")


def test_update_item_rejects_increase_beyond_stock(make_user, make_product):
    user = make_user()
    product = make_product(stock=4)
    ctx = PricingContext.for_user(user)
    cart_service.add_item(user["id"], product["id"], 2, ctx)

    with pytest.raises(ValidationError) as exc:
        cart_service.update_item(user["id"], product["id"], 6, ctx)
    assert "Only 4 items available" in exc.value.message

    assert cart_service.update_item(user["id"], product["id"], 4, ctx)["quantity"] == 4


def test_update_item_allows_decrease_when_over_stock(make_user, make_product):
    user = make_user()
    product = make_product(stock=2)
    ctx = PricingContext.for_user(user)
    cart_service.add_item(user["id"], product["id"], 5, ctx)

    assert cart_service.update_item(user["id"], product["id"], 3, ctx)["quantity"] == 3


def test_update_to_zero_removes_line(make_user, make_product):
    user = make_user()
    product = make_product()
    ctx = PricingContext.for_user(user)
    cart_service.add_item(user["id"], product["id"], 1, ctx)

    assert cart_service.update_item(user["id"], product["id"], 0, ctx)["removed"] is True
    assert cart_service.get_cart(user["id"], ctx)["items"] == []


def test_remove_missing_line_raises(make_user):
    user = make_user()
    with pytest.raises(NotFound):
        cart_service.remove_item(user["id"], 1)


def test_cart_api_flow(client, make_user, make_product):
    user = make_user()
    product = make_product(base_price="19.99")
    headers = auth_headers(user)

    resp = client.post("/api/v1/cart", json={"product_id": product["id"], "quantity": 2}, headers=headers)
    assert resp.status_code == 201
    assert Decimal(str(resp.json()["price"])) == Decimal("19.99")

    resp = client.put(f"/api/v1/cart/{product['id']}", json={"quantity": 3}, headers=headers)
    assert resp.status_code == 200
    assert resp.json()["quantity"] == 3

    cart = client.get("/api/v1/cart", headers=headers).json()
    assert Decimal(str(cart["subtotal"])) == Decimal("59.97")

    assert client.delete(f"/api/v1/cart/{product['id']}", headers=headers).status_code == 200
    assert client.get("/api/v1/cart", headers=headers).json()["items"] == []


def test_cart_requires_authentication(client):
    resp = client.get("/api/v1/cart")
    assert resp.status_code == 401
    assert "error" in resp.json()


def test_cart_rejects_invalid_quantity_with_error_json(client, make_user, make_product):
    user = make_user()
    product = make_product()

    resp = client.post(
        "/api/v1/cart", json={"product_id": product["id"], "quantity": 0}, headers=auth_headers(user)
    )
    assert resp.status_code == 400
    assert "error" in resp.json()
