from decimal import Decimal

from sqlalchemy import text

from conftest import auth_headers
from storefront.db import engine
from storefront.db_distributors import DomainStatus
from storefront.db_users import UserRole, get_user_by_id
from storefront.services import domains as domains_service


def _rows(table: str) -> int:
    with engine.connect() as conn:
        return conn.execute(text(f"SELECT COUNT(*) FROM {table}")).scalar_one()


def test_admin_routes_require_identity(client):
    resp = client.get("/api/v1/admin/distributors")
    assert resp.status_code == 401
    assert resp.json() == {"error": "Unauthorized"}


def test_admin_routes_require_admin_role(client, make_user):
    customer = make_user()
    for method, path in [
        ("get", "/api/v1/admin/distributors"),
        ("put", "/api/v1/admin/distributors/1/default-discount"),
        ("post", "/api/v1/admin/distributors/1/category-discounts"),
        ("put", "/api/v1/admin/b2b-pricing/1/1"),
        ("delete", "/api/v1/admin/b2b-pricing/1/1"),
    ]:
        resp = client.request(method, path, headers=auth_headers(customer), json={})
        assert resp.status_code == 403, path
        assert resp.json() == {"error": "Forbidden"}


def test_invalid_token_is_unauthorized(client):
    resp = client.get("/api/v1/admin/distributors", headers={"Authorization": "Bearer not-a-token"})
    assert resp.status_code == 401


def test_create_distributor_links_existing_users(client, admin, make_user):
    user = make_user(email="buyer@chromet.com")

    resp = client.post(
        "/api/v1/admin/distributors",
        json={"name": "Chromet", "email_domain": "Chromet.com"},
        headers=auth_headers(admin),
    )
    assert resp.status_code == 201
    dist = resp.json()
    assert dist["email_domain"] == "chromet.com"

    linked = get_user_by_id(user["id"])
    assert linked["distributor_id"] == dist["id"]
    assert linked["role"] == UserRole.DISTRIBUTOR

    dup = client.post(
        "/api/v1/admin/distributors",
        json={"name": "Other", "email_domain": "chromet.com"},
        headers=auth_headers(admin),
    )
    assert dup.status_code == 409


def test_delete_distributor_with_members_is_refused(client, admin, make_distributor, make_user):
    dist = make_distributor()
    make_user(role=UserRole.DISTRIBUTOR, distributor_id=dist["id"])

    resp = client.delete(f"/api/v1/admin/distributors/{dist['id']}", headers=auth_headers(admin))
    assert resp.status_code == 409
    assert "Cannot delete distributor" in resp.json()["error"]


def test_delete_distributor_cascades_rules(client, admin, make_distributor, make_product):
    dist = make_distributor()
    product = make_product()
    headers = auth_headers(admin)
    client.post(
        f"/api/v1/admin/distributors/{dist['id']}/category-discounts",
        json={"category": "Tools", "discount_percent": 5},
        headers=headers,
    )
    client.put(f"/api/v1/admin/b2b-pricing/{dist['id']}/{product['id']}", json={"custom_price": 9}, headers=headers)

    resp = client.delete(f"/api/v1/admin/distributors/{dist['id']}", headers=headers)

    assert resp.status_code == 200
    assert _rows("category_discounts") == 0
    assert _rows("distributor_prices") == 0
    assert client.get(f"/api/v1/admin/distributors/{dist['id']}", headers=headers).status_code == 404


def test_category_discount_upsert_keeps_one_row(client, admin, make_distributor):
    dist = make_distributor()
    headers = auth_headers(admin)
    url = f"/api/v1/admin/distributors/{dist['id']}/category-discounts"

    client.post(url, json={"category": "Electronics", "discount_percent": 10}, headers=headers)
    resp = client.post(url, json={"category": "electronics", "discount_percent": 15}, headers=headers)

    assert resp.status_code == 200
    listed = client.get(url, headers=headers).json()
    assert len(listed) == 1
    assert listed[0]["category"] == "Electronics"
    assert Decimal(str(listed[0]["discount_percent"])) == Decimal("15")
    assert _rows("category_discounts") == 1


def test_category_discount_percent_bounds(client, admin, make_distributor):
    dist = make_distributor()
    resp = client.post(
        f"/api/v1/admin/distributors/{dist['id']}/category-discounts",
        json={"category": "Electronics", "discount_percent": 120},
        headers=auth_headers(admin),
    )
    assert resp.status_code == 400
    assert "error" in resp.json()


def test_default_discount_endpoint(client, admin, make_distributor, make_product):
    dist = make_distributor()
    product = make_product(base_price="100.00")
    headers = auth_headers(admin)

    resp = client.put(
        f"/api/v1/admin/distributors/{dist['id']}/default-discount",
        json={"default_discount_percent": 25},
        headers=headers,
    )
    assert resp.status_code == 200
    assert Decimal(str(resp.json()["default_discount_percent"])) == Decimal("25")

    priced = client.get(f"/api/v1/products/{product['id']}", headers={"X-Tenant-Host": dist["email_domain"]})
    assert Decimal(str(priced.json()["price"])) == Decimal("75")


def test_b2b_price_upsert_and_tier_validation(client, admin, make_distributor, make_product):
    dist = make_distributor()
    product = make_product()
    headers = auth_headers(admin)
    url = f"/api/v1/admin/b2b-pricing/{dist['id']}/{product['id']}"

    client.put(url, json={"custom_price": 100}, headers=headers)
    resp = client.put(
        url,
        json={
            "custom_price": 95,
            "discount_tiers": [
                {"min_qty": 1, "max_qty": 10, "price": 90},
                {"min_qty": 11, "max_qty": None, "price": 80},
            ],
        },
        headers=headers,
    )
    assert resp.status_code == 200
    body = resp.json()
    assert Decimal(str(body["custom_price"])) == Decimal("95")
    assert [t["min_qty"] for t in body["discount_tiers"]] == [1, 11]
    assert _rows("distributor_prices") == 1

    listed = client.get(f"/api/v1/admin/b2b-pricing/{dist['id']}", headers=headers).json()
    assert listed[0]["product"]["id"] == product["id"]

    bad = client.put(
        url,
        json={"custom_price": 95, "discount_tiers": [{"min_qty": 10, "max_qty": 2, "price": 1}]},
        headers=headers,
    )
    assert bad.status_code == 400
    assert "max_qty must be >= min_qty" in bad.json()["error"]

    assert client.delete(url, headers=headers).status_code == 200
    assert client.get(url, headers=headers).status_code == 404


def test_b2b_price_for_unknown_product(client, admin, make_distributor):
    dist = make_distributor()
    resp = client.put(
        f"/api/v1/admin/b2b-pricing/{dist['id']}/999999", json={"custom_price": 1}, headers=auth_headers(admin)
    )
    assert resp.status_code == 404
    assert resp.json() == {"error": "Product not found"}


def test_domain_add_and_verify(client, admin, make_distributor, monkeypatch):
    dist = make_distributor()
    headers = auth_headers(admin)
    base = f"/api/v1/admin/distributors/{dist['id']}/domains"

    created = client.post(base, json={"domain": "Shop.Example.NET"}, headers=headers)
    assert created.status_code == 201
    domain = created.json()
    assert domain["domain"] == "shop.example.net"
    assert domain["status"] == DomainStatus.PENDING

    assert client.post(base, json={"domain": "shop.example.net"}, headers=headers).status_code == 409

    async def fake_lookup(host, timeout):
        return ["203.0.113.7"]

    monkeypatch.setattr(domains_service, "lookup_host", fake_lookup)
    verified = client.post(f"{base}/{domain['id']}/verify", headers=headers)
    assert verified.status_code == 200
    assert verified.json()["status"] == DomainStatus.VERIFIED
    assert verified.json()["details"]["records"] == ["203.0.113.7"]

    async def failing_lookup(host, timeout):
        raise OSError("Name or service not known")

    monkeypatch.setattr(domains_service, "lookup_host", failing_lookup)
    failed = client.post(f"{base}/{domain['id']}/verify", headers=headers)
    assert failed.json()["status"] == DomainStatus.FAILED
    assert "Name or service not known" in failed.json()["details"]["error"]

    assert client.delete(f"{base}/{domain['id']}", headers=headers).status_code == 200
    assert client.get(base, headers=headers).json() == []


def test_admin_product_crud(client, admin):
    headers = auth_headers(admin)
    created = client.post(
        "/api/v1/admin/products",
        json={"name": "Drill", "base_price": 49.5, "category": "tools", "stock": 3},
        headers=headers,
    )
    assert created.status_code == 201
    product = created.json()
    assert product["category"] == "Tools"

    updated = client.patch(f"/api/v1/admin/products/{product['id']}", json={"stock": 7}, headers=headers)
    assert updated.json()["stock"] == 7

    assert client.delete(f"/api/v1/admin/products/{product['id']}", headers=headers).status_code == 200
    assert client.get(f"/api/v1/products/{product['id']}").status_code == 404


def test_product_update_rejects_null_for_required_fields(client, admin, make_product):
    product = make_product(base_price="12.00", stock=4)
    headers = auth_headers(admin)
    url = f"/api/v1/admin/products/{product['id']}"

    for field in ("base_price", "name", "stock"):
        resp = client.patch(url, json={field: None}, headers=headers)
        assert resp.status_code == 400, field
        assert f"{field} cannot be null" in resp.json()["error"]

    cleared = client.patch(url, json={"description": None, "stock": 6}, headers=headers)
    assert cleared.status_code == 200
    assert cleared.json()["stock"] == 6
    assert Decimal(str(cleared.json()["base_price"])) == Decimal("12")
