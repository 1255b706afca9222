from decimal import Decimal

import pytest

from conftest import auth_headers
from storefront.db_distributors import set_default_discount
from storefront.db_pricing_rules import upsert_category_discount, upsert_distributor_price
from storefront.db_users import UserRole
from storefront.errors import NotFound, ValidationError
from storefront.services.pricing import (
    PriceSource,
    PricingContext,
    get_discount_tiers,
    quote_price,
    resolve_price,
    resolve_prices,
    validate_tiers,
)

TIERS = [
    {"min_qty": 1, "max_qty": 10, "price": "90"},
    {"min_qty": 11, "max_qty": 50, "price": "80"},
    {"min_qty": 51, "max_qty": None, "price": "70"},
]


def distributor_context(distributor_id: int, user_id: int = 1) -> PricingContext:
    return PricingContext(role=UserRole.DISTRIBUTOR, user_id=user_id, distributor_id=distributor_id)


def test_product_override_wins_over_category_and_default(make_product, make_distributor):
    product = make_product(base_price="100.00", category="Electronics")
    dist = make_distributor()
    set_default_discount(dist["id"], Decimal("10"))
    upsert_category_discount(dist["id"], "Electronics", Decimal("20"))
    upsert_distributor_price(product["id"], dist["id"], Decimal("65.00"))

    quote = quote_price(product["id"], distributor_context(dist["id"]), 1)

    assert quote.price == Decimal("65")
    assert quote.source == PriceSource.CUSTOM_PRICE
    assert quote.base_price == Decimal("100")


def test_precedence_falls_through_layers(make_product, make_distributor):
    product = make_product(base_price="100.00", category="Electronics")
    dist = make_distributor()
    ctx = distributor_context(dist["id"])

    assert resolve_price(product["id"], ctx) == Decimal("100")

    set_default_discount(dist["id"], Decimal("10"))
    assert resolve_price(product["id"], ctx) == Decimal("90")

    upsert_category_discount(dist["id"], "electronics", Decimal("20"))
    assert resolve_price(product["id"], ctx) == Decimal("80")

    upsert_distributor_price(product["id"], dist["id"], Decimal("70"))
    assert resolve_price(product["id"], ctx) == Decimal("70")


@pytest.mark.parametrize(
    "quantity, expected, source",
    [
        (5, "90", PriceSource.TIER),
        (10, "90", PriceSource.TIER),
        (11, "80", PriceSource.TIER),
        (50, "80", PriceSource.TIER),
        (1000, "70", PriceSource.TIER),
        (0, "100", PriceSource.CUSTOM_PRICE),
    ],
)
def test_tier_containment(make_product, make_distributor, quantity, expected, source):
    product = make_product(base_price="120.00")
    dist = make_distributor()
    upsert_distributor_price(product["id"], dist["id"], Decimal("100"), TIERS)

    quote = quote_price(product["id"], distributor_context(dist["id"]), quantity)

    assert quote.price == Decimal(expected)
    assert quote.source == source


def test_unmatched_tier_falls_back_to_custom_price_not_lower_layers(make_product, make_distributor):
    product = make_product(base_price="200.00", category="Tools")
    dist = make_distributor(default_discount_percent=Decimal("50"))
    upsert_category_discount(dist["id"], "Tools", Decimal("40"))
    upsert_distributor_price(
        product["id"], dist["id"], Decimal("150"), [{"min_qty": 100, "max_qty": None, "price": "90"}]
    )

    assert resolve_price(product["id"], distributor_context(dist["id"]), 3) == Decimal("150")


def test_guest_and_customer_always_get_base_price(make_product, make_distributor):
    product = make_product(base_price="100.00", category="Electronics")
    dist = make_distributor(default_discount_percent=Decimal("30"))
    upsert_category_discount(dist["id"], "Electronics", Decimal("15"))
    upsert_distributor_price(product["id"], dist["id"], Decimal("50"), TIERS)

    customer = PricingContext(role=UserRole.CUSTOMER, user_id=42)
    for ctx in (PricingContext.guest(), customer):
        for quantity in (0, 1, 11, 1000):
            quote = quote_price(product["id"], ctx, quantity)
            assert quote.price == Decimal("100")
            assert quote.source == PriceSource.BASE


def test_default_discount_arithmetic(make_product, make_distributor):
    product = make_product(base_price="100.00")
    dist = make_distributor(default_discount_percent=Decimal("25"))

    quote = quote_price(product["id"], distributor_context(dist["id"]))

    assert quote.price == Decimal("75")
    assert quote.source == PriceSource.DEFAULT_DISCOUNT


def test_zero_percent_rules_are_skipped(make_product, make_distributor):
    product = make_product(base_price="100.00", category="Electronics")
    dist = make_distributor(default_discount_percent=Decimal("10"))
    upsert_category_discount(dist["id"], "Electronics", Decimal("0"))

    quote = quote_price(product["id"], distributor_context(dist["id"]))

    assert quote.price == Decimal("90")
    assert quote.source == PriceSource.DEFAULT_DISCOUNT


def test_category_discount_is_scoped_to_the_distributor(make_product, make_distributor):
    product = make_product(base_price="100.00", category="Electronics")
    d1 = make_distributor()
    d2 = make_distributor()
    upsert_category_discount(d1["id"], "Electronics", Decimal("20"))

    assert resolve_price(product["id"], distributor_context(d1["id"])) == Decimal("80")
    assert resolve_price(product["id"], distributor_context(d2["id"])) == Decimal("100")


def test_tenant_context_uses_tenant_rules(make_product, make_distributor):
    product = make_product(base_price="100.00")
    tenant = make_distributor(default_discount_percent=Decimal("20"))

    guest_on_tenant = PricingContext.for_user(None, tenant)
    customer_on_tenant = PricingContext.for_user({"id": 7, "role": UserRole.CUSTOMER}, tenant)

    assert guest_on_tenant.kind == "tenant"
    assert resolve_price(product["id"], guest_on_tenant) == Decimal("80")
    assert resolve_price(product["id"], customer_on_tenant) == Decimal("80")


def test_distributor_affiliation_beats_tenant(make_product, make_distributor):
    product = make_product(base_price="100.00")
    own = make_distributor(default_discount_percent=Decimal("40"))
    tenant = make_distributor(default_discount_percent=Decimal("10"))

    ctx = PricingContext.for_user(
        {"id": 3, "role": UserRole.DISTRIBUTOR, "distributor_id": own["id"]},
        tenant,
    )

    assert ctx.pricing_distributor_id == own["id"]
    assert resolve_price(product["id"], ctx) == Decimal("60")


def test_missing_product_raises_not_found(make_distributor):
    dist = make_distributor()
    with pytest.raises(NotFound):
        resolve_price(999999, distributor_context(dist["id"]))


def test_resolve_prices_quotes_each_item_at_its_quantity(make_product, make_distributor):
    p1 = make_product(base_price="120.00")
    p2 = make_product(base_price="10.00")
    dist = make_distributor()
    upsert_distributor_price(p1["id"], dist["id"], Decimal("100"), TIERS)

    quotes = resolve_prices(
        [{"product_id": p1["id"], "quantity": 20}, {"product_id": p2["id"], "quantity": 1}],
        distributor_context(dist["id"]),
    )

    assert [q.price for q in quotes] == [Decimal("80"), Decimal("10")]


def test_discount_tiers_block_only_for_distributor_viewers(make_product, make_distributor):
    product = make_product()
    dist = make_distributor()
    upsert_distributor_price(product["id"], dist["id"], Decimal("100"), TIERS)

    assert get_discount_tiers(product["id"], PricingContext.guest()) is None

    block = get_discount_tiers(product["id"], distributor_context(dist["id"]))
    assert block["custom_price"] == Decimal("100")
    assert [t["min_qty"] for t in block["tiers"]] == [1, 11, 51]
    assert block["tiers"][2]["max_qty"] is None


def test_validate_tiers_rejects_inverted_bounds():
    with pytest.raises(ValidationError):
        validate_tiers([{"min_qty": 10, "max_qty": 5, "price": "1"}])
    with pytest.raises(ValidationError):
        validate_tiers([{"min_qty": 1, "max_qty": None, "price": "-1"}])
    with pytest.raises(ValidationError):
        validate_tiers([{"max_qty": 3, "price": "1"}])


def test_validate_tiers_allows_gaps():
    tiers = validate_tiers([{"min_qty": 1, "max_qty": 5, "price": "9"}, {"min_qty": 20, "price": "7"}])
    assert [t.max_qty for t in tiers] == [5, None]


def test_product_api_returns_price_base_price_and_tiers(client, make_user, make_product, make_distributor):
    product = make_product(base_price="120.00")
    dist = make_distributor()
    upsert_distributor_price(product["id"], dist["id"], Decimal("100"), TIERS)
    member = make_user(role=UserRole.DISTRIBUTOR, distributor_id=dist["id"])

    resp = client.get(f"/api/v1/products/{product['id']}", params={"quantity": 11}, headers=auth_headers(member))
    assert resp.status_code == 200
    body = resp.json()
    assert Decimal(str(body["price"])) == Decimal("80")
    assert Decimal(str(body["base_price"])) == Decimal("120")
    assert body["price_source"] == PriceSource.TIER
    assert len(body["discount_tiers"]["tiers"]) == 3

    guest = client.get(f"/api/v1/products/{product['id']}").json()
    assert Decimal(str(guest["price"])) == Decimal("120")
    assert guest["discount_tiers"] is None


def test_product_list_prices_every_item(client, make_product, make_distributor, make_user):
    make_product(base_price="100.00", category="Electronics")
    make_product(base_price="50.00", category="Tools")
    dist = make_distributor(default_discount_percent=Decimal("10"))
    member = make_user(role=UserRole.DISTRIBUTOR, distributor_id=dist["id"])

    resp = client.get("/api/v1/products", headers=auth_headers(member))
    assert resp.status_code == 200
    prices = sorted(Decimal(str(p["price"])) for p in resp.json())
    assert prices == [Decimal("45"), Decimal("90")]


def test_unknown_product_api_returns_error_json(client):
    resp = client.get("/api/v1/products/424242")
    assert resp.status_code == 404
    assert resp.json() == {"error": "Product not found"}


def test_overlapping_tiers_use_first_match(make_product, make_distributor):
    product = make_product(base_price="100.00")
    dist = make_distributor()
    overlapping = [
        {"min_qty": 1, "max_qty": 20, "price": "90"},
        {"min_qty": 10, "max_qty": None, "price": "70"},
    ]
    assert len(validate_tiers(overlapping)) == 2
    upsert_distributor_price(product["id"], dist["id"], Decimal("95"), overlapping)

    assert quote_price(product["id"], distributor_context(dist["id"]), 15).price == Decimal("90")
    assert quote_price(product["id"], distributor_context(dist["id"]), 25).price == Decimal("70")
