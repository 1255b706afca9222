"""Role-based, multi-tier unit price resolution.

Given a product, a requester context and a quantity, the resolver returns one
unit price. Rules are consulted in a fixed order and the first applicable one
wins; nothing is blended:

1. distributor product override: first tier whose [min_qty, max_qty] contains
   the quantity (max_qty None = unbounded), otherwise the override's custom
   price. An override always supersedes the layers below, even when none of
   its tiers match.
2. category discount of the distributor (> 0 %) on the product's category
3. distributor default discount (> 0 %)
4. product base price

Guests and customers without a distributor (session or storefront tenant)
always get the base price.

The resolver never writes and never caches: every call re-reads the current
catalog and rule rows, so admin edits take effect on the next call. Read
failures propagate; there is no fallback to the base price on error.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, Iterable, List, Optional

from storefront.db_distributors import get_distributor
from storefront.db_pricing_rules import get_category_discount, get_distributor_price
from storefront.db_products import get_product, to_decimal
from storefront.errors import NotFound, ValidationError

logger = logging.getLogger(__name__)

HUNDRED = Decimal(100)


class PriceSource:
    TIER = "tier"
    CUSTOM_PRICE = "custom_price"
    CATEGORY_DISCOUNT = "category_discount"
    DEFAULT_DISCOUNT = "default_discount"
    BASE = "base"


@dataclass(frozen=True)
class PricingContext:
    """Who is asking for a price.

    Built per request from the authenticated user (if any) and the tenant
    resolved from the host; passed explicitly down every pricing call.
    """

    role: Optional[str] = None
    user_id: Optional[int] = None
    distributor_id: Optional[int] = None
    tenant_distributor_id: Optional[int] = None

    @classmethod
    def guest(cls) -> "PricingContext":
        return cls()

    @classmethod
    def for_user(cls, user: Optional[Dict[str, Any]], tenant: Optional[Dict[str, Any]] = None) -> "PricingContext":
        tenant_id = tenant["id"] if tenant else None
        if not user:
            return cls(tenant_distributor_id=tenant_id)
        return cls(
            role=user.get("role"),
            user_id=user.get("id"),
            distributor_id=user.get("distributor_id"),
            tenant_distributor_id=tenant_id,
        )

    @property
    def pricing_distributor_id(self) -> Optional[int]:
        # Session affiliation beats storefront tenant
        if self.role == "distributor" and self.distributor_id is not None:
            return self.distributor_id
        return self.tenant_distributor_id

    @property
    def kind(self) -> str:
        if self.role == "distributor" and self.distributor_id is not None:
            return "distributor"
        if self.tenant_distributor_id is not None:
            return "tenant"
        if self.user_id is not None:
            return "customer"
        return "guest"


@dataclass(frozen=True)
class DiscountTier:
    min_qty: int
    max_qty: Optional[int]
    price: Decimal

    def contains(self, quantity: int) -> bool:
        if quantity < self.min_qty:
            return False
        return self.max_qty is None or quantity <= self.max_qty

    def to_dict(self) -> Dict[str, Any]:
        return {"min_qty": self.min_qty, "max_qty": self.max_qty, "price": self.price}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DiscountTier":
        max_qty = data.get("max_qty")
        return cls(
            min_qty=int(data["min_qty"]),
            max_qty=int(max_qty) if max_qty is not None else None,
            price=to_decimal(data["price"]),
        )


@dataclass(frozen=True)
class PriceQuote:
    product_id: int
    quantity: int
    base_price: Decimal
    price: Decimal
    source: str
    distributor_id: Optional[int] = None
    tier: Optional[DiscountTier] = None


def validate_tiers(tiers: Optional[Iterable[Dict[str, Any]]]) -> List[DiscountTier]:
    """Parse and check tiers at write time.

    Tiers may have gaps or overlap (first match wins at read time), but each
    must have 0 <= min_qty <= max_qty (when bounded) and a non-negative price.
    """
    parsed: List[DiscountTier] = []
    for index, raw in enumerate(tiers or []):
        try:
            tier = DiscountTier.from_dict(raw)
        except (KeyError, TypeError, ValueError, ArithmeticError) as e:
            raise ValidationError(f"Invalid discount tier #{index + 1}: {e}") from e
        if tier.min_qty < 0:
            raise ValidationError(f"Discount tier #{index + 1}: min_qty must be >= 0")
        if tier.max_qty is not None and tier.max_qty < tier.min_qty:
            raise ValidationError(f"Discount tier #{index + 1}: max_qty must be >= min_qty")
        if tier.price < 0:
            raise ValidationError(f"Discount tier #{index + 1}: price must be >= 0")
        parsed.append(tier)
    return parsed


def find_tier(tiers: Iterable[DiscountTier], quantity: int) -> Optional[DiscountTier]:
    for tier in tiers:
        if tier.contains(quantity):
            return tier
    return None


def apply_percent(base_price: Decimal, percent: Decimal) -> Decimal:
    return base_price * (1 - percent / HUNDRED)


def quote_price(product_id: int, context: PricingContext, quantity: int = 1, *, conn=None) -> PriceQuote:
    """Resolve the unit price and report which rule produced it."""
    product = get_product(product_id, conn=conn)
    if not product:
        raise NotFound(f"Product {product_id} not found")
    return quote_for_product(product, context, quantity, conn=conn)


def quote_for_product(product: Dict[str, Any], context: PricingContext, quantity: int, *, conn=None) -> PriceQuote:
    base_price = product["base_price"]
    distributor_id = context.pricing_distributor_id

    def quote(price: Decimal, source: str, tier: Optional[DiscountTier] = None) -> PriceQuote:
        return PriceQuote(
            product_id=product["id"],
            quantity=quantity,
            base_price=base_price,
            price=price,
            source=source,
            distributor_id=distributor_id,
            tier=tier,
        )

    if distributor_id is None:
        return quote(base_price, PriceSource.BASE)

    override = get_distributor_price(product["id"], distributor_id, conn=conn)
    if override:
        tier = find_tier(
            [DiscountTier.from_dict(t) for t in (override["discount_tiers"] or [])],
            quantity,
        )
        if tier:
            return quote(tier.price, PriceSource.TIER, tier)
        return quote(override["custom_price"], PriceSource.CUSTOM_PRICE)

    category_discount = get_category_discount(distributor_id, product["category"], conn=conn)
    if category_discount and category_discount["discount_percent"] > 0:
        return quote(
            apply_percent(base_price, category_discount["discount_percent"]),
            PriceSource.CATEGORY_DISCOUNT,
        )

    distributor = get_distributor(distributor_id, conn=conn)
    default_percent = distributor["default_discount_percent"] if distributor else None
    if default_percent is not None and default_percent > 0:
        return quote(apply_percent(base_price, default_percent), PriceSource.DEFAULT_DISCOUNT)

    return quote(base_price, PriceSource.BASE)


def resolve_price(product_id: int, context: PricingContext, quantity: int = 1, *, conn=None) -> Decimal:
    """Unit price for `quantity` units of the product as seen by `context`."""
    q = quote_price(product_id, context, quantity, conn=conn)
    logger.debug(
        f"pricing: product_id={product_id} kind={context.kind} distributor_id={q.distributor_id} "
        f"quantity={quantity} source={q.source} price={q.price}"
    )
    return q.price


def resolve_prices(items: Iterable[Dict[str, Any]], context: PricingContext, *, conn=None) -> List[PriceQuote]:
    """Quote a batch of {product_id, quantity} items (cart views)."""
    return [quote_price(item["product_id"], context, item["quantity"], conn=conn) for item in items]


def get_discount_tiers(product_id: int, context: PricingContext) -> Optional[Dict[str, Any]]:
    """The {custom_price, tiers} block shown to distributor/tenant viewers, or None."""
    distributor_id = context.pricing_distributor_id
    if distributor_id is None:
        return None
    override = get_distributor_price(product_id, distributor_id)
    if not override:
        return None
    return {
        "custom_price": override["custom_price"],
        "tiers": [DiscountTier.from_dict(t).to_dict() for t in (override["discount_tiers"] or [])],
    }


def round_money(value: Decimal) -> Decimal:
    """Currency presentation/persistence rounding (2 decimals, half-up)."""
    return value.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
