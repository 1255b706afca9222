"""Cart manager: quantity mutations plus live-priced cart views."""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Dict

from storefront.db_carts import (
    add_cart_item,
    delete_cart_item,
    get_cart_id,
    get_cart_item,
    get_or_create_cart_id,
    list_cart_items,
    set_cart_item_quantity,
)
from storefront.db_products import get_product
from storefront.errors import NotFound, ValidationError
from storefront.services.pricing import PricingContext, quote_price

logger = logging.getLogger(__name__)


def _priced_line(product_id: int, quantity: int, context: PricingContext, extra: Dict[str, Any]) -> Dict[str, Any]:
    q = quote_price(product_id, context, quantity)
    return {
        **extra,
        "product_id": product_id,
        "quantity": quantity,
        "price": q.price,
        "base_price": q.base_price,
        "price_source": q.source,
        "line_total": q.price * quantity,
    }


def get_cart(user_id: int, context: PricingContext) -> Dict[str, Any]:
    """The user's cart with each line priced now, at its own quantity."""
    cart_id = get_or_create_cart_id(user_id)
    items = [
        _priced_line(
            row["product_id"],
            row["quantity"],
            context,
            {"name": row["name"], "sku": row["sku"], "stock": row["stock"]},
        )
        for row in list_cart_items(user_id)
    ]
    subtotal = sum((item["line_total"] for item in items), Decimal(0))
    return {"id": cart_id, "items": items, "subtotal": subtotal}


def add_item(user_id: int, product_id: int, quantity: int, context: PricingContext) -> Dict[str, Any]:
    """Add units of a product; an existing line grows by `quantity`."""
    if quantity < 1:
        raise ValidationError("Quantity must be at least 1")
    product = get_product(product_id)
    if not product:
        raise NotFound("Product not found")

    cart_id = get_or_create_cart_id(user_id)
    new_quantity = add_cart_item(cart_id, product_id, quantity)
    logger.info(f"cart: user_id={user_id} added product_id={product_id} qty={quantity} line_qty={new_quantity}")
    return _priced_line(product_id, new_quantity, context, {"name": product["name"], "sku": product["sku"]})


def update_item(user_id: int, product_id: int, quantity: int, context: PricingContext) -> Dict[str, Any]:
    """Set a line's quantity. 0 removes the line.

    Increasing beyond available stock is rejected; reducing is always allowed,
    even when the current quantity already exceeds stock.
    """
    if quantity < 0:
        raise ValidationError("Invalid quantity")
    cart_id = get_cart_id(user_id)
    if cart_id is None:
        raise NotFound("Cart not found")
    item = get_cart_item(cart_id, product_id)
    if not item:
        raise NotFound("Cart item not found")

    if quantity == 0:
        delete_cart_item(cart_id, product_id)
        return {"product_id": product_id, "quantity": 0, "removed": True}

    if quantity > item["quantity"] and quantity > item["stock"]:
        raise ValidationError(
            f"Only {item['stock']} items available in stock. "
            f"You're trying to increase from {item['quantity']} to {quantity}."
        )

    set_cart_item_quantity(cart_id, product_id, quantity)
    return _priced_line(product_id, quantity, context, {})


def remove_item(user_id: int, product_id: int) -> None:
    cart_id = get_cart_id(user_id)
    if cart_id is None:
        raise NotFound("Cart not found")
    if not delete_cart_item(cart_id, product_id):
        raise NotFound("Cart item not found")
