"""B2B quote workflow: request, admin pricing/status changes, conversion to an order.

Conversion runs as one transaction, in the same order as order placement:
take stock, insert a `pending_payment` invoice order at the quoted unit
price, then attach the order to the quote. A quote that already has an
order is never converted again.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Dict, Optional

from sqlalchemy.exc import OperationalError

from storefront.db import engine
from storefront.db_orders import OrderStatus, get_order, insert_order, insert_order_item
from storefront.db_products import decrement_stock, get_product
from storefront.db_quotes import (
    QuoteStatus,
    attach_order,
    create_quote_request,
    get_quote,
    history_event,
    update_quote,
)
from storefront.errors import InsufficientStock, NotFound, TransactionTimeout, ValidationError
from storefront.services.orders import PaymentMethod, is_lock_timeout
from storefront.services.pricing import round_money

logger = logging.getLogger(__name__)


def request_quote(
    product_id: int,
    quantity: int,
    contact_email: str,
    user: Optional[dict] = None,
    location: Optional[str] = None,
    po_number: Optional[str] = None,
    notes: Optional[str] = None,
) -> Dict[str, Any]:
    """Store a quote request; signed-in requesters are linked with their distributor."""
    if quantity < 1:
        raise ValidationError("Quantity must be at least 1")
    if not get_product(product_id):
        raise NotFound("Product not found")

    quote = create_quote_request(
        product_id=product_id,
        quantity=quantity,
        contact_email=contact_email,
        requester_id=user["id"] if user else None,
        distributor_id=user.get("distributor_id") if user else None,
        location=location,
        po_number=po_number,
        notes=notes,
    )
    logger.info(
        f"quotes: request id={quote['id']} product_id={product_id} quantity={quantity} "
        f"requester_id={quote['requester_id']}"
    )
    return quote


def change_quote(
    quote_id: int,
    status: str,
    changed_by: str,
    note: Optional[str] = None,
    price: Optional[Decimal] = None,
) -> Dict[str, Any]:
    """Admin status/price change. `ordered` is only reachable through convert_quote()."""
    if not QuoteStatus.is_valid(status):
        raise ValidationError("Invalid status")
    if status == QuoteStatus.ORDERED:
        raise ValidationError("Convert the quote to set it ordered")

    quote = get_quote(quote_id)
    if not quote:
        raise NotFound("Quote not found")
    if quote["order_id"]:
        raise ValidationError("Quote already converted to order")
    if status == QuoteStatus.QUOTED and price is None and quote["price"] is None:
        raise ValidationError("A quoted status needs a price")

    updated = update_quote(
        quote_id,
        status,
        history_event(status, changed_by, note),
        round_money(price) if price is not None else None,
    )
    if not updated:
        raise NotFound("Quote not found")
    logger.info(f"quotes: quote id={quote_id} status -> {status} by {changed_by}")
    return updated


def convert_quote(quote_id: int, changed_by: str) -> Dict[str, Any]:
    """Create a pending_payment order from a priced quote. Returns {"quote", "order"}."""
    quote = get_quote(quote_id)
    if not quote:
        raise NotFound("Quote not found")
    if quote["order_id"]:
        raise ValidationError("Quote already converted to order")
    if quote["status"] == QuoteStatus.CANCELLED:
        raise ValidationError("Cancelled quotes cannot be converted")
    if quote["price"] is None:
        raise ValidationError("Quote has no price")
    if quote["requester_id"] is None:
        raise ValidationError("Quote has no registered requester")

    unit_price = round_money(quote["price"])
    quantity = quote["quantity"]

    try:
        with engine.begin() as conn:
            if not decrement_stock(conn, quote["product_id"], quantity):
                product = get_product(quote["product_id"], conn=conn)
                if not product:
                    raise NotFound("Product not found")
                raise InsufficientStock(quote["product_id"], quantity, product["stock"])
            product = get_product(quote["product_id"], conn=conn)

            order_id = insert_order(
                conn,
                user_id=quote["requester_id"],
                status=OrderStatus.PENDING_PAYMENT,
                total_price=unit_price * quantity,
                shipping={},
                payment_method=PaymentMethod.INVOICE,
            )
            insert_order_item(
                conn,
                order_id=order_id,
                product_id=quote["product_id"],
                quantity=quantity,
                price=unit_price,
                base_price=round_money(product["base_price"]),
            )
            event = history_event(QuoteStatus.ORDERED, changed_by, f"Converted to order {order_id}")
            if not attach_order(conn, quote_id, order_id, event):
                # Another conversion committed first
                raise ValidationError("Quote already converted to order")

            order = get_order(order_id, conn=conn)
            updated = get_quote(quote_id, conn=conn)
    except OperationalError as e:
        if is_lock_timeout(e):
            logger.warning(f"quotes: conversion of quote id={quote_id} timed out: {e.orig}")
            raise TransactionTimeout("Quote conversion timed out, please retry") from e
        raise

    logger.info(f"quotes: quote id={quote_id} converted to order id={order_id} total={order['total_price']}")
    return {"quote": updated, "order": order}
