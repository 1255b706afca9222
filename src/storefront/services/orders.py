"""Order placement transaction and payment confirmation.

place_order() runs as one database transaction:

1. take stock for every line with a compare-and-decrement (any shortfall
   aborts the whole order with InsufficientStock)
2. resolve and snapshot base_price / price per line on the same connection
3. total_price = sum(price * quantity)
4. insert the order (status depends on the payment path) and its lines
5. clear the purchaser's cart

Any exception inside rolls everything back, including stock already taken for
earlier lines. The transaction runs under a bounded lock wait and an overall
deadline; running out of either raises TransactionTimeout with nothing
persisted.

Orders carrying a payment reference are idempotent on it: a second call with
the same reference returns the stored order unchanged.
"""

from __future__ import annotations

import logging
import time
import traceback
from collections import OrderedDict
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import text
from sqlalchemy.exc import IntegrityError, OperationalError

from storefront import settings
from storefront.db import engine, is_postgres
from storefront.db_carts import clear_cart, list_cart_items
from storefront.db_orders import (
    OrderStatus,
    get_order,
    get_order_by_payment_ref,
    insert_order,
    insert_order_item,
    update_order_status,
)
from storefront.db_products import decrement_stock, get_product, to_decimal
from storefront.errors import Forbidden, InsufficientStock, NotFound, TransactionTimeout, ValidationError
from storefront.services.pricing import PricingContext, quote_price, round_money

logger = logging.getLogger(__name__)

# lock_not_available, query_canceled (statement_timeout)
_PG_TIMEOUT_CODES = {"55P03", "57014"}


class PaymentMethod:
    CARD = "card"
    INVOICE = "invoice"


def _merge_lines(items: Iterable[Dict[str, Any]]) -> "OrderedDict[int, int]":
    """Validate request lines and merge repeated products into one quantity."""
    lines: "OrderedDict[int, int]" = OrderedDict()
    for item in items:
        try:
            product_id = int(item["product_id"])
            quantity = int(item["quantity"])
        except (KeyError, TypeError, ValueError) as e:
            raise ValidationError("Each item needs an integer product_id and quantity") from e
        if quantity < 1:
            raise ValidationError(f"Invalid quantity for product {product_id}")
        lines[product_id] = lines.get(product_id, 0) + quantity
    if not lines:
        raise ValidationError("Order has no items")
    return lines


def _apply_time_budget(conn) -> None:
    if is_postgres(conn):
        conn.execute(text(f"SET LOCAL lock_timeout = '{int(settings.ORDER_TX_LOCK_TIMEOUT_MS)}ms'"))
        conn.execute(text(f"SET LOCAL statement_timeout = '{int(settings.ORDER_TX_TIMEOUT_MS)}ms'"))


def _check_deadline(deadline: float) -> None:
    if time.monotonic() > deadline:
        raise TransactionTimeout("Order transaction timed out, please retry")


def is_lock_timeout(error: OperationalError) -> bool:
    if getattr(error.orig, "pgcode", None) in _PG_TIMEOUT_CODES:
        return True
    return "database is locked" in str(error.orig).lower()


def _warn_on_client_prices(items: Iterable[Dict[str, Any]], snapshot: Dict[int, Dict[str, Decimal]]) -> None:
    for item in items:
        client_price = item.get("price")
        if client_price is None:
            continue
        line = snapshot.get(int(item["product_id"]))
        if line and to_decimal(client_price) != line["price"]:
            logger.warning(
                f"orders: client price {client_price} for product_id={item['product_id']} "
                f"differs from resolved {line['price']}; using resolved price"
            )


def _order_for_payment_ref(payment_ref: str, user_id: int) -> Optional[Dict[str, Any]]:
    """Order already created for `payment_ref`; Forbidden when it belongs to someone else."""
    existing = get_order_by_payment_ref(payment_ref)
    if existing and existing["user_id"] != user_id:
        logger.warning(f"orders: user_id={user_id} used payment_ref={payment_ref} owned by another user")
        raise Forbidden("Order belongs to another user")
    return existing


def place_order(
    user_id: int,
    items: List[Dict[str, Any]],
    shipping: Dict[str, Any],
    context: PricingContext,
    payment_ref: Optional[str] = None,
    payment_method: Optional[str] = None,
) -> Dict[str, Any]:
    """Create an order atomically; see module docstring for the steps.

    Prices are always re-resolved server-side; a `price` sent by the client is
    only compared and logged.
    """
    lines = _merge_lines(items)

    if payment_ref:
        existing = _order_for_payment_ref(payment_ref, user_id)
        if existing:
            logger.info(f"orders: payment_ref={payment_ref} already has order id={existing['id']}, returning it")
            return existing

    status = OrderStatus.PENDING if payment_ref else OrderStatus.PENDING_PAYMENT
    if payment_method is None:
        payment_method = PaymentMethod.CARD if payment_ref else PaymentMethod.INVOICE

    deadline = time.monotonic() + settings.ORDER_TX_TIMEOUT_MS / 1000
    snapshot: Dict[int, Dict[str, Decimal]] = {}

    try:
        with engine.begin() as conn:
            _apply_time_budget(conn)

            for product_id, quantity in lines.items():
                if not decrement_stock(conn, product_id, quantity):
                    product = get_product(product_id, conn=conn)
                    if not product:
                        raise NotFound(f"Product {product_id} not found")
                    raise InsufficientStock(product_id, quantity, product["stock"])
                _check_deadline(deadline)

            for product_id, quantity in lines.items():
                q = quote_price(product_id, context, quantity, conn=conn)
                snapshot[product_id] = {
                    "price": round_money(q.price),
                    "base_price": round_money(q.base_price),
                }

            total_price = sum(
                (snapshot[pid]["price"] * qty for pid, qty in lines.items()),
                Decimal(0),
            )

            order_id = insert_order(
                conn,
                user_id=user_id,
                status=status,
                total_price=total_price,
                shipping=shipping or {},
                payment_ref=payment_ref,
                payment_method=payment_method,
            )
            for product_id, quantity in lines.items():
                insert_order_item(
                    conn,
                    order_id=order_id,
                    product_id=product_id,
                    quantity=quantity,
                    price=snapshot[product_id]["price"],
                    base_price=snapshot[product_id]["base_price"],
                )

            clear_cart(conn, user_id)
            _check_deadline(deadline)
            order = get_order(order_id, conn=conn)
    except IntegrityError:
        # A concurrent call with the same payment reference won the insert
        if payment_ref:
            existing = _order_for_payment_ref(payment_ref, user_id)
            if existing:
                logger.info(f"orders: duplicate payment_ref={payment_ref} resolved to order id={existing['id']}")
                return existing
        logger.error(f"orders: integrity error placing order for user_id={user_id}\n{traceback.format_exc()}")
        raise
    except OperationalError as e:
        if is_lock_timeout(e):
            logger.warning(f"orders: transaction timed out for user_id={user_id}: {e.orig}")
            raise TransactionTimeout("Order transaction timed out, please retry") from e
        raise

    _warn_on_client_prices(items, snapshot)
    logger.info(
        f"orders: created order id={order['id']} user_id={user_id} status={status} "
        f"total={order['total_price']} lines={len(lines)}"
    )
    return order


def confirm_payment(user_id: int, payment_ref: str, context: PricingContext) -> Dict[str, Any]:
    """Payment-success webhook: return the order for `payment_ref`, creating it from the cart once."""
    if not payment_ref:
        raise ValidationError("Missing payment intent ID")

    existing = _order_for_payment_ref(payment_ref, user_id)
    if existing:
        with engine.begin() as conn:
            clear_cart(conn, user_id)
        return existing

    cart_items = list_cart_items(user_id)
    if not cart_items:
        # A concurrent confirmation may have committed the order and cleared the cart
        existing = _order_for_payment_ref(payment_ref, user_id)
        if existing:
            return existing
        raise ValidationError("Cart is empty")

    return place_order(
        user_id,
        [{"product_id": i["product_id"], "quantity": i["quantity"]} for i in cart_items],
        shipping={},
        context=context,
        payment_ref=payment_ref,
    )


def get_user_order(user_id: int, order_id: int) -> Dict[str, Any]:
    order = get_order(order_id)
    if not order:
        raise NotFound("Order not found")
    if order["user_id"] != user_id:
        raise Forbidden("Order belongs to another user")
    return order


def change_order_status(order_id: int, status: str) -> Dict[str, Any]:
    """Admin status change; any listed status may be set directly."""
    if not OrderStatus.is_valid(status):
        raise ValidationError("Invalid status")
    order = update_order_status(order_id, status)
    if not order:
        raise NotFound("Order not found")
    logger.info(f"orders: order id={order_id} status -> {status}")
    return order
