"""Database helpers for `orders` and `order_items`.

Order lines snapshot `price` (resolved unit price) and `base_price` at
creation time. Nothing in this module recomputes or rewrites them later.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from sqlalchemy import text

from storefront.db import engine
from storefront.db_products import to_decimal


class OrderStatus:
    PENDING_PAYMENT = "pending_payment"
    PENDING = "pending"
    PROCESSING = "processing"
    PAID = "paid"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"

    @classmethod
    def all(cls) -> List[str]:
        return [
            cls.PENDING_PAYMENT,
            cls.PENDING,
            cls.PROCESSING,
            cls.PAID,
            cls.SHIPPED,
            cls.DELIVERED,
            cls.CANCELLED,
        ]

    @classmethod
    def is_valid(cls, status: str) -> bool:
        return status in cls.all()


_ORDER_COLUMNS = (
    "id, user_id, payment_ref, payment_method, status, total_price, "
    "recipient_name, recipient_phone, shipping_postal_code, shipping_address1, shipping_address2, "
    "created_at, updated_at"
)


def _row_to_order(row) -> Dict[str, Any]:
    return {
        "id": row["id"],
        "user_id": row["user_id"],
        "payment_ref": row["payment_ref"],
        "payment_method": row["payment_method"],
        "status": row["status"],
        "total_price": to_decimal(row["total_price"]),
        "shipping": {
            "name": row["recipient_name"] or "",
            "phone": row["recipient_phone"] or "",
            "postal_code": row["shipping_postal_code"] or "",
            "address1": row["shipping_address1"] or "",
            "address2": row["shipping_address2"] or "",
        },
        "created_at": row["created_at"],
        "updated_at": row["updated_at"],
    }


def _load_items(conn, order_ids: List[int]) -> Dict[int, List[Dict[str, Any]]]:
    items: Dict[int, List[Dict[str, Any]]] = {order_id: [] for order_id in order_ids}
    if not order_ids:
        return items
    placeholders = ", ".join(f":id_{i}" for i in range(len(order_ids)))
    rows = conn.execute(
        text(f"""
            SELECT oi.id, oi.order_id, oi.product_id, oi.quantity, oi.price, oi.base_price,
                   p.name AS product_name
            FROM order_items oi
            LEFT JOIN products p ON p.id = oi.product_id
            WHERE oi.order_id IN ({placeholders})
            ORDER BY oi.id
        """),
        {f"id_{i}": order_id for i, order_id in enumerate(order_ids)},
    ).mappings().all()
    for row in rows:
        items[row["order_id"]].append(
            {
                "id": row["id"],
                "product_id": row["product_id"],
                "product_name": row["product_name"],
                "quantity": row["quantity"],
                "price": to_decimal(row["price"]),
                "base_price": to_decimal(row["base_price"]),
            }
        )
    return items


def get_order(order_id: int, *, conn=None) -> Optional[Dict[str, Any]]:
    """Order with its lines, or None."""
    sql = text(f"SELECT {_ORDER_COLUMNS} FROM orders WHERE id = :order_id")
    if conn is None:
        with engine.connect() as _conn:
            return get_order(order_id, conn=_conn)
    row = conn.execute(sql, {"order_id": order_id}).mappings().first()
    if not row:
        return None
    order = _row_to_order(row)
    order["items"] = _load_items(conn, [order["id"]])[order["id"]]
    return order


def get_order_by_payment_ref(payment_ref: str, *, conn=None) -> Optional[Dict[str, Any]]:
    sql = text("SELECT id FROM orders WHERE payment_ref = :payment_ref")
    if conn is None:
        with engine.connect() as _conn:
            return get_order_by_payment_ref(payment_ref, conn=_conn)
    order_id = conn.execute(sql, {"payment_ref": payment_ref}).scalar()
    if order_id is None:
        return None
    return get_order(order_id, conn=conn)


def list_orders(user_id: Optional[int] = None, limit: int = 100, offset: int = 0) -> List[Dict[str, Any]]:
    """Orders newest first; all users when user_id is None (admin view)."""
    where_sql = "WHERE user_id = :user_id" if user_id is not None else ""
    with engine.connect() as conn:
        rows = conn.execute(
            text(f"""
                SELECT {_ORDER_COLUMNS}
                FROM orders
                {where_sql}
                ORDER BY created_at DESC, id DESC
                LIMIT :limit OFFSET :offset
            """),
            {"user_id": user_id, "limit": limit, "offset": offset},
        ).mappings().all()
        orders = [_row_to_order(r) for r in rows]
        items = _load_items(conn, [o["id"] for o in orders])
    for order in orders:
        order["items"] = items[order["id"]]
    return orders


def insert_order(
    conn,
    user_id: int,
    status: str,
    total_price,
    shipping: Dict[str, Any],
    payment_ref: Optional[str] = None,
    payment_method: Optional[str] = None,
) -> int:
    return conn.execute(
        text("""
            INSERT INTO orders (
                user_id, payment_ref, payment_method, status, total_price,
                recipient_name, recipient_phone, shipping_postal_code,
                shipping_address1, shipping_address2
            ) VALUES (
                :user_id, :payment_ref, :payment_method, :status, :total_price,
                :recipient_name, :recipient_phone, :shipping_postal_code,
                :shipping_address1, :shipping_address2
            )
            RETURNING id
        """),
        {
            "user_id": user_id,
            "payment_ref": payment_ref,
            "payment_method": payment_method,
            "status": status,
            "total_price": total_price,
            "recipient_name": shipping.get("name"),
            "recipient_phone": shipping.get("phone"),
            "shipping_postal_code": shipping.get("postal_code"),
            "shipping_address1": shipping.get("address1"),
            "shipping_address2": shipping.get("address2"),
        },
    ).scalar_one()


def insert_order_item(conn, order_id: int, product_id: int, quantity: int, price, base_price) -> None:
    conn.execute(
        text("""
            INSERT INTO order_items (order_id, product_id, quantity, price, base_price)
            VALUES (:order_id, :product_id, :quantity, :price, :base_price)
        """),
        {
            "order_id": order_id,
            "product_id": product_id,
            "quantity": quantity,
            "price": price,
            "base_price": base_price,
        },
    )


def update_order_status(order_id: int, status: str) -> Optional[Dict[str, Any]]:
    with engine.begin() as conn:
        result = conn.execute(
            text("UPDATE orders SET status = :status, updated_at = CURRENT_TIMESTAMP WHERE id = :order_id"),
            {"order_id": order_id, "status": status},
        )
        if result.rowcount == 0:
            return None
        return get_order(order_id, conn=conn)
