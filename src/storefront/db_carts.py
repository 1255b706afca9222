"""Database helpers for `carts` and `cart_items`.

A cart line stores only (cart_id, product_id, quantity); prices are never
stored here and are recomputed by the price resolver on every read.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from sqlalchemy import text

from storefront.db import engine


def get_or_create_cart_id(user_id: int, *, conn=None) -> int:
    """Return the user's cart id, creating the cart on first use."""
    insert_sql = text("""
        INSERT INTO carts (user_id) VALUES (:user_id)
        ON CONFLICT (user_id) DO NOTHING
    """)
    select_sql = text("SELECT id FROM carts WHERE user_id = :user_id")
    if conn is None:
        with engine.begin() as _conn:
            _conn.execute(insert_sql, {"user_id": user_id})
            return _conn.execute(select_sql, {"user_id": user_id}).scalar_one()
    conn.execute(insert_sql, {"user_id": user_id})
    return conn.execute(select_sql, {"user_id": user_id}).scalar_one()


def get_cart_id(user_id: int, *, conn=None) -> Optional[int]:
    sql = text("SELECT id FROM carts WHERE user_id = :user_id")
    if conn is None:
        with engine.connect() as _conn:
            return _conn.execute(sql, {"user_id": user_id}).scalar()
    return conn.execute(sql, {"user_id": user_id}).scalar()


def list_cart_items(user_id: int, *, conn=None) -> List[Dict[str, Any]]:
    """Cart lines joined with product basics, oldest line first."""
    sql = text("""
        SELECT ci.product_id, ci.quantity, p.name, p.sku, p.stock
        FROM cart_items ci
        JOIN carts c ON c.id = ci.cart_id
        JOIN products p ON p.id = ci.product_id
        WHERE c.user_id = :user_id
        ORDER BY ci.created_at, ci.id
    """)
    if conn is None:
        with engine.connect() as _conn:
            rows = _conn.execute(sql, {"user_id": user_id}).mappings().all()
    else:
        rows = conn.execute(sql, {"user_id": user_id}).mappings().all()
    return [
        {
            "product_id": r["product_id"],
            "quantity": r["quantity"],
            "name": r["name"],
            "sku": r["sku"],
            "stock": r["stock"],
        }
        for r in rows
    ]


def get_cart_item(cart_id: int, product_id: int) -> Optional[Dict[str, Any]]:
    with engine.connect() as conn:
        row = conn.execute(
            text("""
                SELECT ci.id, ci.cart_id, ci.product_id, ci.quantity, p.stock
                FROM cart_items ci
                JOIN products p ON p.id = ci.product_id
                WHERE ci.cart_id = :cart_id AND ci.product_id = :product_id
            """),
            {"cart_id": cart_id, "product_id": product_id},
        ).mappings().first()
    return dict(row) if row else None


def add_cart_item(cart_id: int, product_id: int, quantity: int) -> int:
    """Add quantity to the line (created if missing). Returns the new line quantity."""
    with engine.begin() as conn:
        return conn.execute(
            text("""
                INSERT INTO cart_items (cart_id, product_id, quantity)
                VALUES (:cart_id, :product_id, :quantity)
                ON CONFLICT (cart_id, product_id) DO UPDATE SET
                    quantity = cart_items.quantity + EXCLUDED.quantity,
                    updated_at = CURRENT_TIMESTAMP
                RETURNING quantity
            """),
            {"cart_id": cart_id, "product_id": product_id, "quantity": quantity},
        ).scalar_one()


def set_cart_item_quantity(cart_id: int, product_id: int, quantity: int) -> bool:
    with engine.begin() as conn:
        result = conn.execute(
            text("""
                UPDATE cart_items
                SET quantity = :quantity, updated_at = CURRENT_TIMESTAMP
                WHERE cart_id = :cart_id AND product_id = :product_id
            """),
            {"cart_id": cart_id, "product_id": product_id, "quantity": quantity},
        )
        return result.rowcount > 0


def delete_cart_item(cart_id: int, product_id: int) -> bool:
    with engine.begin() as conn:
        result = conn.execute(
            text("DELETE FROM cart_items WHERE cart_id = :cart_id AND product_id = :product_id"),
            {"cart_id": cart_id, "product_id": product_id},
        )
        return result.rowcount > 0


def clear_cart(conn, user_id: int) -> int:
    """Delete every line of the user's cart on the caller's connection."""
    result = conn.execute(
        text("DELETE FROM cart_items WHERE cart_id IN (SELECT id FROM carts WHERE user_id = :user_id)"),
        {"user_id": user_id},
    )
    return result.rowcount
