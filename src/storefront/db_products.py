"""Data-access helpers for the `products` table (the catalog store).

This module provides:
- get_product() / list_products(): catalog reads used by the price resolver and views
- create_product() / update_product() / delete_product(): admin product edits
- decrement_stock(): compare-and-decrement used only inside the order transaction

Constraints:
- Raw SQL via sqlalchemy.text
- Monetary values are returned as Decimal regardless of the driver
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy import text

from storefront.db import engine
from storefront.errors import ConflictError

_PRODUCT_COLUMNS = "id, sku, name, description, base_price, category, stock, created_at, updated_at"


def to_decimal(value: Any) -> Optional[Decimal]:
    if value is None:
        return None
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def normalize_category(category: Optional[str]) -> str:
    """Capitalise the first letter, lower-case the rest; empty becomes "General"."""
    if not category or not category.strip():
        return "General"
    category = category.strip()
    return category[0].upper() + category[1:].lower()


def _row_to_product(row) -> Dict[str, Any]:
    return {
        "id": row["id"],
        "sku": row["sku"],
        "name": row["name"],
        "description": row["description"],
        "base_price": to_decimal(row["base_price"]),
        "category": row["category"],
        "stock": row["stock"],
        "created_at": row["created_at"],
        "updated_at": row["updated_at"],
    }


def get_product(product_id: int, *, conn=None) -> Optional[Dict[str, Any]]:
    """Get product by ID, or None."""
    sql = text(f"SELECT {_PRODUCT_COLUMNS} FROM products WHERE id = :product_id")
    if conn is None:
        with engine.connect() as _conn:
            row = _conn.execute(sql, {"product_id": product_id}).mappings().first()
    else:
        row = conn.execute(sql, {"product_id": product_id}).mappings().first()
    return _row_to_product(row) if row else None


def list_products(
    category: Optional[str] = None,
    q: Optional[str] = None,
    limit: int = 100,
    offset: int = 0,
) -> List[Dict[str, Any]]:
    """List products newest first, optionally filtered by category or name substring."""
    where = []
    params: Dict[str, Any] = {"limit": limit, "offset": offset}
    if category:
        where.append("category = :category")
        params["category"] = normalize_category(category)
    if q:
        where.append("LOWER(name) LIKE :q")
        params["q"] = f"%{q.strip().lower()}%"
    where_sql = f"WHERE {' AND '.join(where)}" if where else ""

    with engine.connect() as conn:
        rows = conn.execute(
            text(f"""
                SELECT {_PRODUCT_COLUMNS}
                FROM products
                {where_sql}
                ORDER BY created_at DESC, id DESC
                LIMIT :limit OFFSET :offset
            """),
            params,
        ).mappings().all()
    return [_row_to_product(r) for r in rows]


def count_products(*, conn=None) -> int:
    sql = text("SELECT COUNT(*) FROM products")
    if conn is None:
        with engine.connect() as _conn:
            return _conn.execute(sql).scalar_one()
    return conn.execute(sql).scalar_one()


def create_product(
    name: str,
    base_price: Decimal,
    category: Optional[str],
    stock: int = 100,
    sku: Optional[str] = None,
    description: Optional[str] = None,
) -> Dict[str, Any]:
    """Insert a product; the category is normalised."""
    with engine.begin() as conn:
        row = conn.execute(
            text(f"""
                INSERT INTO products (sku, name, description, base_price, category, stock)
                VALUES (:sku, :name, :description, :base_price, :category, :stock)
                RETURNING {_PRODUCT_COLUMNS}
            """),
            {
                "sku": sku,
                "name": name,
                "description": description,
                "base_price": base_price,
                "category": normalize_category(category),
                "stock": stock,
            },
        ).mappings().first()
    return _row_to_product(row)


def update_product(product_id: int, fields: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """Update the given product fields. Returns the updated product or None if missing."""
    allowed = {"sku", "name", "description", "base_price", "category", "stock"}
    updates = {k: v for k, v in fields.items() if k in allowed}
    if "category" in updates:
        updates["category"] = normalize_category(updates["category"])
    if not updates:
        return get_product(product_id)

    set_sql = ", ".join(f"{k} = :{k}" for k in updates)
    with engine.begin() as conn:
        row = conn.execute(
            text(f"""
                UPDATE products
                SET {set_sql}, updated_at = CURRENT_TIMESTAMP
                WHERE id = :product_id
                RETURNING {_PRODUCT_COLUMNS}
            """),
            {**updates, "product_id": product_id},
        ).mappings().first()
    return _row_to_product(row) if row else None


def delete_product(product_id: int) -> bool:
    """Delete a product together with its distributor overrides, cart lines and quote requests.

    Products referenced by order lines are kept (order history is immutable).
    """
    with engine.begin() as conn:
        ordered = conn.execute(
            text("SELECT 1 FROM order_items WHERE product_id = :pid LIMIT 1"), {"pid": product_id}
        ).first()
        if ordered:
            raise ConflictError("Product has orders and cannot be deleted")
        conn.execute(text("DELETE FROM distributor_prices WHERE product_id = :pid"), {"pid": product_id})
        conn.execute(text("DELETE FROM cart_items WHERE product_id = :pid"), {"pid": product_id})
        conn.execute(text("DELETE FROM quote_requests WHERE product_id = :pid"), {"pid": product_id})
        result = conn.execute(text("DELETE FROM products WHERE id = :pid"), {"pid": product_id})
        return result.rowcount > 0


def decrement_stock(conn, product_id: int, quantity: int) -> bool:
    """Atomically take `quantity` units from stock.

    The stock guard and the decrement are one statement, so two concurrent
    transactions can never both pass the check against the same units. Returns
    False (and changes nothing) when the product is missing or short on stock.
    """
    result = conn.execute(
        text("""
            UPDATE products
            SET stock = stock - :quantity, updated_at = CURRENT_TIMESTAMP
            WHERE id = :product_id AND stock >= :quantity
        """),
        {"product_id": product_id, "quantity": quantity},
    )
    return result.rowcount == 1
