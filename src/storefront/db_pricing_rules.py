"""Data-access helpers for distributor pricing rules.

This module provides:
- distributor_prices: product-level custom price + quantity discount tiers,
  unique on (product_id, distributor_id)
- category_discounts: flat percent per (distributor_id, category), unique

Upserts use INSERT ... ON CONFLICT on those unique keys, so writing the same
key twice always leaves exactly one row holding the latest values.
"""

from __future__ import annotations

import json
from typing import Any, Dict, List, Optional

from sqlalchemy import text

from storefront.db import engine
from storefront.db_products import normalize_category, to_decimal

_PRICE_COLUMNS = "id, product_id, distributor_id, custom_price, discount_tiers, created_at, updated_at"
_CATEGORY_COLUMNS = "id, distributor_id, category, discount_percent, created_at, updated_at"


def _load_tiers(raw: Any) -> Optional[List[Dict[str, Any]]]:
    if raw is None:
        return None
    if isinstance(raw, str):
        raw = json.loads(raw)
    return raw or None


def _row_to_price(row) -> Dict[str, Any]:
    return {
        "id": row["id"],
        "product_id": row["product_id"],
        "distributor_id": row["distributor_id"],
        "custom_price": to_decimal(row["custom_price"]),
        "discount_tiers": _load_tiers(row["discount_tiers"]),
        "created_at": row["created_at"],
        "updated_at": row["updated_at"],
    }


def _row_to_category_discount(row) -> Dict[str, Any]:
    return {
        "id": row["id"],
        "distributor_id": row["distributor_id"],
        "category": row["category"],
        "discount_percent": to_decimal(row["discount_percent"]),
        "created_at": row["created_at"],
        "updated_at": row["updated_at"],
    }


def _dump_tiers(tiers: Optional[List[Dict[str, Any]]]) -> Optional[str]:
    if not tiers:
        return None
    return json.dumps(
        [
            {
                "min_qty": t["min_qty"],
                "max_qty": t.get("max_qty"),
                "price": str(t["price"]),
            }
            for t in tiers
        ]
    )


# Product-level overrides


def get_distributor_price(product_id: int, distributor_id: int, *, conn=None) -> Optional[Dict[str, Any]]:
    sql = text(f"""
        SELECT {_PRICE_COLUMNS}
        FROM distributor_prices
        WHERE product_id = :product_id AND distributor_id = :distributor_id
    """)
    params = {"product_id": product_id, "distributor_id": distributor_id}
    if conn is None:
        with engine.connect() as _conn:
            row = _conn.execute(sql, params).mappings().first()
    else:
        row = conn.execute(sql, params).mappings().first()
    return _row_to_price(row) if row else None


def list_distributor_prices(distributor_id: int) -> List[Dict[str, Any]]:
    """All product overrides of a distributor joined with product basics."""
    with engine.connect() as conn:
        rows = conn.execute(
            text("""
                SELECT dp.id, dp.product_id, dp.distributor_id, dp.custom_price, dp.discount_tiers,
                       dp.created_at, dp.updated_at,
                       p.sku AS product_sku, p.name AS product_name, p.base_price AS product_base_price
                FROM distributor_prices dp
                JOIN products p ON p.id = dp.product_id
                WHERE dp.distributor_id = :distributor_id
                ORDER BY p.name, dp.id
            """),
            {"distributor_id": distributor_id},
        ).mappings().all()
    result = []
    for row in rows:
        item = _row_to_price(row)
        item["product"] = {
            "id": row["product_id"],
            "sku": row["product_sku"],
            "name": row["product_name"],
            "base_price": to_decimal(row["product_base_price"]),
        }
        result.append(item)
    return result


def upsert_distributor_price(
    product_id: int,
    distributor_id: int,
    custom_price,
    discount_tiers: Optional[List[Dict[str, Any]]] = None,
) -> Dict[str, Any]:
    """Create or replace the override for (product_id, distributor_id).

    Tiers must already be validated; an empty list is stored as NULL.
    """
    with engine.begin() as conn:
        row = conn.execute(
            text(f"""
                INSERT INTO distributor_prices (product_id, distributor_id, custom_price, discount_tiers)
                VALUES (:product_id, :distributor_id, :custom_price, :discount_tiers)
                ON CONFLICT (product_id, distributor_id) DO UPDATE SET
                    custom_price = EXCLUDED.custom_price,
                    discount_tiers = EXCLUDED.discount_tiers,
                    updated_at = CURRENT_TIMESTAMP
                RETURNING {_PRICE_COLUMNS}
            """),
            {
                "product_id": product_id,
                "distributor_id": distributor_id,
                "custom_price": custom_price,
                "discount_tiers": _dump_tiers(discount_tiers),
            },
        ).mappings().first()
    return _row_to_price(row)


def delete_distributor_price(product_id: int, distributor_id: int) -> bool:
    with engine.begin() as conn:
        result = conn.execute(
            text("DELETE FROM distributor_prices WHERE product_id = :product_id AND distributor_id = :distributor_id"),
            {"product_id": product_id, "distributor_id": distributor_id},
        )
        return result.rowcount > 0


# Category discounts


def get_category_discount(distributor_id: int, category: str, *, conn=None) -> Optional[Dict[str, Any]]:
    sql = text(f"""
        SELECT {_CATEGORY_COLUMNS}
        FROM category_discounts
        WHERE distributor_id = :distributor_id AND category = :category
    """)
    params = {"distributor_id": distributor_id, "category": category}
    if conn is None:
        with engine.connect() as _conn:
            row = _conn.execute(sql, params).mappings().first()
    else:
        row = conn.execute(sql, params).mappings().first()
    return _row_to_category_discount(row) if row else None


def list_category_discounts(distributor_id: int) -> List[Dict[str, Any]]:
    with engine.connect() as conn:
        rows = conn.execute(
            text(f"""
                SELECT {_CATEGORY_COLUMNS}
                FROM category_discounts
                WHERE distributor_id = :distributor_id
                ORDER BY category ASC
            """),
            {"distributor_id": distributor_id},
        ).mappings().all()
    return [_row_to_category_discount(r) for r in rows]


def upsert_category_discount(distributor_id: int, category: str, discount_percent) -> Dict[str, Any]:
    """Insert or update the discount for (distributor_id, category)."""
    with engine.begin() as conn:
        row = conn.execute(
            text(f"""
                INSERT INTO category_discounts (distributor_id, category, discount_percent)
                VALUES (:distributor_id, :category, :discount_percent)
                ON CONFLICT (distributor_id, category) DO UPDATE SET
                    discount_percent = EXCLUDED.discount_percent,
                    updated_at = CURRENT_TIMESTAMP
                RETURNING {_CATEGORY_COLUMNS}
            """),
            {
                "distributor_id": distributor_id,
                "category": normalize_category(category),
                "discount_percent": discount_percent,
            },
        ).mappings().first()
    return _row_to_category_discount(row)


def delete_category_discount(distributor_id: int, category: str) -> bool:
    with engine.begin() as conn:
        result = conn.execute(
            text("DELETE FROM category_discounts WHERE distributor_id = :distributor_id AND category = :category"),
            {"distributor_id": distributor_id, "category": normalize_category(category)},
        )
        return result.rowcount > 0
