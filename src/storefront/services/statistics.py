"""Admin statistics: aggregate computation and cache refresh after writes."""

from __future__ import annotations

import logging
import traceback
from decimal import Decimal
from typing import Any, Dict, Optional

from fastapi import BackgroundTasks
from sqlalchemy import text

from storefront import settings
from storefront.db import engine
from storefront.db_orders import OrderStatus
from storefront.db_products import count_products, to_decimal
from storefront.db_quotes import count_quotes_by_status
from storefront.db_users import count_users_by_role
from storefront.services.pricing import round_money
from storefront.services.stats_cache import StatsCache

logger = logging.getLogger(__name__)

TOP_PRODUCTS_LIMIT = 5


def _money(value: Any) -> float:
    return float(round_money(to_decimal(value) or Decimal(0)))


def compute_statistics() -> Dict[str, Any]:
    """Store-wide totals. Cancelled orders are excluded from revenue."""
    with engine.connect() as conn:
        totals = conn.execute(
            text("""
                SELECT
                    COUNT(*) AS total_orders,
                    COALESCE(SUM(CASE WHEN status <> :cancelled THEN total_price ELSE 0 END), 0) AS total_revenue,
                    COALESCE(SUM(CASE WHEN status <> :cancelled THEN 1 ELSE 0 END), 0) AS revenue_orders
                FROM orders
            """),
            {"cancelled": OrderStatus.CANCELLED},
        ).mappings().first()

        status_rows = conn.execute(
            text("SELECT status, COUNT(*) AS c FROM orders GROUP BY status")
        ).mappings().all()

        top_rows = conn.execute(
            text("""
                SELECT oi.product_id, p.name,
                       SUM(oi.quantity) AS units,
                       SUM(oi.price * oi.quantity) AS revenue
                FROM order_items oi
                JOIN orders o ON o.id = oi.order_id
                LEFT JOIN products p ON p.id = oi.product_id
                WHERE o.status <> :cancelled
                GROUP BY oi.product_id, p.name
                ORDER BY units DESC, oi.product_id
                LIMIT :limit
            """),
            {"cancelled": OrderStatus.CANCELLED, "limit": TOP_PRODUCTS_LIMIT},
        ).mappings().all()

        distributors = conn.execute(text("SELECT COUNT(*) FROM distributors")).scalar_one()
        products = count_products(conn=conn)
        users_by_role = count_users_by_role(conn=conn)
        quotes_by_status = count_quotes_by_status(conn=conn)

    revenue = to_decimal(totals["total_revenue"]) or Decimal(0)
    revenue_orders = int(totals["revenue_orders"] or 0)
    orders_by_status = {status: 0 for status in OrderStatus.all()}
    for row in status_rows:
        orders_by_status[row["status"]] = row["c"]

    return {
        "total_revenue": _money(revenue),
        "total_orders": int(totals["total_orders"] or 0),
        "average_order_value": _money(revenue / revenue_orders) if revenue_orders else 0.0,
        "total_products": products,
        "total_distributors": distributors,
        "users_by_role": users_by_role,
        "orders_by_status": orders_by_status,
        "quotes_by_status": quotes_by_status,
        "top_products": [
            {
                "product_id": r["product_id"],
                "name": r["name"],
                "units": int(r["units"] or 0),
                "revenue": _money(r["revenue"]),
            }
            for r in top_rows
        ],
    }


def rewarm_stats(cache: StatsCache) -> None:
    """Recompute the cached statistics; errors are logged and swallowed."""
    try:
        cache.warm(compute_statistics)
    except Exception:
        logger.error(f"stats: background re-warm failed\n{traceback.format_exc()}")


def refresh_after_write(cache: StatsCache, background_tasks: Optional[BackgroundTasks] = None) -> None:
    """Invalidate after a committed write and schedule a re-warm off the request path."""
    try:
        cache.invalidate()
    except Exception:
        logger.error(f"stats: cache invalidation failed\n{traceback.format_exc()}")
        return
    if settings.STATS_WARM_ON_WRITE and background_tasks is not None:
        background_tasks.add_task(rewarm_stats, cache)
