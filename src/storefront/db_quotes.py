"""Data-access helpers for `quote_requests` (B2B quote workflow).

A quote request names one product and a quantity. Admins price it, move it
through statuses, and finally convert it into an order. Every status change
is appended to `history` as {status, changed_by, timestamp, note}.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import text

from storefront.db import engine
from storefront.db_products import to_decimal


class QuoteStatus:
    REQUESTED = "requested"
    QUOTED = "quoted"
    ORDERED = "ordered"
    CANCELLED = "cancelled"

    @classmethod
    def all(cls) -> List[str]:
        return [cls.REQUESTED, cls.QUOTED, cls.ORDERED, cls.CANCELLED]

    @classmethod
    def is_valid(cls, status: str) -> bool:
        return status in cls.all()


_QUOTE_COLUMNS = (
    "q.id, q.product_id, q.requester_id, q.distributor_id, q.contact_email, q.location, q.po_number, "
    "q.notes, q.quantity, q.price, q.status, q.history, q.order_id, q.created_at, q.updated_at, "
    "p.name AS product_name, p.sku AS product_sku, u.email AS requester_email"
)

_QUOTE_FROM = """
    FROM quote_requests q
    LEFT JOIN products p ON p.id = q.product_id
    LEFT JOIN users u ON u.id = q.requester_id
"""


def history_event(status: str, changed_by: Optional[str], note: Optional[str] = None) -> Dict[str, Any]:
    return {
        "status": status,
        "changed_by": changed_by,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "note": note,
    }


def _load_history(raw: Any) -> List[Dict[str, Any]]:
    if raw is None:
        return []
    if isinstance(raw, str):
        raw = json.loads(raw)
    return list(raw)


def _row_to_quote(row) -> Dict[str, Any]:
    return {
        "id": row["id"],
        "product_id": row["product_id"],
        "product_name": row["product_name"],
        "product_sku": row["product_sku"],
        "requester_id": row["requester_id"],
        "requester_email": row["requester_email"],
        "distributor_id": row["distributor_id"],
        "contact_email": row["contact_email"],
        "location": row["location"],
        "po_number": row["po_number"],
        "notes": row["notes"],
        "quantity": row["quantity"],
        "price": to_decimal(row["price"]),
        "status": row["status"],
        "history": _load_history(row["history"]),
        "order_id": row["order_id"],
        "created_at": row["created_at"],
        "updated_at": row["updated_at"],
    }


def create_quote_request(
    product_id: int,
    quantity: int,
    contact_email: str,
    requester_id: Optional[int] = None,
    distributor_id: Optional[int] = None,
    location: Optional[str] = None,
    po_number: Optional[str] = None,
    notes: Optional[str] = None,
) -> Dict[str, Any]:
    history = [history_event(QuoteStatus.REQUESTED, contact_email, "Quote requested")]
    with engine.begin() as conn:
        quote_id = conn.execute(
            text("""
                INSERT INTO quote_requests (
                    product_id, requester_id, distributor_id, contact_email,
                    location, po_number, notes, quantity, status, history
                ) VALUES (
                    :product_id, :requester_id, :distributor_id, :contact_email,
                    :location, :po_number, :notes, :quantity, :status, :history
                )
                RETURNING id
            """),
            {
                "product_id": product_id,
                "requester_id": requester_id,
                "distributor_id": distributor_id,
                "contact_email": contact_email,
                "location": location,
                "po_number": po_number,
                "notes": notes,
                "quantity": quantity,
                "status": QuoteStatus.REQUESTED,
                "history": json.dumps(history),
            },
        ).scalar_one()
        return get_quote(quote_id, conn=conn)


def get_quote(quote_id: int, *, conn=None) -> Optional[Dict[str, Any]]:
    sql = text(f"SELECT {_QUOTE_COLUMNS} {_QUOTE_FROM} WHERE q.id = :quote_id")
    if conn is None:
        with engine.connect() as _conn:
            return get_quote(quote_id, conn=_conn)
    row = conn.execute(sql, {"quote_id": quote_id}).mappings().first()
    return _row_to_quote(row) if row else None


def list_quotes(
    status: Optional[str] = None,
    requester_id: Optional[int] = None,
    limit: int = 100,
    offset: int = 0,
) -> List[Dict[str, Any]]:
    """Quote requests newest first, optionally filtered by status or requester."""
    clauses = []
    params: Dict[str, Any] = {"limit": limit, "offset": offset}
    if status:
        clauses.append("q.status = :status")
        params["status"] = status
    if requester_id is not None:
        clauses.append("q.requester_id = :requester_id")
        params["requester_id"] = requester_id
    where_sql = f"WHERE {' AND '.join(clauses)}" if clauses else ""
    with engine.connect() as conn:
        rows = conn.execute(
            text(f"""
                SELECT {_QUOTE_COLUMNS}
                {_QUOTE_FROM}
                {where_sql}
                ORDER BY q.created_at DESC, q.id DESC
                LIMIT :limit OFFSET :offset
            """),
            params,
        ).mappings().all()
    return [_row_to_quote(r) for r in rows]


def update_quote(
    quote_id: int,
    status: str,
    event: Dict[str, Any],
    price=None,
    *,
    conn=None,
) -> Optional[Dict[str, Any]]:
    """Set status (and price when given) and append `event` to the history."""
    if conn is None:
        with engine.begin() as _conn:
            return update_quote(quote_id, status, event, price, conn=_conn)
    current = get_quote(quote_id, conn=conn)
    if not current:
        return None
    history = current["history"] + [event]
    conn.execute(
        text("""
            UPDATE quote_requests
            SET status = :status,
                price = COALESCE(:price, price),
                history = :history,
                updated_at = CURRENT_TIMESTAMP
            WHERE id = :quote_id
        """),
        {"quote_id": quote_id, "status": status, "price": price, "history": json.dumps(history)},
    )
    return get_quote(quote_id, conn=conn)


def attach_order(conn, quote_id: int, order_id: int, event: Dict[str, Any]) -> bool:
    """Mark the quote ordered with `order_id`; False when it already has an order."""
    current = get_quote(quote_id, conn=conn)
    if not current:
        return False
    history = current["history"] + [event]
    result = conn.execute(
        text("""
            UPDATE quote_requests
            SET status = :status, order_id = :order_id, history = :history, updated_at = CURRENT_TIMESTAMP
            WHERE id = :quote_id AND order_id IS NULL
        """),
        {
            "quote_id": quote_id,
            "order_id": order_id,
            "status": QuoteStatus.ORDERED,
            "history": json.dumps(history),
        },
    )
    return result.rowcount > 0


def count_quotes_by_status(*, conn=None) -> Dict[str, int]:
    sql = text("SELECT status, COUNT(*) AS c FROM quote_requests GROUP BY status")
    if conn is None:
        with engine.connect() as _conn:
            rows = _conn.execute(sql).mappings().all()
    else:
        rows = conn.execute(sql).mappings().all()
    counts = {status: 0 for status in QuoteStatus.all()}
    for row in rows:
        counts[row["status"]] = row["c"]
    return counts
