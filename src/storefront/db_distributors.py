"""Database helpers for distributors (tenants) and their storefront domains.

This module provides:
- Distributor CRUD operations (email domain unique, stored lower-cased)
- set_default_discount(): company-wide default discount percent
- DistributorDomain CRUD operations used by the tenant resolver
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import text
from sqlalchemy.exc import IntegrityError

from storefront.db import engine
from storefront.db_products import to_decimal
from storefront.db_users import count_distributor_members, link_users_by_email_domain
from storefront.errors import ConflictError

logger = logging.getLogger(__name__)


class DomainStatus:
    PENDING = "pending"
    VERIFIED = "verified"
    FAILED = "failed"


_DISTRIBUTOR_COLUMNS = (
    "id, name, email_domain, logo_url, brand_color, default_discount_percent, created_at, updated_at"
)
_DOMAIN_COLUMNS = "id, distributor_id, domain, status, last_checked_at, details, created_at"


def _row_to_distributor(row) -> Dict[str, Any]:
    return {
        "id": row["id"],
        "name": row["name"],
        "email_domain": row["email_domain"],
        "logo_url": row["logo_url"],
        "brand_color": row["brand_color"],
        "default_discount_percent": to_decimal(row["default_discount_percent"]),
        "created_at": row["created_at"],
        "updated_at": row["updated_at"],
    }


def _row_to_domain(row) -> Dict[str, Any]:
    details = row["details"]
    if isinstance(details, str):
        try:
            details = json.loads(details)
        except ValueError:
            details = {}
    return {
        "id": row["id"],
        "distributor_id": row["distributor_id"],
        "domain": row["domain"],
        "status": row["status"],
        "last_checked_at": row["last_checked_at"],
        "details": details,
        "created_at": row["created_at"],
    }


def normalize_domain(domain: str) -> str:
    return domain.strip().lower()


def get_distributor(distributor_id: int, *, conn=None) -> Optional[Dict[str, Any]]:
    """Get distributor by ID."""
    sql = text(f"SELECT {_DISTRIBUTOR_COLUMNS} FROM distributors WHERE id = :distributor_id")
    if conn is None:
        with engine.connect() as _conn:
            row = _conn.execute(sql, {"distributor_id": distributor_id}).mappings().first()
    else:
        row = conn.execute(sql, {"distributor_id": distributor_id}).mappings().first()
    return _row_to_distributor(row) if row else None


def get_distributor_by_email_domain(email_domain: str) -> Optional[Dict[str, Any]]:
    with engine.connect() as conn:
        row = conn.execute(
            text(f"SELECT {_DISTRIBUTOR_COLUMNS} FROM distributors WHERE email_domain = :email_domain"),
            {"email_domain": normalize_domain(email_domain)},
        ).mappings().first()
    return _row_to_distributor(row) if row else None


def find_distributor_for_host(host: str, subdomain: Optional[str]) -> Optional[Dict[str, Any]]:
    """Direct host match: email domain equals the host (with or without www.),
    or, when a subdomain is given, the distributor name contains it."""
    bare = host[4:] if host.startswith("www.") else host
    conditions = ["email_domain = :host", "email_domain = :bare"]
    params: Dict[str, Any] = {"host": host, "bare": bare}
    if subdomain:
        conditions.append("LOWER(name) LIKE :subdomain")
        params["subdomain"] = f"%{subdomain.lower()}%"
    with engine.connect() as conn:
        row = conn.execute(
            text(f"""
                SELECT {_DISTRIBUTOR_COLUMNS}
                FROM distributors
                WHERE {' OR '.join(conditions)}
                ORDER BY id
                LIMIT 1
            """),
            params,
        ).mappings().first()
    return _row_to_distributor(row) if row else None


def list_distributors() -> List[Dict[str, Any]]:
    """All distributors, newest first, with user and product-override counts."""
    with engine.connect() as conn:
        rows = conn.execute(
            text(f"""
                SELECT {', '.join('d.' + c.strip() for c in _DISTRIBUTOR_COLUMNS.split(','))},
                       (SELECT COUNT(*) FROM users u WHERE u.distributor_id = d.id) AS users_count,
                       (SELECT COUNT(*) FROM distributor_prices dp WHERE dp.distributor_id = d.id) AS prices_count
                FROM distributors d
                ORDER BY d.created_at DESC, d.id DESC
            """)
        ).mappings().all()
    result = []
    for row in rows:
        item = _row_to_distributor(row)
        item["users_count"] = row["users_count"]
        item["prices_count"] = row["prices_count"]
        result.append(item)
    return result


def create_distributor(
    name: str,
    email_domain: str,
    logo_url: Optional[str] = None,
    brand_color: Optional[str] = None,
    default_discount_percent=None,
) -> Dict[str, Any]:
    """Create a distributor and link existing users of its email domain.

    Raises ConflictError when the email domain is already taken.
    """
    email_domain = normalize_domain(email_domain)
    try:
        with engine.begin() as conn:
            existing = conn.execute(
                text("SELECT id FROM distributors WHERE email_domain = :email_domain"),
                {"email_domain": email_domain},
            ).first()
            if existing:
                raise ConflictError("A distributor with this email domain already exists")
            row = conn.execute(
                text(f"""
                    INSERT INTO distributors (name, email_domain, logo_url, brand_color, default_discount_percent)
                    VALUES (:name, :email_domain, :logo_url, :brand_color, :default_discount_percent)
                    RETURNING {_DISTRIBUTOR_COLUMNS}
                """),
                {
                    "name": name,
                    "email_domain": email_domain,
                    "logo_url": logo_url or None,
                    "brand_color": brand_color or None,
                    "default_discount_percent": default_discount_percent,
                },
            ).mappings().first()
            distributor = _row_to_distributor(row)
            linked = link_users_by_email_domain(distributor["id"], email_domain, conn=conn)
    except IntegrityError as e:
        raise ConflictError("A distributor with this email domain already exists") from e

    logger.info(
        f"db_distributors: created distributor id={distributor['id']} domain={email_domain} linked_users={linked}"
    )
    return distributor


def update_distributor(
    distributor_id: int,
    name: str,
    email_domain: str,
    logo_url: Optional[str] = None,
    brand_color: Optional[str] = None,
) -> Optional[Dict[str, Any]]:
    """Update distributor basics. Returns None when the distributor does not exist."""
    email_domain = normalize_domain(email_domain)
    try:
        with engine.begin() as conn:
            clash = conn.execute(
                text("SELECT id FROM distributors WHERE email_domain = :email_domain AND id <> :distributor_id"),
                {"email_domain": email_domain, "distributor_id": distributor_id},
            ).first()
            if clash:
                raise ConflictError("A distributor with this email domain already exists")
            row = conn.execute(
                text(f"""
                    UPDATE distributors
                    SET name = :name, email_domain = :email_domain, logo_url = :logo_url,
                        brand_color = :brand_color, updated_at = CURRENT_TIMESTAMP
                    WHERE id = :distributor_id
                    RETURNING {_DISTRIBUTOR_COLUMNS}
                """),
                {
                    "distributor_id": distributor_id,
                    "name": name,
                    "email_domain": email_domain,
                    "logo_url": logo_url or None,
                    "brand_color": brand_color or None,
                },
            ).mappings().first()
            if row:
                link_users_by_email_domain(distributor_id, email_domain, conn=conn)
    except IntegrityError as e:
        raise ConflictError("A distributor with this email domain already exists") from e
    return _row_to_distributor(row) if row else None


def set_default_discount(distributor_id: int, percent) -> Optional[Dict[str, Any]]:
    """Set the company-wide default discount (None clears it)."""
    with engine.begin() as conn:
        row = conn.execute(
            text(f"""
                UPDATE distributors
                SET default_discount_percent = :percent, updated_at = CURRENT_TIMESTAMP
                WHERE id = :distributor_id
                RETURNING {_DISTRIBUTOR_COLUMNS}
            """),
            {"distributor_id": distributor_id, "percent": percent},
        ).mappings().first()
    return _row_to_distributor(row) if row else None


def delete_distributor(distributor_id: int) -> bool:
    """Delete a distributor and all of its pricing rules and domains.

    Raises ConflictError while users are still affiliated with it.
    Returns False when the distributor does not exist.
    """
    with engine.begin() as conn:
        exists = conn.execute(
            text("SELECT id FROM distributors WHERE id = :distributor_id"),
            {"distributor_id": distributor_id},
        ).first()
        if not exists:
            return False
        members = count_distributor_members(distributor_id, conn=conn)
        if members > 0:
            raise ConflictError(
                f"Cannot delete distributor with {members} employee(s). Please reassign or delete users first."
            )
        params = {"distributor_id": distributor_id}
        conn.execute(text("DELETE FROM distributor_prices WHERE distributor_id = :distributor_id"), params)
        conn.execute(text("DELETE FROM category_discounts WHERE distributor_id = :distributor_id"), params)
        conn.execute(text("DELETE FROM distributor_domains WHERE distributor_id = :distributor_id"), params)
        conn.execute(
            text("UPDATE quote_requests SET distributor_id = NULL WHERE distributor_id = :distributor_id"), params
        )
        conn.execute(text("DELETE FROM distributors WHERE id = :distributor_id"), params)

    logger.info(f"db_distributors: deleted distributor id={distributor_id}")
    return True


# Domains


def list_domains(distributor_id: int) -> List[Dict[str, Any]]:
    with engine.connect() as conn:
        rows = conn.execute(
            text(f"""
                SELECT {_DOMAIN_COLUMNS}
                FROM distributor_domains
                WHERE distributor_id = :distributor_id
                ORDER BY created_at DESC, id DESC
            """),
            {"distributor_id": distributor_id},
        ).mappings().all()
    return [_row_to_domain(r) for r in rows]


def get_domain(distributor_id: int, domain_id: int) -> Optional[Dict[str, Any]]:
    """Get a domain record, only if it belongs to the distributor."""
    with engine.connect() as conn:
        row = conn.execute(
            text(f"""
                SELECT {_DOMAIN_COLUMNS}
                FROM distributor_domains
                WHERE id = :domain_id AND distributor_id = :distributor_id
            """),
            {"domain_id": domain_id, "distributor_id": distributor_id},
        ).mappings().first()
    return _row_to_domain(row) if row else None


def add_domain(distributor_id: int, domain: str) -> Dict[str, Any]:
    """Register a pending domain. Raises ConflictError on a duplicate."""
    domain = normalize_domain(domain)
    try:
        with engine.begin() as conn:
            existing = conn.execute(
                text("SELECT id FROM distributor_domains WHERE distributor_id = :distributor_id AND domain = :domain"),
                {"distributor_id": distributor_id, "domain": domain},
            ).first()
            if existing:
                raise ConflictError("Domain already registered")
            row = conn.execute(
                text(f"""
                    INSERT INTO distributor_domains (distributor_id, domain, status)
                    VALUES (:distributor_id, :domain, :status)
                    RETURNING {_DOMAIN_COLUMNS}
                """),
                {"distributor_id": distributor_id, "domain": domain, "status": DomainStatus.PENDING},
            ).mappings().first()
    except IntegrityError as e:
        raise ConflictError("Domain already registered") from e
    return _row_to_domain(row)


def set_domain_status(domain_id: int, status: str, details: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    with engine.begin() as conn:
        row = conn.execute(
            text(f"""
                UPDATE distributor_domains
                SET status = :status, last_checked_at = CURRENT_TIMESTAMP, details = :details
                WHERE id = :domain_id
                RETURNING {_DOMAIN_COLUMNS}
            """),
            {
                "domain_id": domain_id,
                "status": status,
                "details": json.dumps(details, ensure_ascii=False),
            },
        ).mappings().first()
    return _row_to_domain(row) if row else None


def delete_domain(distributor_id: int, domain_id: int) -> bool:
    with engine.begin() as conn:
        result = conn.execute(
            text("DELETE FROM distributor_domains WHERE id = :domain_id AND distributor_id = :distributor_id"),
            {"domain_id": domain_id, "distributor_id": distributor_id},
        )
        return result.rowcount > 0


def find_verified_domain_distributor(host: str) -> Optional[Dict[str, Any]]:
    """Distributor owning a verified domain record for the host."""
    with engine.connect() as conn:
        row = conn.execute(
            text(f"""
                SELECT {', '.join('d.' + c.strip() for c in _DISTRIBUTOR_COLUMNS.split(','))}
                FROM distributor_domains dd
                JOIN distributors d ON d.id = dd.distributor_id
                WHERE dd.domain = :host AND dd.status = :status
                ORDER BY dd.id
                LIMIT 1
            """),
            {"host": host, "status": DomainStatus.VERIFIED},
        ).mappings().first()
    return _row_to_distributor(row) if row else None
