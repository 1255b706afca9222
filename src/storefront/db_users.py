"""Database helpers for the `users` table.

This module provides:
- User lookups by id / email
- create_user(): registration insert
- distributor affiliation updates (email-domain sync, member counts)
- admin listing, role / affiliation updates and deletion
"""

from __future__ import annotations

from typing import List, Optional

from sqlalchemy import text

from storefront.db import engine


class UserRole:
    CUSTOMER = "customer"
    DISTRIBUTOR = "distributor"
    ADMIN = "admin"

    @classmethod
    def all(cls) -> List[str]:
        return [cls.CUSTOMER, cls.DISTRIBUTOR, cls.ADMIN]

    @classmethod
    def is_valid(cls, role: str) -> bool:
        return role in cls.all()


_USER_COLUMNS = "id, email, name, hashed_password, role, distributor_id, is_active, created_at"


def _row_to_user(row) -> dict:
    return {
        "id": row["id"],
        "email": row["email"],
        "name": row["name"],
        "hashed_password": row["hashed_password"],
        "role": row["role"],
        "distributor_id": row["distributor_id"],
        "is_active": bool(row["is_active"]),
        "created_at": row["created_at"],
    }


def get_user_by_id(user_id: int) -> Optional[dict]:
    """Get user by ID."""
    with engine.connect() as conn:
        row = conn.execute(
            text(f"SELECT {_USER_COLUMNS} FROM users WHERE id = :user_id"),
            {"user_id": user_id},
        ).mappings().first()
    return _row_to_user(row) if row else None


def get_user_by_email(email: str) -> Optional[dict]:
    """Get user by email (case-insensitive)."""
    with engine.connect() as conn:
        row = conn.execute(
            text(f"SELECT {_USER_COLUMNS} FROM users WHERE LOWER(email) = :email"),
            {"email": email.strip().lower()},
        ).mappings().first()
    return _row_to_user(row) if row else None


def create_user(
    email: str,
    name: Optional[str],
    hashed_password: str,
    role: str = UserRole.CUSTOMER,
    distributor_id: Optional[int] = None,
) -> dict:
    """Create a new user."""
    with engine.begin() as conn:
        row = conn.execute(
            text(f"""
                INSERT INTO users (email, name, hashed_password, role, distributor_id, is_active)
                VALUES (:email, :name, :hashed_password, :role, :distributor_id, :is_active)
                RETURNING {_USER_COLUMNS}
            """),
            {
                "email": email.strip().lower(),
                "name": name,
                "hashed_password": hashed_password,
                "role": role,
                "distributor_id": distributor_id,
                "is_active": True,
            },
        ).mappings().first()
    return _row_to_user(row)


def count_distributor_members(distributor_id: int, *, conn=None) -> int:
    """Number of users affiliated with the distributor."""
    sql = text("SELECT COUNT(*) FROM users WHERE distributor_id = :distributor_id")
    if conn is None:
        with engine.connect() as _conn:
            return _conn.execute(sql, {"distributor_id": distributor_id}).scalar_one()
    return conn.execute(sql, {"distributor_id": distributor_id}).scalar_one()


def link_users_by_email_domain(distributor_id: int, email_domain: str, *, conn=None) -> int:
    """Attach unlinked users whose email ends with @email_domain to the distributor.

    Returns the number of users updated.
    """
    sql = text("""
        UPDATE users
        SET distributor_id = :distributor_id, role = :role
        WHERE LOWER(email) LIKE :pattern
          AND distributor_id IS NULL
          AND role <> :admin_role
    """)
    params = {
        "distributor_id": distributor_id,
        "role": UserRole.DISTRIBUTOR,
        "pattern": f"%@{email_domain.lower()}",
        "admin_role": UserRole.ADMIN,
    }
    if conn is None:
        with engine.begin() as _conn:
            return _conn.execute(sql, params).rowcount
    return conn.execute(sql, params).rowcount


def count_users_by_role(*, conn=None) -> dict:
    sql = text("SELECT role, COUNT(*) AS c FROM users GROUP BY role")
    if conn is None:
        with engine.connect() as _conn:
            rows = _conn.execute(sql).mappings().all()
    else:
        rows = conn.execute(sql).mappings().all()
    counts = {role: 0 for role in UserRole.all()}
    for row in rows:
        counts[row["role"]] = row["c"]
    return counts


_ADMIN_USER_COLUMNS = (
    "u.id, u.email, u.name, u.role, u.distributor_id, u.is_active, u.created_at, "
    "d.name AS distributor_name, "
    "(SELECT COUNT(*) FROM orders o WHERE o.user_id = u.id) AS orders_count"
)


def _row_to_admin_user(row) -> dict:
    return {
        "id": row["id"],
        "email": row["email"],
        "name": row["name"],
        "role": row["role"],
        "distributor_id": row["distributor_id"],
        "distributor_name": row["distributor_name"],
        "is_active": bool(row["is_active"]),
        "orders_count": row["orders_count"],
        "created_at": row["created_at"],
    }


def _user_filters(role: Optional[str], q: Optional[str]):
    clauses = []
    params = {}
    if role:
        clauses.append("u.role = :role")
        params["role"] = role
    if q:
        clauses.append("(LOWER(u.email) LIKE :q OR LOWER(COALESCE(u.name, '')) LIKE :q)")
        params["q"] = f"%{q.strip().lower()}%"
    where_sql = f"WHERE {' AND '.join(clauses)}" if clauses else ""
    return where_sql, params


def list_users(limit: int = 200, offset: int = 0, role: Optional[str] = None, q: Optional[str] = None) -> List[dict]:
    """List users newest first, with distributor name and order count.

    Args:
        limit: Maximum number of users to return
        offset: Number of users to skip
        role: Optional exact role filter
        q: Optional case-insensitive search in email or name
    """
    where_sql, params = _user_filters(role, q)
    with engine.connect() as conn:
        rows = conn.execute(
            text(f"""
                SELECT {_ADMIN_USER_COLUMNS}
                FROM users u
                LEFT JOIN distributors d ON d.id = u.distributor_id
                {where_sql}
                ORDER BY u.created_at DESC, u.id DESC
                LIMIT :limit OFFSET :offset
            """),
            {**params, "limit": limit, "offset": offset},
        ).mappings().all()
    return [_row_to_admin_user(r) for r in rows]


def count_users(role: Optional[str] = None, q: Optional[str] = None) -> int:
    where_sql, params = _user_filters(role, q)
    with engine.connect() as conn:
        return conn.execute(text(f"SELECT COUNT(*) FROM users u {where_sql}"), params).scalar_one()


def get_admin_user(user_id: int, *, conn=None) -> Optional[dict]:
    """User as shown in the admin views (no password hash)."""
    sql = text(f"""
        SELECT {_ADMIN_USER_COLUMNS}
        FROM users u
        LEFT JOIN distributors d ON d.id = u.distributor_id
        WHERE u.id = :user_id
    """)
    if conn is None:
        with engine.connect() as _conn:
            return get_admin_user(user_id, conn=_conn)
    row = conn.execute(sql, {"user_id": user_id}).mappings().first()
    return _row_to_admin_user(row) if row else None


def count_admins(*, conn=None) -> int:
    sql = text("SELECT COUNT(*) FROM users WHERE role = :role AND is_active = :active")
    params = {"role": UserRole.ADMIN, "active": True}
    if conn is None:
        with engine.connect() as _conn:
            return _conn.execute(sql, params).scalar_one()
    return conn.execute(sql, params).scalar_one()


def update_user(user_id: int, fields: dict) -> Optional[dict]:
    """Update role / name / distributor_id / is_active. Returns the admin view or None if missing."""
    allowed = {"role", "name", "distributor_id", "is_active"}
    updates = {k: v for k, v in fields.items() if k in allowed}
    with engine.begin() as conn:
        if updates:
            set_sql = ", ".join(f"{k} = :{k}" for k in updates)
            result = conn.execute(
                text(f"UPDATE users SET {set_sql} WHERE id = :user_id"),
                {**updates, "user_id": user_id},
            )
            if result.rowcount == 0:
                return None
        return get_admin_user(user_id, conn=conn)


def delete_user(user_id: int) -> bool:
    """Delete a user and their cart.

    Quote requests keep their row with the requester cleared. Callers must
    refuse users that still own orders.
    """
    with engine.begin() as conn:
        conn.execute(
            text("""
                DELETE FROM cart_items
                WHERE cart_id IN (SELECT id FROM carts WHERE user_id = :user_id)
            """),
            {"user_id": user_id},
        )
        conn.execute(text("DELETE FROM carts WHERE user_id = :user_id"), {"user_id": user_id})
        conn.execute(
            text("UPDATE quote_requests SET requester_id = NULL WHERE requester_id = :user_id"),
            {"user_id": user_id},
        )
        result = conn.execute(text("DELETE FROM users WHERE id = :user_id"), {"user_id": user_id})
        return result.rowcount > 0
