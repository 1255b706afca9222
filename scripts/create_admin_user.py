#!/usr/bin/env python3
"""Create or update the admin user with the given email and password.

Usage:
    python scripts/create_admin_user.py [email] [password]

Defaults to admin@example.com / "admin123".
Idempotent: creates the user if missing, otherwise updates the password and
makes sure the role is admin.
"""

import os
import sys

# In container PYTHONPATH=/app/src; on host add ../src
if '/app/src' not in sys.path:
    script_dir = os.path.dirname(os.path.abspath(__file__))
    sys.path.insert(0, os.path.abspath(os.path.join(script_dir, '..', 'src')))

from sqlalchemy import text

from storefront.core.security import get_password_hash, verify_password
from storefront.db import engine
from storefront.db_users import UserRole, create_user, get_user_by_email


def create_or_update_admin(email: str = "admin@example.com", password: str = "admin123") -> None:
    existing_user = get_user_by_email(email)

    if existing_user:
        if verify_password(password, existing_user["hashed_password"]) and existing_user["role"] == UserRole.ADMIN:
            print(f"✓ User '{email}' already exists with this password")
            return

        print(f"User '{email}' exists, updating password and role...")
        with engine.begin() as conn:
            conn.execute(
                text("""
                    UPDATE users
                    SET hashed_password = :password, role = :role, is_active = :active
                    WHERE id = :user_id
                """),
                {
                    "user_id": existing_user["id"],
                    "password": get_password_hash(password),
                    "role": UserRole.ADMIN,
                    "active": True,
                },
            )
        print(f"✓ User '{email}' updated (role=admin)")
    else:
        print(f"Creating user '{email}'...")
        admin_user = create_user(
            email=email,
            name="Admin",
            hashed_password=get_password_hash(password),
            role=UserRole.ADMIN,
        )
        print(f"✓ User '{email}' created (id={admin_user['id']})")

    print("\nCredentials:")
    print(f"  Email:    {email}")
    print(f"  Password: {password}")


if __name__ == "__main__":
    email = sys.argv[1] if len(sys.argv) > 1 else "admin@example.com"
    password = sys.argv[2] if len(sys.argv) > 2 else "admin123"
    create_or_update_admin(email, password)
