"""initial_storefront_schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-18 10:02:11.418220

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '0001_initial'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    op.create_table(
        "distributors",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("email_domain", sa.String(255), nullable=False),
        sa.Column("logo_url", sa.Text(), nullable=True),
        sa.Column("brand_color", sa.String(32), nullable=True),
        sa.Column("default_discount_percent", sa.Numeric(precision=5, scale=2), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_distributors_email_domain", "distributors", ["email_domain"], unique=True)

    op.create_table(
        "distributor_domains",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column(
            "distributor_id",
            sa.Integer(),
            sa.ForeignKey("distributors.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("domain", sa.String(255), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("last_checked_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("details", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("distributor_id", "domain", name="distributor_domains_distributor_domain_unique"),
    )
    op.create_index("ix_distributor_domains_distributor_id", "distributor_domains", ["distributor_id"])
    op.create_index("ix_distributor_domains_domain", "distributor_domains", ["domain"])

    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("name", sa.String(255), nullable=True),
        sa.Column("hashed_password", sa.String(255), nullable=False),
        sa.Column("role", sa.String(20), nullable=False, server_default="customer"),
        sa.Column("distributor_id", sa.Integer(), sa.ForeignKey("distributors.id"), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_distributor_id", "users", ["distributor_id"])

    op.create_table(
        "products",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("sku", sa.String(64), nullable=True, unique=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("base_price", sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column("category", sa.String(128), nullable=False),
        sa.Column("stock", sa.Integer(), nullable=False, server_default="0"),
        *_timestamps(),
        sa.CheckConstraint("stock >= 0", name="products_stock_non_negative"),
    )
    op.create_index("ix_products_category", "products", ["category"])

    op.create_table(
        "distributor_prices",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("product_id", sa.Integer(), sa.ForeignKey("products.id", ondelete="CASCADE"), nullable=False),
        sa.Column(
            "distributor_id",
            sa.Integer(),
            sa.ForeignKey("distributors.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("custom_price", sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column("discount_tiers", sa.JSON(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("product_id", "distributor_id", name="distributor_prices_product_distributor_unique"),
    )
    op.create_index("ix_distributor_prices_distributor_id", "distributor_prices", ["distributor_id"])

    op.create_table(
        "category_discounts",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column(
            "distributor_id",
            sa.Integer(),
            sa.ForeignKey("distributors.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("category", sa.String(128), nullable=False),
        sa.Column("discount_percent", sa.Numeric(precision=5, scale=2), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("distributor_id", "category", name="category_discounts_distributor_category_unique"),
    )

    op.create_table(
        "carts",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )

    op.create_table(
        "cart_items",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("cart_id", sa.Integer(), sa.ForeignKey("carts.id", ondelete="CASCADE"), nullable=False),
        sa.Column("product_id", sa.Integer(), sa.ForeignKey("products.id", ondelete="CASCADE"), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("cart_id", "product_id", name="cart_items_cart_product_unique"),
    )

    op.create_table(
        "orders",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("payment_ref", sa.String(255), nullable=True, unique=True),
        sa.Column("payment_method", sa.String(32), nullable=True),
        sa.Column("status", sa.String(32), nullable=False, server_default="pending"),
        sa.Column("total_price", sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column("recipient_name", sa.String(255), nullable=True),
        sa.Column("recipient_phone", sa.String(64), nullable=True),
        sa.Column("shipping_postal_code", sa.String(32), nullable=True),
        sa.Column("shipping_address1", sa.Text(), nullable=True),
        sa.Column("shipping_address2", sa.Text(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_orders_user_id", "orders", ["user_id"])

    op.create_table(
        "order_items",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("order_id", sa.Integer(), sa.ForeignKey("orders.id", ondelete="CASCADE"), nullable=False),
        sa.Column("product_id", sa.Integer(), sa.ForeignKey("products.id"), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("price", sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column("base_price", sa.Numeric(precision=12, scale=2), nullable=False),
    )
    op.create_index("ix_order_items_order_id", "order_items", ["order_id"])


def downgrade() -> None:
    op.drop_index("ix_order_items_order_id", table_name="order_items")
    op.drop_table("order_items")
    op.drop_index("ix_orders_user_id", table_name="orders")
    op.drop_table("orders")
    op.drop_table("cart_items")
    op.drop_table("carts")
    op.drop_table("category_discounts")
    op.drop_index("ix_distributor_prices_distributor_id", table_name="distributor_prices")
    op.drop_table("distributor_prices")
    op.drop_index("ix_products_category", table_name="products")
    op.drop_table("products")
    op.drop_index("ix_users_distributor_id", table_name="users")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")
    op.drop_index("ix_distributor_domains_domain", table_name="distributor_domains")
    op.drop_index("ix_distributor_domains_distributor_id", table_name="distributor_domains")
    op.drop_table("distributor_domains")
    op.drop_index("ix_distributors_email_domain", table_name="distributors")
    op.drop_table("distributors")
