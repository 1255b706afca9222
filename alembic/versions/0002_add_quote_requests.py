"""add_quote_requests

Revision ID: 0002_quote_requests
Revises: 0001_initial
Create Date: 2026-10-25 09:41:37.102553

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '0002_quote_requests'
down_revision: Union[str, None] = '0001_initial'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "quote_requests",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("product_id", sa.Integer(), sa.ForeignKey("products.id", ondelete="CASCADE"), nullable=False),
        sa.Column("requester_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("distributor_id", sa.Integer(), sa.ForeignKey("distributors.id", ondelete="SET NULL"), nullable=True),
        sa.Column("contact_email", sa.String(255), nullable=False),
        sa.Column("location", sa.String(255), nullable=True),
        sa.Column("po_number", sa.String(64), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("price", sa.Numeric(precision=12, scale=2), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="requested"),
        sa.Column("history", sa.JSON(), nullable=True),
        sa.Column("order_id", sa.Integer(), sa.ForeignKey("orders.id"), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("quantity >= 1", name="quote_requests_quantity_positive"),
        sa.UniqueConstraint("order_id", name="quote_requests_order_id_key"),
    )
    op.create_index("ix_quote_requests_product_id", "quote_requests", ["product_id"])
    op.create_index("ix_quote_requests_requester_id", "quote_requests", ["requester_id"])
    op.create_index("ix_quote_requests_status", "quote_requests", ["status"])


def downgrade() -> None:
    op.drop_index("ix_quote_requests_status", table_name="quote_requests")
    op.drop_index("ix_quote_requests_requester_id", table_name="quote_requests")
    op.drop_index("ix_quote_requests_product_id", table_name="quote_requests")
    op.drop_table("quote_requests")
