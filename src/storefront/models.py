from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.sql import func

from .db import Base


class Distributor(Base):
    __tablename__ = "distributors"
    id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False)
    email_domain = Column(String(255), unique=True, nullable=False, index=True)
    logo_url = Column(Text)
    brand_color = Column(String(32))
    default_discount_percent = Column(Numeric(5, 2))
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class DistributorDomain(Base):
    __tablename__ = "distributor_domains"
    __table_args__ = (UniqueConstraint("distributor_id", "domain", name="distributor_domains_distributor_domain_unique"),)
    id = Column(Integer, primary_key=True)
    distributor_id = Column(Integer, ForeignKey("distributors.id", ondelete="CASCADE"), nullable=False, index=True)
    domain = Column(String(255), nullable=False, index=True)
    status = Column(String(20), nullable=False, server_default="pending")
    last_checked_at = Column(DateTime(timezone=True))
    details = Column(JSON)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class User(Base):
    __tablename__ = "users"
    id = Column(Integer, primary_key=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    name = Column(String(255))
    hashed_password = Column(String(255), nullable=False)
    role = Column(String(20), nullable=False, server_default="customer")
    distributor_id = Column(Integer, ForeignKey("distributors.id"), index=True)
    is_active = Column(Boolean, nullable=False, server_default="1")
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class Product(Base):
    __tablename__ = "products"
    __table_args__ = (CheckConstraint("stock >= 0", name="products_stock_non_negative"),)
    id = Column(Integer, primary_key=True)
    sku = Column(String(64), unique=True)
    name = Column(String(255), nullable=False)
    description = Column(Text)
    base_price = Column(Numeric(12, 2), nullable=False)
    category = Column(String(128), nullable=False, index=True)
    stock = Column(Integer, nullable=False, server_default="0")
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class DistributorPrice(Base):
    __tablename__ = "distributor_prices"
    __table_args__ = (UniqueConstraint("product_id", "distributor_id", name="distributor_prices_product_distributor_unique"),)
    id = Column(Integer, primary_key=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False)
    distributor_id = Column(Integer, ForeignKey("distributors.id", ondelete="CASCADE"), nullable=False, index=True)
    custom_price = Column(Numeric(12, 2), nullable=False)
    discount_tiers = Column(JSON)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class CategoryDiscount(Base):
    __tablename__ = "category_discounts"
    __table_args__ = (UniqueConstraint("distributor_id", "category", name="category_discounts_distributor_category_unique"),)
    id = Column(Integer, primary_key=True)
    distributor_id = Column(Integer, ForeignKey("distributors.id", ondelete="CASCADE"), nullable=False)
    category = Column(String(128), nullable=False)
    discount_percent = Column(Numeric(5, 2), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class Cart(Base):
    __tablename__ = "carts"
    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class CartItem(Base):
    __tablename__ = "cart_items"
    __table_args__ = (UniqueConstraint("cart_id", "product_id", name="cart_items_cart_product_unique"),)
    id = Column(Integer, primary_key=True)
    cart_id = Column(Integer, ForeignKey("carts.id", ondelete="CASCADE"), nullable=False)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False)
    quantity = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class Order(Base):
    __tablename__ = "orders"
    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    payment_ref = Column(String(255), unique=True)
    payment_method = Column(String(32))
    status = Column(String(32), nullable=False, server_default="pending")
    total_price = Column(Numeric(12, 2), nullable=False)
    recipient_name = Column(String(255))
    recipient_phone = Column(String(64))
    shipping_postal_code = Column(String(32))
    shipping_address1 = Column(Text)
    shipping_address2 = Column(Text)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class OrderItem(Base):
    __tablename__ = "order_items"
    id = Column(Integer, primary_key=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False)
    quantity = Column(Integer, nullable=False)
    price = Column(Numeric(12, 2), nullable=False)
    base_price = Column(Numeric(12, 2), nullable=False)


class QuoteRequest(Base):
    __tablename__ = "quote_requests"
    __table_args__ = (CheckConstraint("quantity >= 1", name="quote_requests_quantity_positive"),)
    id = Column(Integer, primary_key=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)
    requester_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), index=True)
    distributor_id = Column(Integer, ForeignKey("distributors.id", ondelete="SET NULL"))
    contact_email = Column(String(255), nullable=False)
    location = Column(String(255))
    po_number = Column(String(64))
    notes = Column(Text)
    quantity = Column(Integer, nullable=False)
    price = Column(Numeric(12, 2))
    status = Column(String(20), nullable=False, server_default="requested", index=True)
    history = Column(JSON)
    order_id = Column(Integer, ForeignKey("orders.id"), unique=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
