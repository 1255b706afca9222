"""Pydantic schemas for orders and the payment webhook."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field


class OrderItemIn(BaseModel):
    product_id: int
    quantity: int = Field(..., ge=1)
    price: Optional[Decimal] = Field(
        None,
        description="Informational only; the server resolves the charged price",
    )


class Shipping(BaseModel):
    name: str = ""
    phone: str = ""
    postal_code: str = ""
    address1: str = ""
    address2: str = ""


class OrderCreate(BaseModel):
    items: List[OrderItemIn] = Field(..., min_length=1)
    shipping: Shipping = Field(default_factory=Shipping)
    payment_ref: Optional[str] = Field(None, description="Payment intent id from an async provider")
    payment_method: Optional[str] = Field(None, description="'card' or 'invoice'")


class OrderItemResponse(BaseModel):
    id: int
    product_id: int
    product_name: Optional[str] = None
    quantity: int
    price: Decimal
    base_price: Decimal


class OrderResponse(BaseModel):
    id: int
    user_id: int
    payment_ref: Optional[str] = None
    payment_method: Optional[str] = None
    status: str
    total_price: Decimal
    shipping: Shipping
    items: List[OrderItemResponse]
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class OrderStatusUpdate(BaseModel):
    status: str


class PaymentSuccessRequest(BaseModel):
    payment_intent_id: str = Field(..., min_length=1)
