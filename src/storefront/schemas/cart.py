"""Pydantic schemas for the shopping cart."""

from __future__ import annotations

from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field


class CartItemAdd(BaseModel):
    product_id: int
    quantity: int = Field(1, ge=1)


class CartItemUpdate(BaseModel):
    quantity: int = Field(..., ge=0, description="0 removes the line")


class CartLine(BaseModel):
    product_id: int
    quantity: int
    name: Optional[str] = None
    sku: Optional[str] = None
    stock: Optional[int] = None
    price: Optional[Decimal] = None
    base_price: Optional[Decimal] = None
    price_source: Optional[str] = None
    line_total: Optional[Decimal] = None
    removed: bool = False


class CartResponse(BaseModel):
    id: int
    items: List[CartLine]
    subtotal: Decimal
