"""Pydantic schemas for quote requests."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, EmailStr, Field

from storefront.schemas.orders import OrderResponse


class QuoteRequestCreate(BaseModel):
    product_id: int
    quantity: int = Field(..., ge=1)
    email: EmailStr = Field(..., description="Where the quote is sent")
    location: Optional[str] = Field(None, max_length=255)
    po_number: Optional[str] = Field(None, max_length=64)
    notes: Optional[str] = None


class QuoteUpdate(BaseModel):
    status: str  # validated against QuoteStatus in the service
    note: Optional[str] = None
    price: Optional[Decimal] = Field(None, ge=0, description="Quoted unit price")


class QuoteResponse(BaseModel):
    id: int
    product_id: int
    product_name: Optional[str] = None
    product_sku: Optional[str] = None
    requester_id: Optional[int] = None
    requester_email: Optional[str] = None
    distributor_id: Optional[int] = None
    contact_email: str
    location: Optional[str] = None
    po_number: Optional[str] = None
    notes: Optional[str] = None
    quantity: int
    price: Optional[Decimal] = None
    status: str
    history: List[Dict[str, Any]] = Field(default_factory=list)
    order_id: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class QuoteConvertResponse(BaseModel):
    quote: QuoteResponse
    order: OrderResponse
