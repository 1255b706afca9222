"""Pydantic schemas for catalog products."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field, model_validator

from storefront.schemas.pricing import DiscountTierOut


class ProductCreate(BaseModel):
    name: str = Field(..., min_length=1)
    base_price: Decimal = Field(..., ge=0)
    category: Optional[str] = None
    stock: int = Field(100, ge=0)
    sku: Optional[str] = None
    description: Optional[str] = None


class ProductUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    base_price: Optional[Decimal] = Field(None, ge=0)
    category: Optional[str] = None
    stock: Optional[int] = Field(None, ge=0)
    sku: Optional[str] = None
    description: Optional[str] = None

    @model_validator(mode="after")
    def reject_null_required_fields(self) -> "ProductUpdate":
        # Omitted fields are left alone; an explicit null cannot clear a NOT NULL column
        for field in ("name", "base_price", "stock"):
            if field in self.model_fields_set and getattr(self, field) is None:
                raise ValueError(f"{field} cannot be null")
        return self


class DiscountTiersView(BaseModel):
    custom_price: Decimal
    tiers: List[DiscountTierOut] = Field(default_factory=list)


class ProductResponse(BaseModel):
    id: int
    sku: Optional[str] = None
    name: str
    description: Optional[str] = None
    category: str
    stock: int
    base_price: Decimal = Field(..., description="Catalog list price")
    price: Decimal = Field(..., description="Unit price resolved for the viewer and quantity")
    price_source: str
    discount_tiers: Optional[DiscountTiersView] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
