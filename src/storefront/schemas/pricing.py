"""Pydantic schemas for distributor pricing rules."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, model_validator


class DiscountTierIn(BaseModel):
    min_qty: int = Field(..., ge=0)
    max_qty: Optional[int] = Field(None, ge=0, description="Inclusive upper bound; null means unbounded")
    price: Decimal = Field(..., ge=0)

    @model_validator(mode="after")
    def validate_bounds(self) -> "DiscountTierIn":
        if self.max_qty is not None and self.max_qty < self.min_qty:
            raise ValueError("max_qty must be >= min_qty")
        return self


class DiscountTierOut(BaseModel):
    min_qty: int
    max_qty: Optional[int] = None
    price: Decimal


class DistributorPriceUpsert(BaseModel):
    custom_price: Decimal = Field(..., ge=0)
    discount_tiers: Optional[List[DiscountTierIn]] = Field(
        None,
        description="Quantity tiers; the first tier containing the quantity wins",
    )


class DistributorPriceResponse(BaseModel):
    id: int
    product_id: int
    distributor_id: int
    custom_price: Decimal
    discount_tiers: Optional[List[DiscountTierOut]] = None
    product: Optional[Dict[str, Any]] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class CategoryDiscountIn(BaseModel):
    category: str = Field(..., min_length=1)
    discount_percent: Decimal = Field(..., ge=0, le=100)


class CategoryDiscountResponse(BaseModel):
    id: int
    distributor_id: int
    category: str
    discount_percent: Decimal
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class DefaultDiscountIn(BaseModel):
    default_discount_percent: Optional[Decimal] = Field(
        None,
        ge=0,
        le=100,
        description="Null clears the default discount",
    )
