"""Pydantic schemas for distributors and their custom domains."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class DistributorCreate(BaseModel):
    name: str = Field(..., min_length=1)
    email_domain: str = Field(..., min_length=1, description="e.g. 'chromet.com'; users @chromet.com are linked")
    logo_url: Optional[str] = None
    brand_color: Optional[str] = None
    default_discount_percent: Optional[Decimal] = Field(None, ge=0, le=100)


class DistributorUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    email_domain: Optional[str] = Field(None, min_length=1)
    logo_url: Optional[str] = None
    brand_color: Optional[str] = None


class DistributorResponse(BaseModel):
    id: int
    name: str
    email_domain: str
    logo_url: Optional[str] = None
    brand_color: Optional[str] = None
    default_discount_percent: Optional[Decimal] = None
    users_count: Optional[int] = None
    prices_count: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class DomainCreate(BaseModel):
    domain: str = Field(..., min_length=1)


class DomainResponse(BaseModel):
    id: int
    distributor_id: int
    domain: str
    status: str
    last_checked_at: Optional[datetime] = None
    details: Optional[Dict[str, Any]] = None
    created_at: Optional[datetime] = None
