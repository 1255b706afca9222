"""Pydantic schemas for admin user management."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class AdminUserUpdate(BaseModel):
    """Fields an admin may change; omitted fields are left alone.

    `distributor_id: null` detaches the user from their distributor.
    """
    role: Optional[str] = None  # validated against UserRole in router
    name: Optional[str] = None
    distributor_id: Optional[int] = None
    is_active: Optional[bool] = None


class AdminUserResponse(BaseModel):
    """User as seen by admins (no password)."""
    id: int
    email: str
    name: Optional[str] = None
    role: str
    distributor_id: Optional[int] = None
    distributor_name: Optional[str] = None
    is_active: bool
    orders_count: int = 0
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class AdminUserListResponse(BaseModel):
    users: List[AdminUserResponse]
    total: int = Field(..., ge=0)
