"""Admin endpoints for user management (admin only)."""

import logging
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Path, Query

from storefront.db_distributors import get_distributor
from storefront.db_users import (
    UserRole,
    count_admins,
    count_users,
    delete_user,
    get_admin_user,
    list_users,
    update_user,
)
from storefront.deps import get_current_admin, get_stats_cache
from storefront.errors import ConflictError, NotFound, ValidationError
from storefront.schemas.admin_users import AdminUserListResponse, AdminUserResponse, AdminUserUpdate
from storefront.services.statistics import refresh_after_write
from storefront.services.stats_cache import StatsCache

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/admin/users", tags=["admin-users"])


def _is_last_admin(user: dict) -> bool:
    return user["role"] == UserRole.ADMIN and user["is_active"] and count_admins() <= 1


@router.get("", response_model=AdminUserListResponse, summary="List users")
def list_users_endpoint(
    limit: int = Query(200, ge=1, le=500, description="Maximum number of users to return"),
    offset: int = Query(0, ge=0, description="Number of users to skip"),
    role: Optional[str] = Query(None, description="Only users with this role"),
    q: Optional[str] = Query(None, description="Search in email or name"),
    admin: dict = Depends(get_current_admin),
) -> AdminUserListResponse:
    if role is not None and not UserRole.is_valid(role):
        raise ValidationError("Invalid role")
    users = list_users(limit=limit, offset=offset, role=role, q=q)
    return AdminUserListResponse(
        users=[AdminUserResponse(**u) for u in users],
        total=count_users(role=role, q=q),
    )


@router.get("/{user_id}", response_model=AdminUserResponse)
def get_user_endpoint(
    user_id: int = Path(...),
    admin: dict = Depends(get_current_admin),
):
    user = get_admin_user(user_id)
    if not user:
        raise NotFound("User not found")
    return user


@router.patch("/{user_id}", response_model=AdminUserResponse, summary="Change role, name or distributor")
def update_user_endpoint(
    body: AdminUserUpdate,
    background_tasks: BackgroundTasks,
    user_id: int = Path(...),
    admin: dict = Depends(get_current_admin),
    cache: StatsCache = Depends(get_stats_cache),
):
    """Partial update. Changing role or affiliation changes the pricing the user sees."""
    user = get_admin_user(user_id)
    if not user:
        raise NotFound("User not found")

    fields = body.model_dump(exclude_unset=True)
    if "role" in fields:
        if not UserRole.is_valid(fields["role"]):
            raise ValidationError("Invalid role")
        if fields["role"] != UserRole.ADMIN and _is_last_admin(user):
            raise ConflictError("Cannot remove the last admin")
    if fields.get("is_active") is False and _is_last_admin(user):
        raise ConflictError("Cannot deactivate the last admin")
    if "is_active" in fields and fields["is_active"] is None:
        raise ValidationError("is_active cannot be null")
    if fields.get("distributor_id") is not None and not get_distributor(fields["distributor_id"]):
        raise NotFound("Distributor not found")

    updated = update_user(user_id, fields)
    if not updated:
        raise NotFound("User not found")
    logger.info(f"admin_users: admin id={admin['id']} updated user id={user_id} fields={sorted(fields)}")
    refresh_after_write(cache, background_tasks)
    return updated


@router.delete("/{user_id}", summary="Delete a user")
def delete_user_endpoint(
    background_tasks: BackgroundTasks,
    user_id: int = Path(...),
    admin: dict = Depends(get_current_admin),
    cache: StatsCache = Depends(get_stats_cache),
) -> dict:
    """Delete a user. Users with orders, the caller and the last admin are kept."""
    user = get_admin_user(user_id)
    if not user:
        raise NotFound("User not found")
    if user_id == admin["id"]:
        raise ValidationError("You cannot delete your own account")
    if _is_last_admin(user):
        raise ConflictError("Cannot delete the last admin")
    if user["orders_count"]:
        raise ConflictError("User has orders and cannot be deleted")

    if not delete_user(user_id):
        raise NotFound("User not found")
    logger.info(f"admin_users: admin id={admin['id']} deleted user id={user_id} email={user['email']}")
    refresh_after_write(cache, background_tasks)
    return {"deleted": True}
