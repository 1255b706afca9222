"""Dependencies for FastAPI endpoints."""

from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from storefront.core.security import decode_token
from storefront.db_users import UserRole, get_user_by_id
from storefront.errors import Forbidden, Unauthorized
from storefront.services.pricing import PricingContext
from storefront.services.stats_cache import StatsCache, build_stats_cache
from storefront.services.tenant import resolve_tenant, tenant_host_from_headers

security = HTTPBearer(auto_error=False)


def _user_from_token(token: str) -> Optional[dict]:
    payload = decode_token(token, token_type="access")
    if payload is None:
        return None
    user_id = payload.get("user_id")
    if user_id is None:
        return None
    user = get_user_by_id(int(user_id))
    if user is None or not user.get("is_active"):
        return None
    return user


def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Optional[dict]:
    """Current user when a valid bearer token is sent, else None (guest)."""
    if credentials is None:
        return None
    return _user_from_token(credentials.credentials)


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> dict:
    """Get current user from JWT access token; 401 without a valid one."""
    if credentials is None:
        raise Unauthorized("Unauthorized")
    user = _user_from_token(credentials.credentials)
    if user is None:
        raise Unauthorized("Could not validate credentials")
    return user


def get_current_admin(current_user: dict = Depends(get_current_user)) -> dict:
    if current_user.get("role") != UserRole.ADMIN:
        raise Forbidden("Forbidden")
    return current_user


def get_tenant(request: Request) -> Optional[dict]:
    """Distributor serving the request's host (X-Tenant-Host, else Host)."""
    return resolve_tenant(tenant_host_from_headers(request.headers))


def get_pricing_context(
    user: Optional[dict] = Depends(get_optional_user),
    tenant: Optional[dict] = Depends(get_tenant),
) -> PricingContext:
    return PricingContext.for_user(user, tenant)


def get_user_pricing_context(
    user: dict = Depends(get_current_user),
    tenant: Optional[dict] = Depends(get_tenant),
) -> PricingContext:
    return PricingContext.for_user(user, tenant)


def get_stats_cache(request: Request) -> StatsCache:
    cache = getattr(request.app.state, "stats_cache", None)
    if cache is None:
        cache = build_stats_cache()
        request.app.state.stats_cache = cache
    return cache
