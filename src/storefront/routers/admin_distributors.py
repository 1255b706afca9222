"""Admin router for distributors: CRUD, discounts and custom domains."""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, BackgroundTasks, Depends, Path, Query, status

from storefront.db_distributors import (
    add_domain,
    create_distributor,
    delete_distributor,
    delete_domain,
    get_distributor,
    list_distributors,
    list_domains,
    set_default_discount,
    update_distributor,
)
from storefront.db_pricing_rules import (
    delete_category_discount,
    list_category_discounts,
    upsert_category_discount,
)
from storefront.deps import get_current_admin, get_stats_cache
from storefront.errors import NotFound
from storefront.schemas.distributors import (
    DistributorCreate,
    DistributorResponse,
    DistributorUpdate,
    DomainCreate,
    DomainResponse,
)
from storefront.schemas.pricing import CategoryDiscountIn, CategoryDiscountResponse, DefaultDiscountIn
from storefront.services.domains import verify_domain
from storefront.services.statistics import refresh_after_write
from storefront.services.stats_cache import StatsCache

router = APIRouter(prefix="/api/v1/admin/distributors", tags=["admin-distributors"])


def _require_distributor(distributor_id: int) -> dict:
    distributor = get_distributor(distributor_id)
    if not distributor:
        raise NotFound("Distributor not found")
    return distributor


@router.get("", response_model=List[DistributorResponse])
async def list_distributors_endpoint(admin: dict = Depends(get_current_admin)):
    return list_distributors()


@router.post("", response_model=DistributorResponse, status_code=status.HTTP_201_CREATED)
async def create_distributor_endpoint(
    body: DistributorCreate,
    background_tasks: BackgroundTasks,
    admin: dict = Depends(get_current_admin),
    cache: StatsCache = Depends(get_stats_cache),
):
    """Create a distributor; existing users of its email domain are linked to it."""
    distributor = create_distributor(
        name=body.name,
        email_domain=body.email_domain,
        logo_url=body.logo_url,
        brand_color=body.brand_color,
        default_discount_percent=body.default_discount_percent,
    )
    refresh_after_write(cache, background_tasks)
    return distributor


@router.get("/{distributor_id}", response_model=DistributorResponse)
async def get_distributor_endpoint(
    distributor_id: int = Path(...),
    admin: dict = Depends(get_current_admin),
):
    return _require_distributor(distributor_id)


@router.put("/{distributor_id}", response_model=DistributorResponse)
async def update_distributor_endpoint(
    body: DistributorUpdate,
    background_tasks: BackgroundTasks,
    distributor_id: int = Path(...),
    admin: dict = Depends(get_current_admin),
    cache: StatsCache = Depends(get_stats_cache),
):
    current = _require_distributor(distributor_id)
    fields = body.model_dump(exclude_unset=True)
    distributor = update_distributor(
        distributor_id,
        name=fields.get("name") or current["name"],
        email_domain=fields.get("email_domain") or current["email_domain"],
        logo_url=fields.get("logo_url", current["logo_url"]),
        brand_color=fields.get("brand_color", current["brand_color"]),
    )
    if not distributor:
        raise NotFound("Distributor not found")
    refresh_after_write(cache, background_tasks)
    return distributor


@router.delete("/{distributor_id}")
async def delete_distributor_endpoint(
    background_tasks: BackgroundTasks,
    distributor_id: int = Path(...),
    admin: dict = Depends(get_current_admin),
    cache: StatsCache = Depends(get_stats_cache),
):
    """Delete a distributor with its pricing rules; refused while users are affiliated."""
    if not delete_distributor(distributor_id):
        raise NotFound("Distributor not found")
    refresh_after_write(cache, background_tasks)
    return {"success": True}


@router.put("/{distributor_id}/default-discount", response_model=DistributorResponse)
async def set_default_discount_endpoint(
    body: DefaultDiscountIn,
    background_tasks: BackgroundTasks,
    distributor_id: int = Path(...),
    admin: dict = Depends(get_current_admin),
    cache: StatsCache = Depends(get_stats_cache),
):
    distributor = set_default_discount(distributor_id, body.default_discount_percent)
    if not distributor:
        raise NotFound("Distributor not found")
    refresh_after_write(cache, background_tasks)
    return distributor


# Category discounts


@router.get("/{distributor_id}/category-discounts", response_model=List[CategoryDiscountResponse])
async def list_category_discounts_endpoint(
    distributor_id: int = Path(...),
    admin: dict = Depends(get_current_admin),
):
    _require_distributor(distributor_id)
    return list_category_discounts(distributor_id)


@router.post("/{distributor_id}/category-discounts", response_model=CategoryDiscountResponse)
async def upsert_category_discount_endpoint(
    body: CategoryDiscountIn,
    background_tasks: BackgroundTasks,
    distributor_id: int = Path(...),
    admin: dict = Depends(get_current_admin),
    cache: StatsCache = Depends(get_stats_cache),
):
    """Insert or update the discount for (distributor, category)."""
    _require_distributor(distributor_id)
    discount = upsert_category_discount(distributor_id, body.category, body.discount_percent)
    refresh_after_write(cache, background_tasks)
    return discount


@router.delete("/{distributor_id}/category-discounts")
async def delete_category_discount_endpoint(
    background_tasks: BackgroundTasks,
    distributor_id: int = Path(...),
    category: str = Query(..., min_length=1),
    admin: dict = Depends(get_current_admin),
    cache: StatsCache = Depends(get_stats_cache),
):
    if not delete_category_discount(distributor_id, category):
        raise NotFound("Category discount not found")
    refresh_after_write(cache, background_tasks)
    return {"success": True}


# Domains


@router.get("/{distributor_id}/domains", response_model=List[DomainResponse])
async def list_domains_endpoint(
    distributor_id: int = Path(...),
    admin: dict = Depends(get_current_admin),
):
    _require_distributor(distributor_id)
    return list_domains(distributor_id)


@router.post("/{distributor_id}/domains", response_model=DomainResponse, status_code=status.HTTP_201_CREATED)
async def add_domain_endpoint(
    body: DomainCreate,
    distributor_id: int = Path(...),
    admin: dict = Depends(get_current_admin),
):
    _require_distributor(distributor_id)
    return add_domain(distributor_id, body.domain)


@router.delete("/{distributor_id}/domains/{domain_id}")
async def delete_domain_endpoint(
    distributor_id: int = Path(...),
    domain_id: int = Path(...),
    admin: dict = Depends(get_current_admin),
):
    if not delete_domain(distributor_id, domain_id):
        raise NotFound("Domain not found")
    return {"success": True}


@router.post("/{distributor_id}/domains/{domain_id}/verify", response_model=DomainResponse)
async def verify_domain_endpoint(
    distributor_id: int = Path(...),
    domain_id: int = Path(...),
    admin: dict = Depends(get_current_admin),
):
    """Resolve the domain in DNS and mark it verified or failed."""
    return await verify_domain(distributor_id, domain_id)
