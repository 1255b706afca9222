"""Admin router for per-product distributor overrides (custom price + tiers)."""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, BackgroundTasks, Depends, Path

from storefront.db_distributors import get_distributor
from storefront.db_pricing_rules import (
    delete_distributor_price,
    get_distributor_price,
    list_distributor_prices,
    upsert_distributor_price,
)
from storefront.db_products import get_product
from storefront.deps import get_current_admin, get_stats_cache
from storefront.errors import NotFound
from storefront.schemas.pricing import DistributorPriceResponse, DistributorPriceUpsert
from storefront.services.pricing import validate_tiers
from storefront.services.statistics import refresh_after_write
from storefront.services.stats_cache import StatsCache

router = APIRouter(prefix="/api/v1/admin/b2b-pricing", tags=["admin-pricing"])


@router.get("/{distributor_id}", response_model=List[DistributorPriceResponse])
async def list_distributor_prices_endpoint(
    distributor_id: int = Path(...),
    admin: dict = Depends(get_current_admin),
):
    if not get_distributor(distributor_id):
        raise NotFound("Distributor not found")
    return list_distributor_prices(distributor_id)


@router.get("/{distributor_id}/{product_id}", response_model=DistributorPriceResponse)
async def get_distributor_price_endpoint(
    distributor_id: int = Path(...),
    product_id: int = Path(...),
    admin: dict = Depends(get_current_admin),
):
    price = get_distributor_price(product_id, distributor_id)
    if not price:
        raise NotFound("B2B price not found")
    return price


@router.put("/{distributor_id}/{product_id}", response_model=DistributorPriceResponse)
async def upsert_distributor_price_endpoint(
    body: DistributorPriceUpsert,
    background_tasks: BackgroundTasks,
    distributor_id: int = Path(...),
    product_id: int = Path(...),
    admin: dict = Depends(get_current_admin),
    cache: StatsCache = Depends(get_stats_cache),
):
    """Create or replace the override for (distributor, product)."""
    if not get_distributor(distributor_id):
        raise NotFound("Distributor not found")
    if not get_product(product_id):
        raise NotFound("Product not found")

    tiers = validate_tiers([t.model_dump() for t in body.discount_tiers or []])
    price = upsert_distributor_price(
        product_id,
        distributor_id,
        body.custom_price,
        [t.to_dict() for t in tiers],
    )
    refresh_after_write(cache, background_tasks)
    return price


@router.delete("/{distributor_id}/{product_id}")
async def delete_distributor_price_endpoint(
    background_tasks: BackgroundTasks,
    distributor_id: int = Path(...),
    product_id: int = Path(...),
    admin: dict = Depends(get_current_admin),
    cache: StatsCache = Depends(get_stats_cache),
):
    if not delete_distributor_price(product_id, distributor_id):
        raise NotFound("B2B price not found")
    refresh_after_write(cache, background_tasks)
    return {"success": True}
