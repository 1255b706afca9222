"""Catalog router: product views priced for the caller, plus admin edits."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Path, Query, status

from storefront.db_products import create_product, delete_product, get_product, list_products, update_product
from storefront.deps import get_current_admin, get_pricing_context, get_stats_cache
from storefront.errors import NotFound
from storefront.schemas.products import ProductCreate, ProductResponse, ProductUpdate
from storefront.services.pricing import PricingContext, get_discount_tiers, quote_for_product
from storefront.services.statistics import refresh_after_write
from storefront.services.stats_cache import StatsCache

router = APIRouter(prefix="/api/v1", tags=["products"])


def _priced(product: Dict[str, Any], context: PricingContext, quantity: int) -> ProductResponse:
    quote = quote_for_product(product, context, quantity)
    return ProductResponse(
        **product,
        price=quote.price,
        price_source=quote.source,
        discount_tiers=get_discount_tiers(product["id"], context),
    )


@router.get("/products", response_model=List[ProductResponse])
async def list_products_endpoint(
    category: Optional[str] = Query(None),
    q: Optional[str] = Query(None, description="Name substring"),
    quantity: int = Query(1, ge=1, description="Quantity used for tier pricing"),
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    context: PricingContext = Depends(get_pricing_context),
):
    """List products with the price the caller would pay."""
    products = list_products(category=category, q=q, limit=limit, offset=offset)
    return [_priced(p, context, quantity) for p in products]


@router.get("/products/{product_id}", response_model=ProductResponse)
async def get_product_endpoint(
    product_id: int = Path(...),
    quantity: int = Query(1, ge=1),
    context: PricingContext = Depends(get_pricing_context),
):
    product = get_product(product_id)
    if not product:
        raise NotFound("Product not found")
    return _priced(product, context, quantity)


@router.post("/admin/products", response_model=ProductResponse, status_code=status.HTTP_201_CREATED)
async def create_product_endpoint(
    body: ProductCreate,
    background_tasks: BackgroundTasks,
    admin: dict = Depends(get_current_admin),
    cache: StatsCache = Depends(get_stats_cache),
):
    product = create_product(
        name=body.name,
        base_price=body.base_price,
        category=body.category,
        stock=body.stock,
        sku=body.sku,
        description=body.description,
    )
    refresh_after_write(cache, background_tasks)
    return _priced(product, PricingContext.guest(), 1)


@router.patch("/admin/products/{product_id}", response_model=ProductResponse)
async def update_product_endpoint(
    body: ProductUpdate,
    background_tasks: BackgroundTasks,
    product_id: int = Path(...),
    admin: dict = Depends(get_current_admin),
    cache: StatsCache = Depends(get_stats_cache),
):
    product = update_product(product_id, body.model_dump(exclude_unset=True))
    if not product:
        raise NotFound("Product not found")
    refresh_after_write(cache, background_tasks)
    return _priced(product, PricingContext.guest(), 1)


@router.delete("/admin/products/{product_id}")
async def delete_product_endpoint(
    background_tasks: BackgroundTasks,
    product_id: int = Path(...),
    admin: dict = Depends(get_current_admin),
    cache: StatsCache = Depends(get_stats_cache),
):
    if not delete_product(product_id):
        raise NotFound("Product not found")
    refresh_after_write(cache, background_tasks)
    return {"success": True}
