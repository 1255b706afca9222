"""Admin router for orders."""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, BackgroundTasks, Depends, Path, Query

from storefront.db_orders import get_order, list_orders
from storefront.deps import get_current_admin, get_stats_cache
from storefront.errors import NotFound
from storefront.schemas.orders import OrderResponse, OrderStatusUpdate
from storefront.services.orders import change_order_status
from storefront.services.statistics import refresh_after_write
from storefront.services.stats_cache import StatsCache

router = APIRouter(prefix="/api/v1/admin/orders", tags=["admin-orders"])


@router.get("", response_model=List[OrderResponse])
async def list_all_orders_endpoint(
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    admin: dict = Depends(get_current_admin),
):
    return list_orders(limit=limit, offset=offset)


@router.get("/{order_id}", response_model=OrderResponse)
async def get_order_endpoint(
    order_id: int = Path(...),
    admin: dict = Depends(get_current_admin),
):
    order = get_order(order_id)
    if not order:
        raise NotFound("Order not found")
    return order


@router.patch("/{order_id}", response_model=OrderResponse)
async def update_order_status_endpoint(
    body: OrderStatusUpdate,
    background_tasks: BackgroundTasks,
    order_id: int = Path(...),
    admin: dict = Depends(get_current_admin),
    cache: StatsCache = Depends(get_stats_cache),
):
    order = change_order_status(order_id, body.status)
    refresh_after_write(cache, background_tasks)
    return order
