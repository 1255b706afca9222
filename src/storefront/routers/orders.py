"""Orders router: checkout, order history and the payment-success webhook."""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, BackgroundTasks, Depends, Path, Query, status

from storefront.db_orders import list_orders
from storefront.deps import get_current_user, get_stats_cache, get_user_pricing_context
from storefront.schemas.orders import OrderCreate, OrderResponse, PaymentSuccessRequest
from storefront.services.orders import confirm_payment, get_user_order, place_order
from storefront.services.pricing import PricingContext
from storefront.services.statistics import refresh_after_write
from storefront.services.stats_cache import StatsCache

router = APIRouter(prefix="/api/v1", tags=["orders"])


# Order placement may wait on row locks, so these run in the threadpool.
@router.post("/orders", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
def create_order_endpoint(
    body: OrderCreate,
    background_tasks: BackgroundTasks,
    current_user: dict = Depends(get_current_user),
    context: PricingContext = Depends(get_user_pricing_context),
    cache: StatsCache = Depends(get_stats_cache),
):
    """Place an order; prices are resolved server-side and snapshotted."""
    order = place_order(
        current_user["id"],
        [item.model_dump() for item in body.items],
        shipping=body.shipping.model_dump(),
        context=context,
        payment_ref=body.payment_ref,
        payment_method=body.payment_method,
    )
    refresh_after_write(cache, background_tasks)
    return order


@router.post("/webhooks/payment-success", response_model=OrderResponse)
def payment_success_endpoint(
    body: PaymentSuccessRequest,
    background_tasks: BackgroundTasks,
    current_user: dict = Depends(get_current_user),
    context: PricingContext = Depends(get_user_pricing_context),
    cache: StatsCache = Depends(get_stats_cache),
):
    """Idempotent on payment_intent_id: repeated calls return the same order."""
    order = confirm_payment(current_user["id"], body.payment_intent_id, context)
    refresh_after_write(cache, background_tasks)
    return order


@router.get("/orders", response_model=List[OrderResponse])
async def list_my_orders_endpoint(
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    current_user: dict = Depends(get_current_user),
):
    return list_orders(user_id=current_user["id"], limit=limit, offset=offset)


@router.get("/orders/{order_id}", response_model=OrderResponse)
async def get_my_order_endpoint(
    order_id: int = Path(...),
    current_user: dict = Depends(get_current_user),
):
    return get_user_order(current_user["id"], order_id)
