"""Cart router. Every response carries freshly resolved prices."""

from fastapi import APIRouter, Depends, Path, status

from storefront.deps import get_current_user, get_user_pricing_context
from storefront.schemas.cart import CartItemAdd, CartItemUpdate, CartLine, CartResponse
from storefront.services import cart as cart_service
from storefront.services.pricing import PricingContext

router = APIRouter(prefix="/api/v1/cart", tags=["cart"])


@router.get("", response_model=CartResponse)
async def get_cart_endpoint(
    current_user: dict = Depends(get_current_user),
    context: PricingContext = Depends(get_user_pricing_context),
):
    return cart_service.get_cart(current_user["id"], context)


@router.post("", response_model=CartLine, status_code=status.HTTP_201_CREATED)
async def add_to_cart_endpoint(
    body: CartItemAdd,
    current_user: dict = Depends(get_current_user),
    context: PricingContext = Depends(get_user_pricing_context),
):
    return cart_service.add_item(current_user["id"], body.product_id, body.quantity, context)


@router.put("/{product_id}", response_model=CartLine)
async def update_cart_item_endpoint(
    body: CartItemUpdate,
    product_id: int = Path(...),
    current_user: dict = Depends(get_current_user),
    context: PricingContext = Depends(get_user_pricing_context),
):
    return cart_service.update_item(current_user["id"], product_id, body.quantity, context)


@router.delete("/{product_id}")
async def remove_cart_item_endpoint(
    product_id: int = Path(...),
    current_user: dict = Depends(get_current_user),
):
    cart_service.remove_item(current_user["id"], product_id)
    return {"success": True}
