"""Quote requests: public submission plus the admin pricing and conversion flow."""

from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Path, Query, status

from storefront.db_quotes import QuoteStatus, get_quote, list_quotes
from storefront.deps import get_current_admin, get_current_user, get_optional_user, get_stats_cache
from storefront.errors import NotFound, ValidationError
from storefront.schemas.quotes import QuoteConvertResponse, QuoteRequestCreate, QuoteResponse, QuoteUpdate
from storefront.services.quotes import change_quote, convert_quote, request_quote
from storefront.services.statistics import refresh_after_write
from storefront.services.stats_cache import StatsCache

router = APIRouter(prefix="/api/v1", tags=["quotes"])


@router.post("/quote-requests", response_model=QuoteResponse, status_code=status.HTTP_201_CREATED)
def create_quote_request_endpoint(
    body: QuoteRequestCreate,
    background_tasks: BackgroundTasks,
    user: Optional[dict] = Depends(get_optional_user),
    cache: StatsCache = Depends(get_stats_cache),
):
    """Request a quote; guests may submit too, signed-in users are linked."""
    quote = request_quote(
        product_id=body.product_id,
        quantity=body.quantity,
        contact_email=body.email,
        user=user,
        location=body.location,
        po_number=body.po_number,
        notes=body.notes,
    )
    refresh_after_write(cache, background_tasks)
    return quote


@router.get("/quote-requests", response_model=List[QuoteResponse])
def list_my_quotes_endpoint(
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    current_user: dict = Depends(get_current_user),
):
    return list_quotes(requester_id=current_user["id"], limit=limit, offset=offset)


@router.get("/admin/quotes", response_model=List[QuoteResponse])
def list_quotes_endpoint(
    status_filter: Optional[str] = Query(None, alias="status"),
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    admin: dict = Depends(get_current_admin),
):
    if status_filter is not None and not QuoteStatus.is_valid(status_filter):
        raise ValidationError("Invalid status")
    return list_quotes(status=status_filter, limit=limit, offset=offset)


@router.get("/admin/quotes/{quote_id}", response_model=QuoteResponse)
def get_quote_endpoint(
    quote_id: int = Path(...),
    admin: dict = Depends(get_current_admin),
):
    quote = get_quote(quote_id)
    if not quote:
        raise NotFound("Quote not found")
    return quote


@router.patch("/admin/quotes/{quote_id}", response_model=QuoteResponse)
def update_quote_endpoint(
    body: QuoteUpdate,
    background_tasks: BackgroundTasks,
    quote_id: int = Path(...),
    admin: dict = Depends(get_current_admin),
    cache: StatsCache = Depends(get_stats_cache),
):
    """Change status (and optionally the quoted unit price); appended to the quote history."""
    quote = change_quote(quote_id, body.status, changed_by=admin["email"], note=body.note, price=body.price)
    refresh_after_write(cache, background_tasks)
    return quote


# Conversion takes stock and may wait on row locks, so it runs in the threadpool.
@router.post("/admin/quotes/{quote_id}/convert", response_model=QuoteConvertResponse)
def convert_quote_endpoint(
    background_tasks: BackgroundTasks,
    quote_id: int = Path(...),
    admin: dict = Depends(get_current_admin),
    cache: StatsCache = Depends(get_stats_cache),
):
    result = convert_quote(quote_id, changed_by=admin["email"])
    refresh_after_write(cache, background_tasks)
    return result
