import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy import text
from starlette.exceptions import HTTPException as StarletteHTTPException

from storefront.db import engine
from storefront.errors import StorefrontError
from storefront.routers import (
    admin_distributors,
    admin_orders,
    admin_pricing,
    admin_statistics,
    admin_users,
    auth,
    cart,
    orders,
    products,
    quotes,
)
from storefront.services.stats_cache import build_stats_cache

logger = logging.getLogger(__name__)

app = FastAPI(title="Storefront Pricing")
app.state.stats_cache = build_stats_cache()

app.include_router(auth.router)
app.include_router(products.router)
app.include_router(cart.router)
app.include_router(orders.router)
app.include_router(admin_distributors.router)
app.include_router(admin_pricing.router)
app.include_router(admin_orders.router)
app.include_router(admin_statistics.router)
app.include_router(admin_users.router)
app.include_router(quotes.router)


@app.exception_handler(StorefrontError)
async def storefront_error_handler(request: Request, exc: StorefrontError):
    if exc.status_code >= 500:
        logger.warning(f"{request.method} {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)}, headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    first = exc.errors()[0] if exc.errors() else {}
    location = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
    message = first.get("msg", "Invalid request")
    return JSONResponse(status_code=400, content={"error": f"{location}: {message}" if location else message})


@app.get("/api/v1/health")
def health():
    with engine.connect() as conn:
        conn.execute(text("SELECT 1"))
    return {"status": "ok"}
