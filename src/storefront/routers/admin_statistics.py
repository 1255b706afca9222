"""Admin statistics router, served from the stats cache."""

from fastapi import APIRouter, Depends

from storefront.deps import get_current_admin, get_stats_cache
from storefront.services.statistics import compute_statistics
from storefront.services.stats_cache import StatsCache

router = APIRouter(prefix="/api/v1/admin/stats", tags=["admin-statistics"])


@router.get("")
async def get_stats_endpoint(
    admin: dict = Depends(get_current_admin),
    cache: StatsCache = Depends(get_stats_cache),
):
    return cache.get(compute_statistics)


@router.get("/cache")
async def get_stats_cache_info_endpoint(
    admin: dict = Depends(get_current_admin),
    cache: StatsCache = Depends(get_stats_cache),
):
    return cache.info()


@router.post("/cache/invalidate")
async def invalidate_stats_cache_endpoint(
    admin: dict = Depends(get_current_admin),
    cache: StatsCache = Depends(get_stats_cache),
):
    cache.invalidate()
    return {"success": True}
