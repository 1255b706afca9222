"""Celery task keeping the shared admin statistics cache warm."""

from __future__ import annotations

import logging
from typing import Any, Dict

from storefront.celery_app import celery_app
from storefront.services.statistics import compute_statistics
from storefront.services.stats_cache import build_stats_cache

logger = logging.getLogger(__name__)


@celery_app.task(name="storefront.tasks.stats.warm_stats_cache")
def warm_stats_cache() -> Dict[str, Any]:
    """Recompute statistics into the configured cache store.

    Only useful with STATS_CACHE_BACKEND=redis; a memory store lives and dies
    with the worker process.
    """
    cache = build_stats_cache()
    if cache.store.name == "memory":
        logger.warning("warm_stats_cache: memory backend configured, web processes will not see this entry")
    cache.warm(compute_statistics)
    info = cache.info()
    logger.info(f"warm_stats_cache: done computed_at={info['computed_at']}")
    return info
