"""Common Celery app for Beat and Worker."""

import importlib
import pkgutil
from typing import List

from celery import Celery
from celery.schedules import crontab

from storefront import settings

celery_app = Celery(
    "storefront",
    broker=settings.REDIS_URL,
    backend=settings.REDIS_URL,
)

# Celery Beat schedule
celery_app.conf.beat_schedule = {
    "warm-stats-cache-every-5-minutes": {
        "task": "storefront.tasks.stats.warm_stats_cache",
        "schedule": crontab(minute="*/5"),
        "options": {"queue": "celery"},
    },
}

celery_app.conf.timezone = "UTC"


def _import_all_task_modules() -> List[str]:
    """Import all modules under `storefront.tasks.*` so Celery registers task decorators."""
    imported: List[str] = []
    try:
        import storefront.tasks as tasks_pkg
    except Exception as e:
        raise RuntimeError(
            "Celery startup failed: cannot import task package 'storefront.tasks'"
        ) from e

    try:
        for module_info in pkgutil.walk_packages(
            tasks_pkg.__path__,
            prefix=f"{tasks_pkg.__name__}.",
        ):
            importlib.import_module(module_info.name)
            imported.append(module_info.name)
    except Exception as e:
        raise RuntimeError(
            "Celery startup failed: error while importing task modules under 'storefront.tasks.*'"
        ) from e
    return imported


# Auto-import tasks for both worker and beat processes.
_import_all_task_modules()
