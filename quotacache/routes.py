"""Admin routes for inspecting and freeing cache storage."""

from logging import getLogger
from typing import Any

from fastapi import APIRouter
from fastapi import FastAPI

from quotacache.store import CacheStore

logger = getLogger(__name__)


def add_routes(app: FastAPI, store: CacheStore, prefix: str = "") -> None:
    """Register cache admin routes on a FastAPI application.

    Routes:
        GET {prefix}/cache-usage: entry counts per protection class and the storage critical flag
        POST {prefix}/purge-secondary: remove all purgeable entries to free space

    Args:
        app: The FastAPI application
        store: The cache store to expose
        prefix: Path prefix for the routes, e.g. "/admin/cache"
    """
    router = APIRouter(prefix=prefix, tags=["cache"])

    @router.get("/cache-usage")
    def cache_usage() -> dict[str, Any]:
        return store.usage().to_dict()

    @router.post("/purge-secondary")
    def purge_secondary() -> dict[str, Any]:
        removed = store.purge_secondary()
        logger.info("Secondary cache purge requested, %d entries removed", removed)
        return {
            "removed": removed,
            "storage_critical": store.storage_critical,
        }

    app.include_router(router)
