"""
SkyFuel Battery Ledger - System API Endpoints
Version: 1.0.0

Changelog:
v1.0.0 (2026-10-17): Host info and store health check
"""

from fastapi import APIRouter, Depends
import os
import logging

from ..config import settings
from ..database import get_db_path
from ..errors import StoreError
from ..services.battery_store import BatteryStore
from .deps import get_store

router = APIRouter(prefix="/system", tags=["system"])
logger = logging.getLogger(__name__)


@router.get("/info")
async def system_info(store: BatteryStore = Depends(get_store)):
    """Get system information"""
    import platform
    import psutil

    db_path = get_db_path(store.db_path)
    return {
        "platform": platform.platform(),
        "python_version": platform.python_version(),
        "cpu_count": psutil.cpu_count(),
        "memory_total_gb": round(psutil.virtual_memory().total / (1024**3), 2),
        "memory_available_gb": round(psutil.virtual_memory().available / (1024**3), 2),
        "process_rss_mb": round(psutil.Process().memory_info().rss / (1024**2), 1),
        "database_path": db_path,
        "database_size_kb": round(os.path.getsize(db_path) / 1024, 1) if os.path.exists(db_path) else 0,
        "app_version": settings.APP_VERSION
    }


@router.get("/health")
async def system_health(store: BatteryStore = Depends(get_store)):
    """Store reachability and live query count"""
    health = {
        "overall": "healthy",
        "services": {}
    }

    try:
        batteries = await store.snapshot()
        health["services"]["store"] = {"status": "healthy", "battery_count": len(batteries)}
    except StoreError as e:
        logger.error(f"Store health check failed: {e.message}")
        health["services"]["store"] = {"status": "error", "error": e.message}
        health["overall"] = "degraded"

    health["services"]["change_feed"] = {
        "status": "healthy",
        "live_queries": store.feed.subscriber_count,
    }
    return health
