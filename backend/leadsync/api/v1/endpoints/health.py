"""
Health Check Endpoint
Provides health status for Docker health checks and monitoring
"""
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, status

from leadsync.api.v1.dependencies import get_sync_worker
from leadsync.utils.time_utils import utc_now
from leadsync.workers.sync_worker import SyncWorker

router = APIRouter(tags=["health"])


@router.get("/health", status_code=status.HTTP_200_OK)
async def health_check(
    sync_worker: Optional[SyncWorker] = Depends(get_sync_worker),
) -> Dict[str, Any]:
    """
    Health check endpoint for Docker and monitoring systems.

    Returns:
        Dict with status, timestamp and background sync stats
    """
    return {
        "status": "healthy",
        "timestamp": utc_now().isoformat(),
        "service": "leadsync-backend",
        "sync_worker": sync_worker.get_stats() if sync_worker else None,
    }
