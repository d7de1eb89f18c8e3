"""
Scheduler API Router

Endpoints for monitoring and manually triggering the ingestion job.
Admin operations are authenticated with the X-API-Key header.
"""

from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from ..config import get_settings
from ..core.logging import get_logger
from ..core.security import verify_admin_access
from ..services.scheduler import get_scheduler_service

logger = get_logger(__name__)

router = APIRouter(prefix="/scheduler", tags=["scheduler"])
settings = get_settings()

# Rate limiter
limiter = Limiter(key_func=get_remote_address)


@router.get("/status")
async def get_scheduler_status(admin: dict = Depends(verify_admin_access)):
    """
    Get current scheduler status and job information.

    Returns:
        - Whether scheduler is running
        - The ingestion interval, if scheduled
        - List of jobs with next run times
    """
    service = get_scheduler_service()
    return service.get_job_status()


@router.post("/trigger/ingestion")
@limiter.limit(f"{settings.rate_limit_per_minute}/minute")
async def trigger_ingestion(
    request: Request,
    channel_url: Optional[str] = Query(None, description="Channel to process instead of the first configured one"),
    admin: dict = Depends(verify_admin_access),
):
    """
    Manually run one ingestion batch and wait for its summary.
    """
    logger.info("manual_ingestion_trigger", admin=admin, channel_url=channel_url)

    service = get_scheduler_service()
    result = await service.trigger_ingestion_now(channel_url)

    if result is None:
        return {
            "success": False,
            "message": "Ingestion job failed to run",
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    return {
        "success": result.success,
        "message": result.message,
        "result": result.model_dump(mode="json", by_alias=True),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.post("/trigger/watch")
@limiter.limit(f"{settings.rate_limit_per_minute}/minute")
async def trigger_watch(request: Request, admin: dict = Depends(verify_admin_access)):
    """Check the notification-only channels now."""
    logger.info("manual_watch_trigger", admin=admin)

    result = await get_scheduler_service().trigger_watch_now()
    if result is None:
        return {
            "success": False,
            "message": "Watch job failed to run",
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    return {
        "success": True,
        "message": result.message,
        "result": result.model_dump(mode="json", by_alias=True),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.post("/start")
async def start_scheduler(admin: dict = Depends(verify_admin_access)):
    """Start the background scheduler."""
    service = get_scheduler_service()
    service.start()
    return {"success": True, "message": "Scheduler started"}


@router.post("/stop")
async def stop_scheduler(admin: dict = Depends(verify_admin_access)):
    """Stop the background scheduler."""
    service = get_scheduler_service()
    service.stop()
    return {"success": True, "message": "Scheduler stopped"}


@router.post("/refresh")
async def refresh_scheduler(admin: dict = Depends(verify_admin_access)):
    """Re-read monitoringConfig.json and reschedule the ingestion job."""
    service = get_scheduler_service()
    status = service.refresh()
    return {"success": True, "message": "Scheduler refreshed", "status": status}
