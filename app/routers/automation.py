"""
Automation API Router

Operator endpoints for the monitoring config and per-channel progress.
"""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from ..core.exceptions import NotFoundError
from ..core.logging import get_logger
from ..core.security import verify_admin_access
from ..models.progress import MonitoringConfig
from ..services.json_store import MonitoringConfigStore, ProgressStore
from ..services.scheduler import get_scheduler_service
from ..services.youtube_api import get_youtube_service

logger = get_logger(__name__)

router = APIRouter(prefix="/automation", tags=["automation"])


@router.get("/config")
async def get_monitoring_config(admin: dict = Depends(verify_admin_access)):
    """Current automation settings."""
    config = MonitoringConfigStore().load()
    return config.model_dump(by_alias=True)


@router.put("/config")
async def update_monitoring_config(
    config: MonitoringConfig,
    admin: dict = Depends(verify_admin_access),
):
    """
    Update the automation settings and reschedule the jobs.

    Only the keys present in the body change; the rest of the stored
    config is kept.

    Raises:
        PersistenceError if the config file cannot be written
    """
    config = MonitoringConfigStore().update(config)
    logger.info(
        "monitoring_config_updated",
        enabled=config.enabled,
        interval_minutes=config.check_interval_minutes,
        channels=len(config.auto_upload_channels),
        notification_channels=len(config.notification_channels),
    )

    get_scheduler_service().refresh(config)

    return {
        "success": True,
        "config": config.model_dump(by_alias=True),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.get("/progress/{channel_id}")
async def get_channel_progress(channel_id: str, admin: dict = Depends(verify_admin_access)):
    progress = ProgressStore().load(channel_id)
    return {
        "channelId": channel_id,
        "lastPageToken": progress.last_page_token,
        "processedCount": len(progress.processed_video_ids),
        "processedVideoIds": progress.processed_video_ids,
    }


@router.delete("/progress/{channel_id}/cursor")
async def reset_channel_cursor(channel_id: str, admin: dict = Depends(verify_admin_access)):
    """
    Restart pagination for a channel from the front of its uploads.

    Processed video ids are kept, so nothing is ingested twice.
    """
    store = ProgressStore()
    progress = store.load(channel_id)
    if progress.last_page_token is None and not progress.processed_video_ids:
        raise NotFoundError("Channel progress", channel_id)

    progress.last_page_token = None
    store.save(channel_id, progress)
    logger.info("channel_cursor_reset", channel_id=channel_id)

    return {
        "success": True,
        "message": f"Cursor reset for {channel_id}",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.get("/quota")
async def get_quota_status(admin: dict = Depends(verify_admin_access)):
    """Today's YouTube Data API unit usage."""
    quota_manager = get_youtube_service().quota_manager
    return await quota_manager.get_all_quotas()
