"""
Background Job Scheduler

Manages the channel timers using APScheduler.
- Ingestion: one batch from the monitored channel every
  `checkIntervalMinutes` (from monitoringConfig.json)
- Watch: new uploads on notification-only channels, same interval

Jobs are only registered while automation is enabled; call refresh()
after the monitoring config changes.
"""

from datetime import datetime, timezone
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from ..core.logging import get_logger
from ..models.ingestion import IngestionRunResult, WatchRunResult
from ..models.progress import MonitoringConfig
from .json_store import MonitoringConfigStore

logger = get_logger(__name__)

# Global scheduler instance
_scheduler: Optional[AsyncIOScheduler] = None


def get_scheduler() -> AsyncIOScheduler:
    """Get or create the scheduler instance."""
    global _scheduler
    if _scheduler is None:
        _scheduler = AsyncIOScheduler()
    return _scheduler


class SchedulerService:
    """
    Manages background job scheduling.

    Jobs:
    1. Channel Ingestion (every checkIntervalMinutes)
       - Resolves the first configured channel
       - Processes the next batch of uploads into movies.json
       - Sends the operator a summary
    2. Channel Watch (every checkIntervalMinutes, when notificationChannels is set)
       - Reports new uploads on notification-only channels
    """

    def __init__(
        self,
        scheduler: Optional[AsyncIOScheduler] = None,
        config_store: Optional[MonitoringConfigStore] = None,
    ):
        self.scheduler = scheduler or get_scheduler()
        self.config_store = config_store or MonitoringConfigStore()
        self._ingestion_job_id = "channel_ingestion"
        self._watch_job_id = "channel_watch"
        self._interval_minutes: Optional[int] = None

    async def _run_ingestion(self, channel_url: Optional[str] = None, trigger: str = "scheduled") -> Optional[IngestionRunResult]:
        """Execute the ingestion job."""
        from ..jobs.ingestion import run_ingestion_job

        logger.info("scheduler_job_started", job="ingestion", trigger=trigger)
        try:
            result = await run_ingestion_job(channel_url=channel_url, trigger=trigger)
            logger.info("scheduler_job_completed", job="ingestion", outcome=result.outcome)
            return result
        except Exception as e:
            logger.error("scheduler_job_failed", job="ingestion", error=str(e))
            return None

    async def _run_watch(self, trigger: str = "scheduled") -> Optional[WatchRunResult]:
        """Execute the notification-channel watch job."""
        from ..jobs.watch import run_watch_job

        logger.info("scheduler_job_started", job="watch", trigger=trigger)
        try:
            result = await run_watch_job(trigger=trigger)
            logger.info("scheduler_job_completed", job="watch", new_uploads=len(result.new_uploads))
            return result
        except Exception as e:
            logger.error("scheduler_job_failed", job="watch", error=str(e))
            return None

    def _remove_job(self, job_id: str):
        # A stopped scheduler queues add_job calls without applying replace_existing
        while self.scheduler.get_job(job_id):
            self.scheduler.remove_job(job_id)

    def _schedule(self, job_id: str, func, name: str, minutes: int):
        self._remove_job(job_id)
        self.scheduler.add_job(
            func,
            trigger=IntervalTrigger(minutes=minutes),
            id=job_id,
            name=name,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )

    def setup_jobs(self, config: Optional[MonitoringConfig] = None):
        """Add, reschedule or remove the jobs to match the monitoring config."""
        config = config or self.config_store.load()

        if not config.enabled:
            self._remove_job(self._ingestion_job_id)
            self._remove_job(self._watch_job_id)
            self._interval_minutes = None
            logger.info("scheduler_jobs_configured", ingestion_schedule="disabled")
            return

        minutes = config.check_interval_minutes
        self._schedule(self._ingestion_job_id, self._run_ingestion, "Channel Ingestion", minutes)
        if config.notification_channels:
            self._schedule(self._watch_job_id, self._run_watch, "Channel Watch", minutes)
        else:
            self._remove_job(self._watch_job_id)
        self._interval_minutes = minutes

        logger.info(
            "scheduler_jobs_configured",
            ingestion_schedule=f"every {minutes} min",
            channels=len(config.auto_upload_channels),
            notification_channels=len(config.notification_channels),
        )

    def refresh(self, config: Optional[MonitoringConfig] = None):
        """Re-apply the monitoring config to a running scheduler."""
        self.setup_jobs(config)
        return self.get_job_status()

    def start(self):
        """Start the scheduler."""
        if not self.scheduler.running:
            self.setup_jobs()
            self.scheduler.start()
            logger.info("scheduler_started")

    def stop(self):
        """Stop the scheduler gracefully."""
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("scheduler_stopped")

    def get_job_status(self) -> dict:
        """Get status of all scheduled jobs."""
        jobs = []
        for job in self.scheduler.get_jobs():
            jobs.append({
                "id": job.id,
                "name": job.name,
                "next_run": job.next_run_time.isoformat() if getattr(job, "next_run_time", None) else None,
                "pending": job.pending,
            })

        return {
            "running": self.scheduler.running,
            "interval_minutes": self._interval_minutes,
            "jobs": jobs,
            "current_time": datetime.now(timezone.utc).isoformat(),
        }

    async def trigger_ingestion_now(self, channel_url: Optional[str] = None) -> Optional[IngestionRunResult]:
        """Manually trigger the ingestion job."""
        logger.info("manual_trigger", job="ingestion", channel_url=channel_url)
        return await self._run_ingestion(channel_url=channel_url, trigger="manual")

    async def trigger_watch_now(self) -> Optional[WatchRunResult]:
        """Manually check the notification-only channels."""
        logger.info("manual_trigger", job="watch")
        return await self._run_watch(trigger="manual")


# Singleton instance
_scheduler_service: Optional[SchedulerService] = None


def get_scheduler_service() -> SchedulerService:
    """Get singleton SchedulerService instance."""
    global _scheduler_service
    if _scheduler_service is None:
        _scheduler_service = SchedulerService()
    return _scheduler_service
