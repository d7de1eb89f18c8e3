"""
Channel Watch Job

Checks the notification-only channels from the monitoring config and
tells the operator about uploads it has not seen before. Nothing is
added to the catalog.

The first time a channel is seen its current uploads are recorded
without a message, so adding a channel does not flood the operator.
"""

import asyncio
from typing import List, Optional

from ..config import get_settings
from ..core.exceptions import PersistenceError, QuotaExceededError
from ..core.logging import get_logger
from ..models.ingestion import NewUpload, WatchRunResult
from ..services.json_store import MonitoringConfigStore, ProgressStore
from ..services.notifier import TelegramNotifier, get_notifier
from ..services.youtube_api import YouTubeAPIService, get_youtube_service, watch_url

logger = get_logger(__name__)


class ChannelWatchJob:
    """Reports new uploads on notification-only channels."""

    def __init__(
        self,
        youtube: Optional[YouTubeAPIService] = None,
        seen_store: Optional[ProgressStore] = None,
        config_store: Optional[MonitoringConfigStore] = None,
        notifier: Optional[TelegramNotifier] = None,
        batch_size: Optional[int] = None,
        operator_id: Optional[str] = None,
    ):
        settings = get_settings()
        self.youtube = youtube or get_youtube_service()
        self.seen_store = seen_store or ProgressStore(settings.watch_progress_path)
        self.config_store = config_store or MonitoringConfigStore()
        self.notifier = notifier or get_notifier()
        self.batch_size = batch_size or settings.ingestion_batch_size
        self.operator_id = operator_id or settings.admin_telegram_user_id

    async def run(self, trigger: str = "scheduled") -> WatchRunResult:
        """
        Check every notification channel once.

        Sends at most one message, and only when something new was found
        or a channel could not be checked.
        """
        result = WatchRunResult(trigger=trigger)

        config = self.config_store.load()
        if not config.enabled or not config.notification_channels:
            logger.debug("channel_watch_skipped", enabled=config.enabled)
            return result

        for channel_url in config.notification_channels:
            result.channels_checked += 1
            try:
                await self._check_channel(result, channel_url)
            except QuotaExceededError as e:
                result.errors.append(e.message)
                break
            except Exception as e:
                logger.error("channel_watch_failed", channel_url=channel_url, error=str(e))
                result.errors.append(f"{channel_url}: {e}")

        if result.new_uploads or result.errors:
            result.message = self.summary(result)
            result.notified = await self.notifier.notify(self.operator_id, result.message)

        logger.info(
            "channel_watch_completed",
            trigger=trigger,
            channels=result.channels_checked,
            new_uploads=len(result.new_uploads),
            errors=len(result.errors),
        )
        return result

    async def _check_channel(self, result: WatchRunResult, channel_url: str):
        channel_id = await self.youtube.resolve_channel_id(channel_url)
        if not channel_id:
            result.errors.append(f"Could not resolve channel ID for {channel_url}.")
            return

        playlist_id = await self.youtube.get_uploads_playlist_id(channel_id)
        if not playlist_id:
            result.errors.append(f"Could not find uploads playlist for {channel_url}.")
            return

        # Uploads are newest first, so the front page is all that matters
        page = await self.youtube.list_playlist_page(playlist_id, None, self.batch_size)
        if page is None:
            result.errors.append(f"Could not list uploads for {channel_url}.")
            return

        seen = self.seen_store.load(channel_id)
        first_check = not seen.processed_video_ids
        fresh = [video_id for video_id in page.video_ids if not seen.is_processed(video_id)]
        if not fresh:
            return

        if not first_check:
            details = await self.youtube.get_video_details(fresh) or []
            titles = {
                video.get("id"): (video.get("snippet") or {}).get("title", "")
                for video in details
            }
            result.new_uploads.extend(
                NewUpload(channel_url=channel_url, video_id=video_id, title=titles.get(video_id, ""))
                for video_id in fresh
            )

        for video_id in fresh:
            seen.mark_processed(video_id)

        try:
            self.seen_store.save(channel_id, seen)
        except PersistenceError as e:
            result.errors.append(e.message)
            return

        logger.info(
            "channel_watch_checked",
            channel_id=channel_id,
            fresh=len(fresh),
            baseline=first_check,
        )

    @staticmethod
    def summary(result: WatchRunResult) -> str:
        """Operator message for one watch pass."""
        lines: List[str] = []
        for upload in result.new_uploads:
            lines.append(
                f"New upload on {upload.channel_url}: {upload.title or upload.video_id}\n"
                f"{watch_url(upload.video_id)}"
            )
        lines.extend(f"Error: {error}" for error in result.errors)
        return "\n".join(lines)


async def run_watch_job(trigger: str = "scheduled") -> WatchRunResult:
    """Entry point for the scheduler."""
    job = ChannelWatchJob()
    return await job.run(trigger=trigger)


if __name__ == "__main__":
    # Manual run for testing
    asyncio.run(run_watch_job(trigger="cli"))
