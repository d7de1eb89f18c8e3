"""
Channel Ingestion Job

Processes the next batch of uploads from one monitored YouTube channel:
resolve the channel, page through its uploads playlist with a persisted
cursor, materialize full-length movies into movies.json and report one
summary to the operator.

Runs on the APScheduler interval from the monitoring config, or on demand.

States per run:
    IDLE -> RESOLVING_CHANNEL -> FETCHING_BATCH -> PROCESSING_CANDIDATES
         -> PERSISTING_RESULTS -> IDLE
Every early exit also lands in IDLE. No exception escapes run().
"""

import asyncio
from datetime import datetime, timezone
from typing import Dict, List, Optional, Set

from ..config import get_settings
from ..core.exceptions import PersistenceError, QuotaExceededError
from ..core.logging import bind_run_context, clear_run_context, get_logger
from ..models.ingestion import (
    IngestionRunResult,
    IngestionState,
    RunOutcome,
    SkippedVideo,
    SkipReason,
)
from ..models.movie import MovieRecord
from ..models.progress import ChannelProgress
from ..services.enrichment import get_enrichment_service
from ..services.json_store import CatalogStore, MonitoringConfigStore, ProgressStore
from ..services.materializer import MaterializeResult, MovieMaterializer
from ..services.notifier import TelegramNotifier, get_notifier
from ..services.poster_storage import get_poster_storage
from ..services.youtube_api import PlaylistPage, YouTubeAPIService, get_youtube_service

logger = get_logger(__name__)

# Channel IDs with a run in flight in this process
_channels_in_flight: Set[str] = set()


def channels_in_flight() -> Set[str]:
    return set(_channels_in_flight)


class ChannelIngestionJob:
    """
    One-channel-per-run ingestion orchestrator.

    Collaborators are injected so tests can swap any of them; the
    defaults are the process-wide service singletons.
    """

    def __init__(
        self,
        youtube: Optional[YouTubeAPIService] = None,
        materializer: Optional[MovieMaterializer] = None,
        catalog: Optional[CatalogStore] = None,
        progress_store: Optional[ProgressStore] = None,
        config_store: Optional[MonitoringConfigStore] = None,
        notifier: Optional[TelegramNotifier] = None,
        batch_size: Optional[int] = None,
        operator_id: Optional[str] = None,
    ):
        settings = get_settings()
        self.youtube = youtube or get_youtube_service()
        self.materializer = materializer or MovieMaterializer(
            get_enrichment_service(), get_poster_storage()
        )
        self.catalog = catalog or CatalogStore()
        self.progress_store = progress_store or ProgressStore()
        self.config_store = config_store or MonitoringConfigStore()
        self.notifier = notifier or get_notifier()
        self.batch_size = batch_size or settings.ingestion_batch_size
        self.operator_id = operator_id or settings.admin_telegram_user_id

    @staticmethod
    def _enter(result: IngestionRunResult, state: IngestionState):
        result.states.append(state)
        logger.debug("ingestion_state", state=state.value, channel_id=result.channel_id)

    async def run(
        self,
        channel_url: Optional[str] = None,
        trigger: str = "scheduled",
    ) -> IngestionRunResult:
        """
        Run one ingestion pass.

        Args:
            channel_url: Process this channel instead of the first configured one
            trigger: "scheduled", "manual" or "cli" (recorded on the result)

        Returns:
            IngestionRunResult; its message is what the operator was sent
        """
        result = IngestionRunResult(trigger=trigger)
        self._enter(result, IngestionState.IDLE)

        config = self.config_store.load()
        if not config.enabled:
            logger.info("ingestion_skipped", reason="automation_disabled", trigger=trigger)
            return self._finish(result, RunOutcome.SKIPPED, "Automation is disabled.")

        channel_url = channel_url or (config.auto_upload_channels[0] if config.auto_upload_channels else None)
        if not channel_url:
            logger.info("ingestion_skipped", reason="no_channels_configured", trigger=trigger)
            return self._finish(result, RunOutcome.SKIPPED, "No channels are configured.")

        result.channel_url = channel_url
        bind_run_context(run_trigger=trigger, channel_url=channel_url)
        try:
            logger.info("ingestion_job_started")
            print(f"[Ingestion] Processing next batch for {channel_url} ({trigger})")

            try:
                await self._run_channel(result, channel_url)
            except QuotaExceededError as e:
                result.errors.append(e.message)
                self._finish(
                    result,
                    RunOutcome.QUOTA_EXCEEDED,
                    f"YouTube API quota exhausted while processing {channel_url}. Will retry on a later run.",
                )
            except Exception as e:
                logger.error("ingestion_job_failed", channel_url=channel_url, error=str(e))
                result.errors.append(str(e))
                self._finish(result, RunOutcome.FAILED, f"An error occurred while processing {channel_url}: {e}")

            await self.notifier.notify(self.operator_id, result.message)

            duration = (result.finished_at - result.started_at).total_seconds() if result.finished_at else 0.0
            logger.info(
                "ingestion_job_completed",
                channel_id=result.channel_id,
                outcome=RunOutcome(result.outcome).value,
                added=len(result.added_titles),
                skipped=len(result.skipped),
                has_more=result.has_more,
                duration_seconds=duration,
            )
            print(f"[Ingestion] Done: {RunOutcome(result.outcome).value}, {len(result.added_titles)} added")
        finally:
            clear_run_context()
        return result

    def _finish(self, result: IngestionRunResult, outcome: RunOutcome, message: str) -> IngestionRunResult:
        result.outcome = outcome
        result.message = message
        result.finished_at = datetime.now(timezone.utc)
        if result.final_state != IngestionState.IDLE:
            self._enter(result, IngestionState.IDLE)
        return result

    async def _run_channel(self, result: IngestionRunResult, channel_url: str):
        self._enter(result, IngestionState.RESOLVING_CHANNEL)

        channel_id = await self.youtube.resolve_channel_id(channel_url)
        if not channel_id:
            logger.warning("channel_not_resolved", channel_url=channel_url)
            self._finish(result, RunOutcome.CHANNEL_NOT_FOUND, f"Could not resolve channel ID for {channel_url}. Skipping.")
            return

        result.channel_id = channel_id
        bind_run_context(channel_id=channel_id)

        if channel_id in _channels_in_flight:
            logger.warning("ingestion_already_running", channel_id=channel_id)
            self._finish(
                result,
                RunOutcome.ALREADY_RUNNING,
                f"A batch for {channel_url} is already being processed. This trigger was ignored.",
            )
            return

        _channels_in_flight.add(channel_id)
        try:
            await self._run_resolved(result, channel_url, channel_id)
        finally:
            _channels_in_flight.discard(channel_id)

    async def _run_resolved(self, result: IngestionRunResult, channel_url: str, channel_id: str):
        self._enter(result, IngestionState.FETCHING_BATCH)
        progress = self.progress_store.load(channel_id)

        playlist_id = await self.youtube.get_uploads_playlist_id(channel_id)
        if not playlist_id:
            self._finish(result, RunOutcome.LOOKUP_FAILED, f"Could not find uploads playlist for {channel_url}. Skipping.")
            return

        page = await self.youtube.list_playlist_page(playlist_id, progress.last_page_token, self.batch_size)
        if page is None:
            self._finish(
                result,
                RunOutcome.LOOKUP_FAILED,
                f"Could not list uploads for {channel_url}. Will retry from the same position next run.",
            )
            return

        if page.is_empty:
            await self._drain(result, channel_url, channel_id, progress)
            return

        pending = [video_id for video_id in page.video_ids if not progress.is_processed(video_id)]
        details = await self.youtube.get_video_details(pending)
        if details is None:
            self._finish(
                result,
                RunOutcome.LOOKUP_FAILED,
                f"Could not fetch video details for {channel_url}. Will retry from the same position next run.",
            )
            return

        logger.info(
            "ingestion_batch_fetched",
            channel_id=channel_id,
            items=len(page.video_ids),
            pending=len(pending),
            has_more=page.next_page_token is not None,
        )

        self._enter(result, IngestionState.PROCESSING_CANDIDATES)
        records = await self._process_candidates(result, pending, details, progress)

        self._enter(result, IngestionState.PERSISTING_RESULTS)
        self._persist(result, channel_url, channel_id, progress, page, records)

    async def _drain(self, result: IngestionRunResult, channel_url: str, channel_id: str, progress: ChannelProgress):
        """Zero items at the cursor: restart pagination from the front next time."""
        progress.last_page_token = None
        try:
            self.progress_store.save(channel_id, progress)
        except PersistenceError as e:
            result.errors.append(e.message)
            self._finish(result, RunOutcome.FAILED, f"Reached the end of {channel_url} but could not save progress: {e.message}")
            return

        logger.info("channel_drained", channel_id=channel_id)
        self._finish(
            result,
            RunOutcome.DRAINED,
            f"Finished processing all available videos for channel: {channel_url}. Restarting from the top next time.",
        )

    async def _process_candidates(
        self,
        result: IngestionRunResult,
        pending: List[str],
        details: List[dict],
        progress: ChannelProgress,
    ) -> List[MovieRecord]:
        """Evaluate candidates sequentially in playlist order; every one ends up processed."""
        details_by_id: Dict[str, dict] = {video.get("id"): video for video in details if video.get("id")}

        catalog = self.catalog.load()
        known_titles = {str(movie.get("title", "")).lower() for movie in catalog if movie.get("title")}
        taken_ids = {str(movie["id"]) for movie in catalog if movie.get("id")}

        records: List[MovieRecord] = []
        for video_id in pending:
            video = details_by_id.get(video_id)

            if video is None:
                outcome = MaterializeResult(
                    video_id=video_id,
                    skipped=SkippedVideo(video_id=video_id, reason=SkipReason.UNAVAILABLE),
                )
            else:
                try:
                    outcome = await self.materializer.materialize(video, known_titles, taken_ids)
                except Exception as e:
                    logger.error("candidate_failed", video_id=video_id, error=str(e))
                    outcome = MaterializeResult(
                        video_id=video_id,
                        skipped=SkippedVideo(
                            video_id=video_id,
                            title=(video.get("snippet") or {}).get("title", ""),
                            reason=SkipReason.ERROR,
                            detail=str(e),
                        ),
                    )

            if outcome.record is not None:
                records.append(outcome.record)
                known_titles.add(outcome.record.title.lower())
                taken_ids.add(outcome.record.id)
            elif outcome.skipped is not None:
                result.skipped.append(outcome.skipped)

            progress.mark_processed(video_id)

        return records

    def _persist(
        self,
        result: IngestionRunResult,
        channel_url: str,
        channel_id: str,
        progress: ChannelProgress,
        page: PlaylistPage,
        records: List[MovieRecord],
    ):
        """Catalog first, then progress; a failed catalog write leaves progress untouched."""
        if records:
            try:
                accepted = self.catalog.append(records)
            except PersistenceError as e:
                self._discard_posters(records)
                result.errors.append(e.message)
                self._finish(
                    result,
                    RunOutcome.FAILED,
                    f"Could not save new movies for {channel_url}: {e.message}. "
                    f"Progress was not advanced; the batch will be retried next run.",
                )
                return

            accepted_ids = {record.id for record in accepted}
            rejected = [record for record in records if record.id not in accepted_ids]
            self._discard_posters(rejected)
            for record in rejected:
                result.skipped.append(SkippedVideo(
                    video_id=record.source_video_id or "",
                    title=record.title,
                    reason=SkipReason.DUPLICATE_TITLE,
                ))
            result.added_titles = [record.title for record in accepted]

        progress.last_page_token = page.next_page_token
        result.has_more = page.next_page_token is not None

        outcome = RunOutcome.COMPLETED
        try:
            self.progress_store.save(channel_id, progress)
        except PersistenceError as e:
            result.errors.append(e.message)
            outcome = RunOutcome.FAILED

        self._finish(result, outcome, self.batch_summary(result, channel_url))

    def _discard_posters(self, records: List[MovieRecord]):
        """Remove posters stored for records that never reached the catalog."""
        for record in records:
            self.materializer.posters.discard(record.poster_path)

    @staticmethod
    def batch_summary(result: IngestionRunResult, channel_url: str) -> str:
        """Operator message for a processed batch."""
        count = len(result.added_titles)
        added = f"Added {count} new {'movie' if count == 1 else 'movies'}"
        if count:
            added += ": " + ", ".join(result.added_titles)
        tail = "Will continue on the next run." if result.has_more else "Reached the end of the playlist."

        lines = [f"Batch complete for {channel_url}.", f"{added}. {tail}"]
        lines.extend(skipped.describe() for skipped in result.skipped)
        lines.extend(f"Error: {error}" for error in result.errors)
        return "\n".join(lines)


async def run_ingestion_job(channel_url: Optional[str] = None, trigger: str = "scheduled") -> IngestionRunResult:
    """Entry point for scheduled and manual runs."""
    job = ChannelIngestionJob()
    return await job.run(channel_url=channel_url, trigger=trigger)


if __name__ == "__main__":
    # Manual run for testing
    asyncio.run(run_ingestion_job(trigger="cli"))
