"""
Ingestion Run Models

Value objects describing one run of the channel ingestion pipeline.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, Field, ConfigDict


class IngestionState(str, Enum):
    """Orchestrator states. Every run starts and ends in IDLE."""
    IDLE = "idle"
    RESOLVING_CHANNEL = "resolving_channel"
    FETCHING_BATCH = "fetching_batch"
    PROCESSING_CANDIDATES = "processing_candidates"
    PERSISTING_RESULTS = "persisting_results"


class RunOutcome(str, Enum):
    """How a run ended."""
    SKIPPED = "skipped"                    # automation disabled / no channels
    ALREADY_RUNNING = "already_running"
    CHANNEL_NOT_FOUND = "channel_not_found"
    LOOKUP_FAILED = "lookup_failed"
    QUOTA_EXCEEDED = "quota_exceeded"
    DRAINED = "drained"
    COMPLETED = "completed"
    FAILED = "failed"


class SkipReason(str, Enum):
    """Why a candidate was processed without producing a movie."""
    TOO_SHORT = "too_short"
    NO_THUMBNAIL = "no_thumbnail"
    ENRICHMENT_FAILED = "enrichment_failed"
    DUPLICATE_TITLE = "duplicate_title"
    POSTER_FAILED = "poster_failed"
    UNAVAILABLE = "unavailable"
    ERROR = "error"


SKIP_REASON_TEXT = {
    SkipReason.ERROR: "unexpected error while processing",
    SkipReason.TOO_SHORT: "shorter than a full feature (likely a trailer)",
    SkipReason.NO_THUMBNAIL: "no thumbnail available for a poster",
    SkipReason.ENRICHMENT_FAILED: "AI processing failed",
    SkipReason.DUPLICATE_TITLE: "a movie with that title already exists",
    SkipReason.POSTER_FAILED: "poster download failed",
    SkipReason.UNAVAILABLE: "video details unavailable (private or deleted)",
}


class SkippedVideo(BaseModel):
    """A candidate that was marked processed without a catalog entry."""
    video_id: str = Field(..., alias="videoId")
    title: str = ""
    reason: SkipReason
    detail: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True, use_enum_values=True)

    def describe(self) -> str:
        label = self.title or self.video_id
        text = SKIP_REASON_TEXT[SkipReason(self.reason)]
        if self.detail:
            text = f"{text} ({self.detail})"
        return f'Skipped "{label}": {text}'


class IngestionRunResult(BaseModel):
    """Summary of one orchestrator run, also returned by the trigger endpoint."""
    trigger: str = "scheduled"
    outcome: RunOutcome = RunOutcome.SKIPPED
    channel_url: Optional[str] = Field(None, alias="channelUrl")
    channel_id: Optional[str] = Field(None, alias="channelId")
    added_titles: List[str] = Field(default_factory=list, alias="addedTitles")
    skipped: List[SkippedVideo] = Field(default_factory=list)
    has_more: bool = Field(default=False, alias="hasMore")
    errors: List[str] = Field(default_factory=list)
    message: str = ""
    states: List[IngestionState] = Field(default_factory=list)
    started_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        alias="startedAt"
    )
    finished_at: Optional[datetime] = Field(None, alias="finishedAt")

    model_config = ConfigDict(populate_by_name=True, use_enum_values=True)

    @property
    def success(self) -> bool:
        return self.outcome in (RunOutcome.COMPLETED, RunOutcome.DRAINED, RunOutcome.SKIPPED)

    @property
    def final_state(self) -> Optional[IngestionState]:
        return self.states[-1] if self.states else None


class NewUpload(BaseModel):
    """An upload first seen on a notification-only channel."""
    channel_url: str = Field(..., alias="channelUrl")
    video_id: str = Field(..., alias="videoId")
    title: str = ""

    model_config = ConfigDict(populate_by_name=True)


class WatchRunResult(BaseModel):
    """Summary of one pass over the notification-only channels."""
    trigger: str = "scheduled"
    channels_checked: int = Field(default=0, alias="channelsChecked")
    new_uploads: List[NewUpload] = Field(default_factory=list, alias="newUploads")
    errors: List[str] = Field(default_factory=list)
    message: str = ""
    notified: bool = False

    model_config = ConfigDict(populate_by_name=True)
