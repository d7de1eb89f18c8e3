"""Pydantic models for the Cinemax ingestion service."""

from .movie import MovieRecord, MovieCategory, EnrichedMovie
from .progress import ChannelProgress, MonitoringConfig
from .ingestion import (
    IngestionState,
    RunOutcome,
    SkipReason,
    SkippedVideo,
    IngestionRunResult,
    NewUpload,
    WatchRunResult,
)

__all__ = [
    "MovieRecord",
    "MovieCategory",
    "EnrichedMovie",
    "ChannelProgress",
    "MonitoringConfig",
    "IngestionState",
    "RunOutcome",
    "SkipReason",
    "SkippedVideo",
    "IngestionRunResult",
    "NewUpload",
    "WatchRunResult",
]
