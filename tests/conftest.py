"""
Pytest Fixtures

Shared mocks and fixtures for testing.
"""

import random
from typing import Any, Dict, Optional

import pytest
from unittest.mock import AsyncMock, MagicMock

from app.models.movie import EnrichedMovie
from app.models.progress import MonitoringConfig
from app.services.json_store import CatalogStore, MonitoringConfigStore, ProgressStore
from app.services.materializer import MovieMaterializer
from app.services.youtube_api import PlaylistPage

CHANNEL_URL = "https://www.youtube.com/@NollyFlix"
CHANNEL_ID = "UCnolly123"
UPLOADS_ID = "UUnolly123"

DEFAULT_THUMBNAILS = {
    "default": {"url": "https://i.ytimg.com/vi/x/default.jpg"},
    "high": {"url": "https://i.ytimg.com/vi/x/hqdefault.jpg"},
}


def make_video(
    video_id: str,
    title: str,
    duration: str = "PT1H30M",
    thumbnails: Optional[Dict[str, Any]] = None,
    published_at: str = "2024-06-01T12:00:00Z",
) -> Dict[str, Any]:
    """A YouTube `videos` resource as returned by get_video_details."""
    return {
        "id": video_id,
        "snippet": {
            "title": title,
            "description": f"Watch {title} full movie",
            "publishedAt": published_at,
            "thumbnails": DEFAULT_THUMBNAILS if thumbnails is None else thumbnails,
        },
        "contentDetails": {"duration": duration},
    }


def make_enriched(title: str, category: str = "Drama") -> EnrichedMovie:
    return EnrichedMovie(
        title=title,
        series_title=title,
        part_number=1,
        description="...",
        stars=["A", "B"],
        genre="Drama",
        category=category,
    )


@pytest.fixture
def catalog_store(tmp_path):
    return CatalogStore(tmp_path / "movies.json")


@pytest.fixture
def progress_store(tmp_path):
    return ProgressStore(tmp_path / "channelProgress.json")


@pytest.fixture
def config_store(tmp_path):
    """Monitoring config with automation on and one channel."""
    store = MonitoringConfigStore(tmp_path / "monitoringConfig.json")
    store.save(MonitoringConfig(enabled=True, check_interval_minutes=30, auto_upload_channels=[CHANNEL_URL]))
    return store


@pytest.fixture
def mock_youtube():
    """YouTubeAPIService stand-in; set list_playlist_page / get_video_details per test."""
    mock = MagicMock()
    mock.resolve_channel_id = AsyncMock(return_value=CHANNEL_ID)
    mock.get_uploads_playlist_id = AsyncMock(return_value=UPLOADS_ID)
    mock.list_playlist_page = AsyncMock(return_value=PlaylistPage())
    mock.get_video_details = AsyncMock(return_value=[])
    return mock


@pytest.fixture
def mock_enrichment():
    """Enrichment that strips the " (Full Movie)" suffix from the source title."""
    mock = MagicMock()
    mock.enrich = AsyncMock(
        side_effect=lambda title, description="": make_enriched(title.replace(" (Full Movie)", ""))
    )
    return mock


@pytest.fixture
def mock_posters():
    mock = MagicMock()
    mock.download_poster = AsyncMock(return_value="/posters/poster-1718000000000.jpg")
    return mock


@pytest.fixture
def mock_notifier():
    mock = MagicMock()
    mock.notify = AsyncMock(return_value=True)
    return mock


@pytest.fixture
def materializer(mock_enrichment, mock_posters):
    return MovieMaterializer(mock_enrichment, mock_posters, rng=random.Random(7))
