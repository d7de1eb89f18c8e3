"""
YouTube API Service

Channel resolution, uploads-playlist paging and batched video detail
lookups against the YouTube Data API v3, plus the duration and
thumbnail helpers the ingestion pipeline needs.
"""

import re
from typing import Any, Dict, List, Optional

import httpx
from pydantic import BaseModel, Field

from ..config import get_settings
from ..core.logging import get_logger
from .quota_manager import QuotaManager, get_redis_client

logger = get_logger(__name__)

YOUTUBE_API_BASE = "https://www.googleapis.com/youtube/v3"
WATCH_URL = "https://www.youtube.com/watch?v={video_id}"

CHANNEL_ID_URL = re.compile(r"youtube\.com/channel/([a-zA-Z0-9_-]+)")
HANDLE_URL = re.compile(r"youtube\.com/@([a-zA-Z0-9_.-]+)")
ISO_DURATION = re.compile(
    r"^P(?:(\d+)D)?(?:T(?:(\d+)H)?(?:(\d+)M)?(?:(\d+)S)?)?$"
)

# Best -> worst
THUMBNAIL_PREFERENCE = ("maxres", "standard", "high", "medium", "default")


def parse_duration_minutes(duration: Any) -> int:
    """
    Parse an ISO 8601 video duration into whole minutes.

    Seconds are dropped, not rounded. Anything unparseable is 0 so one
    bad field never aborts a batch.

    Examples:
        PT1H2M59S -> 62
        PT42M -> 42
        PT45S -> 0
    """
    if not isinstance(duration, str):
        return 0

    match = ISO_DURATION.match(duration.strip())
    if not match:
        return 0

    days, hours, minutes, _seconds = (int(part or 0) for part in match.groups())
    return days * 24 * 60 + hours * 60 + minutes


def get_best_thumbnail(thumbnails: Optional[Dict[str, Any]]) -> Optional[str]:
    """Get the highest resolution thumbnail URL, or None."""
    if not thumbnails:
        return None

    for quality in THUMBNAIL_PREFERENCE:
        url = (thumbnails.get(quality) or {}).get("url")
        if url:
            return url

    return None


def watch_url(video_id: str) -> str:
    return WATCH_URL.format(video_id=video_id)


class PlaylistPage(BaseModel):
    """One page of an uploads playlist."""
    video_ids: List[str] = Field(default_factory=list)
    next_page_token: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return not self.video_ids


class YouTubeAPIService:
    """
    YouTube Data API v3 client for channel ingestion.

    Transport failures are logged and reported as None so callers can
    treat them as recoverable. Quota exhaustion raises QuotaExceededError.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        quota_manager: Optional[QuotaManager] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        settings = get_settings()
        self.api_key = api_key if api_key is not None else settings.youtube_api_key
        self.quota_manager = quota_manager or QuotaManager(get_redis_client())
        self.timeout = timeout or settings.http_timeout_seconds
        self.transport = transport

        if not self.api_key:
            logger.warning("youtube_api_key_not_set")

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=YOUTUBE_API_BASE,
            timeout=self.timeout,
            transport=self.transport,
        )

    async def _get(self, path: str, params: Dict[str, Any], operation: str = "list") -> Optional[dict]:
        """GET an API resource with quota accounting. None on any transport/HTTP failure."""
        cost = self.quota_manager.cost_of("youtube", operation)
        await self.quota_manager.require_quota("youtube", cost=cost)

        try:
            async with self._client() as client:
                response = await client.get(path, params={**params, "key": self.api_key})
            await self.quota_manager.record_usage("youtube", cost=cost)

            if response.status_code != 200:
                logger.warning("youtube_request_failed", path=path, status=response.status_code)
                return None

            return response.json()

        except (httpx.HTTPError, ValueError) as e:
            logger.warning("youtube_request_error", path=path, error=str(e))
            return None

    async def resolve_channel_id(self, channel_url: str) -> Optional[str]:
        """
        Map a channel URL to its channel ID.

        /channel/<ID> URLs are answered locally. /@handle URLs go through
        the search endpoint: an exact case-insensitive title or custom URL
        match wins, otherwise the first result. None if nothing matches or
        the lookup fails.
        """
        id_match = CHANNEL_ID_URL.search(channel_url or "")
        if id_match:
            return id_match.group(1)

        handle_match = HANDLE_URL.search(channel_url or "")
        if not handle_match:
            logger.warning("channel_url_unrecognized", url=channel_url)
            return None

        handle = handle_match.group(1)
        data = await self._get(
            "/search",
            {"part": "snippet", "q": handle, "type": "channel", "maxResults": 10},
            operation="search",
        )
        if not data:
            return None

        candidates = [
            item for item in data.get("items", [])
            if self._candidate_channel_id(item)
        ]
        if not candidates:
            logger.info("channel_handle_not_found", handle=handle)
            return None

        wanted = handle.lower()
        for item in candidates:
            snippet = item.get("snippet", {})
            title = (snippet.get("channelTitle") or snippet.get("title") or "").lower()
            custom_url = (snippet.get("customUrl") or "").lower()
            if title == wanted or custom_url == f"@{wanted}":
                return self._candidate_channel_id(item)

        return self._candidate_channel_id(candidates[0])

    @staticmethod
    def _candidate_channel_id(item: Dict[str, Any]) -> Optional[str]:
        return (
            item.get("snippet", {}).get("channelId")
            or (item.get("id") or {}).get("channelId")
        )

    async def get_uploads_playlist_id(self, channel_id: str) -> Optional[str]:
        """
        Get the uploads playlist ID for a channel.

        Returns:
            Uploads playlist ID or None if the channel has none / lookup failed
        """
        data = await self._get("/channels", {"part": "contentDetails", "id": channel_id})
        if not data:
            return None

        try:
            return data["items"][0]["contentDetails"]["relatedPlaylists"]["uploads"] or None
        except (KeyError, IndexError, TypeError):
            logger.warning("uploads_playlist_missing", channel_id=channel_id)
            return None

    async def list_playlist_page(
        self,
        playlist_id: str,
        page_token: Optional[str] = None,
        page_size: int = 5,
    ) -> Optional[PlaylistPage]:
        """
        Fetch one bounded page of video references from a playlist.

        Returns:
            PlaylistPage (video IDs in playlist order + next cursor), or None on failure
        """
        params = {
            "part": "contentDetails",
            "playlistId": playlist_id,
            "maxResults": page_size,
        }
        if page_token:
            params["pageToken"] = page_token

        data = await self._get("/playlistItems", params)
        if data is None:
            return None

        video_ids = []
        for item in data.get("items", []):
            video_id = (
                item.get("contentDetails", {}).get("videoId")
                or item.get("snippet", {}).get("resourceId", {}).get("videoId")
            )
            if video_id:
                video_ids.append(video_id)

        return PlaylistPage(video_ids=video_ids, next_page_token=data.get("nextPageToken"))

    async def get_video_details(self, video_ids: List[str]) -> Optional[List[Dict[str, Any]]]:
        """
        Fetch snippet + contentDetails for many videos in one call.

        Returns:
            List of video resources ([] for no IDs), or None on failure
        """
        if not video_ids:
            return []

        data = await self._get(
            "/videos",
            {"part": "snippet,contentDetails", "id": ",".join(video_ids)},
        )
        if data is None:
            return None

        return data.get("items", [])


# Singleton instance
_youtube_service: Optional[YouTubeAPIService] = None


def get_youtube_service() -> YouTubeAPIService:
    """Get singleton YouTube API service instance."""
    global _youtube_service
    if _youtube_service is None:
        _youtube_service = YouTubeAPIService()
    return _youtube_service
