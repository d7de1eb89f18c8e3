"""
Ingestion State Models

ChannelProgress is the persisted cursor for one monitored channel.
MonitoringConfig is the operator-managed automation settings file.
"""

from typing import List, Optional, Set
from pydantic import BaseModel, Field, ConfigDict, PrivateAttr, field_validator


class ChannelProgress(BaseModel):
    """
    Pagination cursor and processed-video set for one channel.

    A missing lastPageToken means the next run starts at the front of
    the uploads playlist. processedVideoIds only ever grows.
    """
    last_page_token: Optional[str] = Field(None, alias="lastPageToken")
    processed_video_ids: List[str] = Field(default_factory=list, alias="processedVideoIds")

    model_config = ConfigDict(populate_by_name=True)

    _seen: Set[str] = PrivateAttr(default_factory=set)

    def model_post_init(self, __context) -> None:
        self._seen = set(self.processed_video_ids)

    def is_processed(self, video_id: str) -> bool:
        return video_id in self._seen

    def mark_processed(self, video_id: str) -> None:
        if video_id not in self._seen:
            self._seen.add(video_id)
            self.processed_video_ids.append(video_id)

    def to_store_dict(self) -> dict:
        return self.model_dump(by_alias=True)


class MonitoringConfig(BaseModel):
    """
    Automation switch, poll interval and the watched channels.

    autoUploadChannels are ingested into the catalog. notificationChannels
    are only watched: new uploads are reported to the operator. Keys other
    parts of the site add are kept so a save never drops them.
    """
    enabled: bool = False
    check_interval_minutes: int = Field(default=60, ge=1, alias="checkIntervalMinutes")
    auto_upload_channels: List[str] = Field(default_factory=list, alias="autoUploadChannels")
    notification_channels: List[str] = Field(default_factory=list, alias="notificationChannels")

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    @field_validator("auto_upload_channels", "notification_channels")
    @classmethod
    def _clean_channels(cls, value: List[str]) -> List[str]:
        return [url.strip() for url in value if url and url.strip()]
