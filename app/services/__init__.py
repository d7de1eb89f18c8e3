"""Services for channel ingestion."""

from .enrichment import EnrichmentService, get_enrichment_service
from .json_store import CatalogStore, MonitoringConfigStore, ProgressStore, atomic_write_json
from .materializer import MaterializeResult, MovieMaterializer
from .notifier import TelegramNotifier, get_notifier
from .poster_storage import PosterStorage, get_poster_storage
from .quota_manager import QuotaManager, get_redis_client
from .scheduler import SchedulerService, get_scheduler_service
from .youtube_api import YouTubeAPIService, get_youtube_service, parse_duration_minutes

__all__ = [
    "EnrichmentService",
    "get_enrichment_service",
    "CatalogStore",
    "MonitoringConfigStore",
    "ProgressStore",
    "atomic_write_json",
    "MaterializeResult",
    "MovieMaterializer",
    "TelegramNotifier",
    "get_notifier",
    "PosterStorage",
    "get_poster_storage",
    "QuotaManager",
    "get_redis_client",
    "SchedulerService",
    "get_scheduler_service",
    "YouTubeAPIService",
    "get_youtube_service",
    "parse_duration_minutes",
]
