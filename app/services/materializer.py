"""
Movie Materializer

Turns one raw YouTube video resource into a catalog MovieRecord plus a
stored poster, or into a SkippedVideo explaining why not.

Order of checks for a candidate:
1. Duration floor (anything under MIN_FEATURE_MINUTES is a trailer/clip)
2. Thumbnail selection (a poster is mandatory)
3. AI enrichment of title + description
4. Case-insensitive duplicate-title guard against the catalog and batch
5. Poster download
6. Record construction

Nothing here raises for a bad candidate; every outcome is a value.
"""

import random
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Set

from pydantic import BaseModel

from ..core.logging import get_logger
from ..models.ingestion import SkippedVideo, SkipReason
from ..models.movie import EnrichedMovie, MovieRecord, slugify_title, utc_now_iso
from .enrichment import EnrichmentService
from .poster_storage import PosterStorage
from .youtube_api import get_best_thumbnail, parse_duration_minutes, watch_url

logger = get_logger(__name__)

MIN_FEATURE_MINUTES = 15

BASE_RATING = 7.0
RATING_SPREAD = 2.0
BASE_POPULARITY = 70
POPULARITY_SPREAD = 14


class MaterializeResult(BaseModel):
    """Outcome for one candidate: exactly one of record / skipped is set."""
    video_id: str
    record: Optional[MovieRecord] = None
    skipped: Optional[SkippedVideo] = None


def unique_movie_id(title: str, taken_ids: Set[str]) -> str:
    """Slug of the title, suffixed -2, -3, ... until it is not in taken_ids."""
    base = slugify_title(title)
    candidate = base
    suffix = 2
    while candidate in taken_ids:
        candidate = f"{base}-{suffix}"
        suffix += 1
    return candidate


class MovieMaterializer:
    """Runs the per-candidate steps for the ingestion orchestrator."""

    def __init__(
        self,
        enrichment: EnrichmentService,
        posters: PosterStorage,
        rng: Optional[random.Random] = None,
    ):
        self.enrichment = enrichment
        self.posters = posters
        self.rng = rng or random.Random()

    async def materialize(
        self,
        video: Dict[str, Any],
        known_titles: Set[str],
        taken_ids: Set[str],
    ) -> MaterializeResult:
        """
        Evaluate one candidate.

        Args:
            video: YouTube `videos` resource (id, snippet, contentDetails)
            known_titles: lower-cased titles already in the catalog or accepted this batch
            taken_ids: movie ids already in the catalog or accepted this batch
        """
        video_id = video.get("id", "")
        snippet = video.get("snippet") or {}
        source_title = snippet.get("title", "")

        def skip(reason: SkipReason, detail: Optional[str] = None, title: str = source_title):
            logger.info("candidate_skipped", video_id=video_id, reason=reason.value, detail=detail)
            return MaterializeResult(
                video_id=video_id,
                skipped=SkippedVideo(video_id=video_id, title=title, reason=reason, detail=detail),
            )

        minutes = parse_duration_minutes((video.get("contentDetails") or {}).get("duration"))
        if minutes < MIN_FEATURE_MINUTES:
            return skip(SkipReason.TOO_SHORT, f"{minutes}m")

        thumbnail_url = get_best_thumbnail(snippet.get("thumbnails"))
        if not thumbnail_url:
            return skip(SkipReason.NO_THUMBNAIL)

        try:
            enriched = await self.enrichment.enrich(source_title, snippet.get("description", ""))
        except Exception as e:
            return skip(SkipReason.ENRICHMENT_FAILED, str(e))

        if enriched.title.lower() in known_titles:
            return skip(SkipReason.DUPLICATE_TITLE, title=enriched.title)

        try:
            poster_path = await self.posters.download_poster(thumbnail_url, enriched.title)
        except Exception as e:
            return skip(SkipReason.POSTER_FAILED, str(e), title=enriched.title)

        record = self.build_record(
            video_id=video_id,
            enriched=enriched,
            poster_path=poster_path,
            minutes=minutes,
            published_at=snippet.get("publishedAt"),
            taken_ids=taken_ids,
        )
        logger.info("candidate_materialized", video_id=video_id, movie_id=record.id, title=record.title)
        return MaterializeResult(video_id=video_id, record=record)

    def build_record(
        self,
        video_id: str,
        enriched: EnrichedMovie,
        poster_path: str,
        minutes: int,
        published_at: Optional[str],
        taken_ids: Set[str],
    ) -> MovieRecord:
        now = utc_now_iso()
        release_date = (published_at or "")[:10] or datetime.now(timezone.utc).date().isoformat()

        return MovieRecord(
            id=unique_movie_id(enriched.title, taken_ids),
            title=enriched.title,
            series_title=enriched.series_title,
            part_number=enriched.part_number,
            poster_path=poster_path,
            source_url=watch_url(video_id),
            genre=enriched.genre,
            category=enriched.category,
            release_date=release_date,
            stars=enriched.stars,
            runtime=f"{minutes}m",
            rating=round(BASE_RATING + self.rng.uniform(0, RATING_SPREAD), 1),
            description=enriched.description,
            popularity=BASE_POPULARITY + self.rng.randint(0, POPULARITY_SPREAD),
            created_at=now,
            updated_at=now,
            source_video_id=video_id,
        )
