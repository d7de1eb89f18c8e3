"""
Movie Catalog Models

MovieRecord is one entry of the shared movies.json catalog. Field aliases
match the keys the website already reads from that file.
"""

import re
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, Field, ConfigDict, field_validator


class MovieCategory(str, Enum):
    """Closed set of catalog categories."""
    DRAMA = "Drama"
    COMEDY = "Comedy"
    ACTION = "Action"
    ROMANCE = "Romance"
    THRILLER = "Thriller"
    EPIC = "Epic"


MAX_STARS = 4
MAX_SLUG_LENGTH = 50

_NON_WORD = re.compile(r"[\W_\s]+")


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def slugify_title(title: str, max_length: int = MAX_SLUG_LENGTH) -> str:
    """
    Lower-case, hyphen-separated slug used for movie ids and poster filenames.

    Examples:
        "Ololade Part 2" -> "ololade-part-2"
        "  Àjé  (2024)!" -> "àjé-2024"
    """
    slug = _NON_WORD.sub("-", (title or "").lower()).strip("-")
    slug = slug[:max_length].rstrip("-")
    return slug or "movie"


class EnrichedMovie(BaseModel):
    """
    Normalized metadata returned by the AI enrichment service.

    Every field is required except partNumber, which falls back to 1.
    A category outside MovieCategory fails validation.
    """
    title: str = Field(..., min_length=1)
    series_title: str = Field(..., min_length=1, alias="seriesTitle")
    part_number: int = Field(default=1, ge=1, alias="partNumber")
    description: str
    stars: List[str]
    genre: str = Field(..., min_length=1)
    category: MovieCategory

    model_config = ConfigDict(populate_by_name=True, use_enum_values=True)

    @field_validator("title", "series_title", "genre", mode="before")
    @classmethod
    def _strip(cls, value):
        return value.strip() if isinstance(value, str) else value

    @field_validator("part_number", mode="before")
    @classmethod
    def _default_part(cls, value):
        return 1 if value in (None, "", 0) else value

    @field_validator("stars")
    @classmethod
    def _top_stars(cls, value: List[str]) -> List[str]:
        names = [name.strip() for name in value if name and name.strip()]
        return names[:MAX_STARS]


class MovieRecord(BaseModel):
    """A catalog entry created by channel ingestion."""
    id: str
    title: str
    series_title: str = Field(..., alias="seriesTitle")
    part_number: int = Field(default=1, ge=1, alias="partNumber")
    poster_path: str = Field(..., alias="poster", description="Public path of the stored poster")
    source_url: str = Field(..., alias="downloadLink", description="Canonical watch URL of the source video")
    genre: str
    category: MovieCategory
    release_date: str = Field(..., alias="releaseDate")
    stars: List[str] = Field(default_factory=list)
    runtime: str
    rating: float
    description: str
    popularity: int
    created_at: str = Field(default_factory=utc_now_iso, alias="createdAt")
    updated_at: str = Field(default_factory=utc_now_iso, alias="updatedAt")
    source_video_id: Optional[str] = Field(None, alias="sourceVideoId")

    model_config = ConfigDict(populate_by_name=True, use_enum_values=True)

    def to_catalog_dict(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)
