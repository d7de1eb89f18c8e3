"""
Tests for Movie Materializer

Per-candidate checks and record construction.
"""

import pytest

from app.core.exceptions import EnrichmentError, PosterDownloadError
from app.models.ingestion import SkipReason
from app.services.materializer import unique_movie_id

from conftest import make_enriched, make_video


def test_unique_movie_id_suffixes_collisions():
    assert unique_movie_id("Test Movie", set()) == "test-movie"
    assert unique_movie_id("Test Movie", {"test-movie"}) == "test-movie-2"
    assert unique_movie_id("Test Movie", {"test-movie", "test-movie-2"}) == "test-movie-3"


def test_unique_movie_id_truncates_long_titles():
    movie_id = unique_movie_id("A" * 80 + " Part 2", set())
    assert len(movie_id) <= 50


@pytest.mark.asyncio
async def test_materialize_builds_record(materializer, mock_enrichment, mock_posters):
    video = make_video("V2", "Test Movie (Full Movie)", duration="PT1H2M59S", published_at="2024-03-09T18:00:00Z")

    outcome = await materializer.materialize(video, set(), set())

    record = outcome.record
    assert outcome.skipped is None
    assert record.id == "test-movie"
    assert record.title == "Test Movie"
    assert record.series_title == "Test Movie"
    assert record.part_number == 1
    assert record.runtime == "62m"
    assert record.release_date == "2024-03-09"
    assert record.source_url == "https://www.youtube.com/watch?v=V2"
    assert record.poster_path == "/posters/poster-1718000000000.jpg"
    assert record.source_video_id == "V2"
    assert 7.0 <= record.rating <= 9.0
    assert round(record.rating, 1) == record.rating
    assert 70 <= record.popularity <= 84

    mock_enrichment.enrich.assert_awaited_once_with("Test Movie (Full Movie)", "Watch Test Movie (Full Movie) full movie")
    mock_posters.download_poster.assert_awaited_once_with("https://i.ytimg.com/vi/x/hqdefault.jpg", "Test Movie")


@pytest.mark.asyncio
async def test_materialize_uses_next_free_id(materializer):
    outcome = await materializer.materialize(make_video("V2", "Test Movie (Full Movie)"), set(), {"test-movie"})
    assert outcome.record.id == "test-movie-2"


@pytest.mark.asyncio
async def test_short_video_skips_before_ai(materializer, mock_enrichment):
    outcome = await materializer.materialize(make_video("V1", "Trailer", duration="PT8M"), set(), set())

    assert outcome.record is None
    assert outcome.skipped.reason == SkipReason.TOO_SHORT
    mock_enrichment.enrich.assert_not_awaited()


@pytest.mark.asyncio
async def test_malformed_duration_is_treated_as_short(materializer, mock_enrichment):
    outcome = await materializer.materialize(make_video("V1", "Odd", duration="LIVE"), set(), set())

    assert outcome.skipped.reason == SkipReason.TOO_SHORT
    mock_enrichment.enrich.assert_not_awaited()


@pytest.mark.asyncio
async def test_missing_thumbnail(materializer, mock_enrichment):
    outcome = await materializer.materialize(make_video("V1", "No Art", thumbnails={}), set(), set())

    assert outcome.skipped.reason == SkipReason.NO_THUMBNAIL
    mock_enrichment.enrich.assert_not_awaited()


@pytest.mark.asyncio
async def test_enrichment_failure(materializer, mock_enrichment, mock_posters):
    mock_enrichment.enrich.side_effect = EnrichmentError("Gemini returned HTTP 500")

    outcome = await materializer.materialize(make_video("V1", "Alpha (Full Movie)"), set(), set())

    assert outcome.skipped.reason == SkipReason.ENRICHMENT_FAILED
    assert "HTTP 500" in outcome.skipped.detail
    mock_posters.download_poster.assert_not_awaited()


@pytest.mark.asyncio
async def test_duplicate_title_is_case_insensitive(materializer, mock_enrichment, mock_posters):
    mock_enrichment.enrich.side_effect = None
    mock_enrichment.enrich.return_value = make_enriched("Test Movie")

    outcome = await materializer.materialize(make_video("V1", "TEST MOVIE full"), {"test movie"}, set())

    assert outcome.skipped.reason == SkipReason.DUPLICATE_TITLE
    assert outcome.skipped.title == "Test Movie"
    mock_posters.download_poster.assert_not_awaited()


@pytest.mark.asyncio
async def test_poster_failure(materializer, mock_posters):
    mock_posters.download_poster.side_effect = PosterDownloadError("https://i.ytimg.com/x.jpg", "HTTP 404")

    outcome = await materializer.materialize(make_video("V1", "Alpha (Full Movie)"), set(), set())

    assert outcome.record is None
    assert outcome.skipped.reason == SkipReason.POSTER_FAILED
    assert outcome.skipped.describe().startswith('Skipped "Alpha": poster download failed')


@pytest.mark.asyncio
async def test_materialize_does_not_mutate_inputs(materializer):
    titles, ids = {"other"}, {"other"}

    await materializer.materialize(make_video("V1", "Alpha (Full Movie)"), titles, ids)

    assert titles == {"other"}
    assert ids == {"other"}
