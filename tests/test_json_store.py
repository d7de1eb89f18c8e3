"""
Tests for JSON File Stores

Atomic replacement, crash simulation and tolerant loading.
"""

import json

import pytest
from unittest.mock import patch

from app.core.exceptions import PersistenceError
from app.models.movie import MovieRecord
from app.models.progress import ChannelProgress, MonitoringConfig
from app.services.json_store import (
    CatalogStore,
    MonitoringConfigStore,
    ProgressStore,
    atomic_write_json,
    read_json,
)


def make_record(movie_id: str, title: str) -> MovieRecord:
    return MovieRecord(
        id=movie_id,
        title=title,
        series_title=title,
        poster_path=f"/posters/{movie_id}.jpg",
        source_url="https://www.youtube.com/watch?v=abc",
        genre="Drama",
        category="Drama",
        release_date="2024-06-01",
        runtime="95m",
        rating=7.4,
        description="...",
        popularity=77,
    )


def test_atomic_write_replaces_file(tmp_path):
    target = tmp_path / "data.json"
    target.write_text('{"old": true}', encoding="utf-8")

    atomic_write_json(target, {"new": [1, 2]})

    assert json.loads(target.read_text(encoding="utf-8")) == {"new": [1, 2]}
    assert list(tmp_path.glob(".data.json.*.tmp")) == []


def test_atomic_write_creates_parent_directory(tmp_path):
    target = tmp_path / "nested" / "data.json"
    atomic_write_json(target, [])
    assert target.exists()


def test_failed_replace_keeps_prior_file(tmp_path):
    """A crash at the rename step leaves the old contents and no temp file."""
    target = tmp_path / "movies.json"
    target.write_text('[{"id": "old"}]', encoding="utf-8")

    with patch("app.services.json_store.os.replace", side_effect=OSError("simulated crash")):
        with pytest.raises(PersistenceError) as exc_info:
            atomic_write_json(target, [{"id": "new"}])

    assert "simulated crash" in exc_info.value.message
    assert json.loads(target.read_text(encoding="utf-8")) == [{"id": "old"}]
    assert list(tmp_path.glob("*.tmp")) == []


def test_unserializable_data_raises(tmp_path):
    target = tmp_path / "data.json"
    with pytest.raises(PersistenceError):
        atomic_write_json(target, {object(): 1})
    assert not target.exists()


def test_read_json_defaults(tmp_path):
    assert read_json(tmp_path / "missing.json", []) == []

    corrupt = tmp_path / "corrupt.json"
    corrupt.write_text("{not json", encoding="utf-8")
    assert read_json(corrupt, {}) == {}


def test_catalog_append_single_write(tmp_path):
    store = CatalogStore(tmp_path / "movies.json")
    store.path.write_text('[{"id": "existing", "title": "Existing", "custom": 1}]', encoding="utf-8")

    accepted = store.append([make_record("alpha", "Alpha"), make_record("beta", "Beta")])

    movies = store.load()
    assert [r.id for r in accepted] == ["alpha", "beta"]
    assert [m["id"] for m in movies] == ["existing", "alpha", "beta"]
    # Keys this service does not model survive the rewrite
    assert movies[0]["custom"] == 1
    assert movies[1]["poster"] == "/posters/alpha.jpg"
    assert movies[1]["downloadLink"] == "https://www.youtube.com/watch?v=abc"
    assert "sourceVideoId" not in movies[1]


def test_catalog_append_drops_collisions(tmp_path):
    store = CatalogStore(tmp_path / "movies.json")
    store.path.write_text('[{"id": "alpha", "title": "ALPHA"}]', encoding="utf-8")

    accepted = store.append([make_record("alpha-2", "Alpha"), make_record("beta", "Beta")])

    assert [r.id for r in accepted] == ["beta"]
    assert [m["id"] for m in store.load()] == ["alpha", "beta"]


def test_catalog_append_nothing_does_not_write(tmp_path):
    store = CatalogStore(tmp_path / "movies.json")
    assert store.append([]) == []
    assert not store.path.exists()


def test_catalog_load_ignores_non_list(tmp_path):
    store = CatalogStore(tmp_path / "movies.json")
    store.path.write_text('{"movies": []}', encoding="utf-8")
    assert store.load() == []


def test_progress_load_missing_channel(tmp_path):
    store = ProgressStore(tmp_path / "channelProgress.json")

    progress = store.load("UCunknown")

    assert progress.last_page_token is None
    assert progress.processed_video_ids == []


def test_progress_load_corrupt_file(tmp_path):
    store = ProgressStore(tmp_path / "channelProgress.json")
    store.path.write_text("[[[", encoding="utf-8")

    assert store.load("UC1").processed_video_ids == []


def test_progress_save_keeps_other_channels(tmp_path):
    store = ProgressStore(tmp_path / "channelProgress.json")
    store.save("UC1", ChannelProgress(last_page_token="T1", processed_video_ids=["a"]))
    store.save("UC2", ChannelProgress(processed_video_ids=["b"]))

    data = json.loads(store.path.read_text(encoding="utf-8"))

    assert data["UC1"] == {"lastPageToken": "T1", "processedVideoIds": ["a"]}
    assert data["UC2"]["processedVideoIds"] == ["b"]
    assert store.load("UC1").is_processed("a")


def test_progress_mark_processed_is_idempotent():
    progress = ChannelProgress(processed_video_ids=["a"])
    progress.mark_processed("a")
    progress.mark_processed("b")
    assert progress.processed_video_ids == ["a", "b"]


def test_monitoring_config_round_trip(tmp_path):
    store = MonitoringConfigStore(tmp_path / "monitoringConfig.json")
    assert store.load().enabled is False

    store.save(MonitoringConfig(enabled=True, check_interval_minutes=15, auto_upload_channels=[" https://youtube.com/@a ", ""]))
    data = json.loads(store.path.read_text(encoding="utf-8"))

    assert data == {
        "enabled": True,
        "checkIntervalMinutes": 15,
        "autoUploadChannels": ["https://youtube.com/@a"],
        "notificationChannels": [],
    }
    assert store.load().check_interval_minutes == 15


def test_monitoring_config_invalid_falls_back(tmp_path):
    store = MonitoringConfigStore(tmp_path / "monitoringConfig.json")
    store.path.write_text('{"enabled": true, "checkIntervalMinutes": 0}', encoding="utf-8")
    assert store.load().enabled is False


def test_read_json_strict_refuses_corrupt_file(tmp_path):
    corrupt = tmp_path / "corrupt.json"
    corrupt.write_text("[1, 2,]", encoding="utf-8")

    with pytest.raises(PersistenceError):
        read_json(corrupt, [], strict=True)

    assert read_json(tmp_path / "missing.json", [], strict=True) == []


def test_catalog_append_refuses_corrupt_catalog(tmp_path):
    """A hand-edit typo must not cost the existing movies."""
    store = CatalogStore(tmp_path / "movies.json")
    original = '[{"id": "old-1", "title": "Old One"}, {"id": "old-2", "title": "Old Two"},]'
    store.path.write_text(original, encoding="utf-8")

    with pytest.raises(PersistenceError):
        store.append([make_record("new-movie", "New Movie")])

    assert store.path.read_text(encoding="utf-8") == original


def test_catalog_append_refuses_non_list_catalog(tmp_path):
    store = CatalogStore(tmp_path / "movies.json")
    store.path.write_text('{"movies": [{"id": "old-1"}]}', encoding="utf-8")

    with pytest.raises(PersistenceError):
        store.append([make_record("new-movie", "New Movie")])

    assert json.loads(store.path.read_text(encoding="utf-8")) == {"movies": [{"id": "old-1"}]}


def test_catalog_append_keeps_non_dict_entries(tmp_path):
    store = CatalogStore(tmp_path / "movies.json")
    store.path.write_text('["legacy", {"id": "old", "title": "Old"}]', encoding="utf-8")

    store.append([make_record("new", "New")])

    data = json.loads(store.path.read_text(encoding="utf-8"))
    assert data[0] == "legacy"
    assert [m["id"] for m in data[1:]] == ["old", "new"]


def test_progress_save_refuses_corrupt_file(tmp_path):
    store = ProgressStore(tmp_path / "channelProgress.json")
    original = '{"UCother": {"processedVideoIds": ["a", "b"]},}'
    store.path.write_text(original, encoding="utf-8")

    with pytest.raises(PersistenceError):
        store.save("UCmine", ChannelProgress(processed_video_ids=["x"]))

    assert store.path.read_text(encoding="utf-8") == original


def test_progress_save_refuses_non_mapping(tmp_path):
    store = ProgressStore(tmp_path / "channelProgress.json")
    store.path.write_text('["UCother"]', encoding="utf-8")

    with pytest.raises(PersistenceError):
        store.save("UCmine", ChannelProgress())

    assert json.loads(store.path.read_text(encoding="utf-8")) == ["UCother"]


def test_monitoring_config_keeps_unknown_keys(tmp_path):
    store = MonitoringConfigStore(tmp_path / "monitoringConfig.json")
    store.path.write_text(json.dumps({
        "enabled": True,
        "checkIntervalMinutes": 60,
        "autoUploadChannels": ["https://youtube.com/@a"],
        "notificationChannels": ["https://youtube.com/@news"],
        "lastEditedBy": "admin",
    }), encoding="utf-8")

    config = store.load()
    config.enabled = False
    store.save(config)

    data = json.loads(store.path.read_text(encoding="utf-8"))
    assert data["enabled"] is False
    assert data["notificationChannels"] == ["https://youtube.com/@news"]
    assert data["lastEditedBy"] == "admin"
    assert store.load().notification_channels == ["https://youtube.com/@news"]


def test_monitoring_config_update_changes_only_given_keys(tmp_path):
    store = MonitoringConfigStore(tmp_path / "monitoringConfig.json")
    store.save(MonitoringConfig(
        enabled=False,
        auto_upload_channels=["https://youtube.com/@a"],
        notification_channels=["https://youtube.com/@news"],
    ))

    updated = store.update(MonitoringConfig.model_validate({"enabled": True}))

    assert updated.enabled is True
    assert updated.notification_channels == ["https://youtube.com/@news"]
    assert store.load().auto_upload_channels == ["https://youtube.com/@a"]
