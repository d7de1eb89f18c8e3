"""
Tests for the admin API routers
"""

import pytest
from unittest.mock import AsyncMock, MagicMock, patch
from fastapi.testclient import TestClient

from app.main import app
from app.models.ingestion import IngestionRunResult, RunOutcome, WatchRunResult
from app.models.progress import ChannelProgress
from app.services.json_store import MonitoringConfigStore, ProgressStore

ADMIN_HEADERS = {"X-API-Key": "cinemax-admin"}


@pytest.fixture
def client():
    # No context manager: the lifespan (and the real scheduler) stays off
    return TestClient(app)


@pytest.fixture
def mock_scheduler_service():
    service = MagicMock()
    service.get_job_status.return_value = {"running": True, "interval_minutes": 60, "jobs": []}
    service.refresh.return_value = {"running": True, "interval_minutes": 15, "jobs": []}
    with patch("app.routers.scheduler.get_scheduler_service", return_value=service), \
         patch("app.routers.automation.get_scheduler_service", return_value=service):
        yield service


@pytest.fixture
def stores(tmp_path):
    config_store = MonitoringConfigStore(tmp_path / "monitoringConfig.json")
    progress_store = ProgressStore(tmp_path / "channelProgress.json")
    with patch("app.routers.automation.MonitoringConfigStore", return_value=config_store), \
         patch("app.routers.automation.ProgressStore", return_value=progress_store):
        yield config_store, progress_store


def test_health(client):
    assert client.get("/health").json() == {"status": "healthy"}


def test_admin_endpoints_require_api_key(client, mock_scheduler_service):
    assert client.get("/scheduler/status").status_code == 401
    assert client.get("/scheduler/status", headers={"X-API-Key": "wrong"}).status_code == 401


def test_scheduler_status(client, mock_scheduler_service):
    response = client.get("/scheduler/status", headers=ADMIN_HEADERS)

    assert response.status_code == 200
    assert response.json()["interval_minutes"] == 60


def test_trigger_ingestion_returns_summary(client, mock_scheduler_service):
    mock_scheduler_service.trigger_ingestion_now = AsyncMock(return_value=IngestionRunResult(
        trigger="manual",
        outcome=RunOutcome.COMPLETED,
        added_titles=["Test Movie"],
        message="Batch complete for https://www.youtube.com/@NollyFlix.",
    ))

    response = client.post(
        "/scheduler/trigger/ingestion",
        params={"channel_url": "https://www.youtube.com/@NollyFlix"},
        headers=ADMIN_HEADERS,
    )

    body = response.json()
    assert response.status_code == 200
    assert body["success"] is True
    assert body["result"]["outcome"] == "completed"
    assert body["result"]["addedTitles"] == ["Test Movie"]
    mock_scheduler_service.trigger_ingestion_now.assert_awaited_once_with("https://www.youtube.com/@NollyFlix")


def test_update_config_persists_and_refreshes(client, mock_scheduler_service, stores):
    config_store, _ = stores

    response = client.put(
        "/automation/config",
        json={"enabled": True, "checkIntervalMinutes": 15, "autoUploadChannels": ["https://www.youtube.com/@NollyFlix"]},
        headers=ADMIN_HEADERS,
    )

    assert response.status_code == 200
    saved = config_store.load()
    assert saved.enabled is True
    assert saved.check_interval_minutes == 15
    mock_scheduler_service.refresh.assert_called_once()

    assert client.get("/automation/config", headers=ADMIN_HEADERS).json()["checkIntervalMinutes"] == 15


def test_update_config_rejects_bad_interval(client, mock_scheduler_service, stores):
    response = client.put("/automation/config", json={"checkIntervalMinutes": 0}, headers=ADMIN_HEADERS)

    assert response.status_code == 422
    mock_scheduler_service.refresh.assert_not_called()


def test_channel_progress_and_cursor_reset(client, stores):
    _, progress_store = stores
    progress_store.save("UC1", ChannelProgress(last_page_token="PAGE2", processed_video_ids=["a", "b"]))

    progress = client.get("/automation/progress/UC1", headers=ADMIN_HEADERS).json()
    assert progress["lastPageToken"] == "PAGE2"
    assert progress["processedCount"] == 2

    response = client.delete("/automation/progress/UC1/cursor", headers=ADMIN_HEADERS)
    assert response.status_code == 200

    reset = progress_store.load("UC1")
    assert reset.last_page_token is None
    assert reset.processed_video_ids == ["a", "b"]


def test_cursor_reset_unknown_channel(client, stores):
    response = client.delete("/automation/progress/UCnope/cursor", headers=ADMIN_HEADERS)

    assert response.status_code == 404
    assert response.json()["error"] is True


def test_update_config_keeps_keys_not_sent(client, mock_scheduler_service, stores):
    config_store, _ = stores
    config_store.path.write_text(
        '{"enabled": false, "checkIntervalMinutes": 60, "autoUploadChannels": [],'
        ' "notificationChannels": ["https://www.youtube.com/@News"], "lastEditedBy": "bot"}',
        encoding="utf-8",
    )

    response = client.put("/automation/config", json={"enabled": True}, headers=ADMIN_HEADERS)

    assert response.status_code == 200
    body = response.json()["config"]
    assert body["enabled"] is True
    assert body["notificationChannels"] == ["https://www.youtube.com/@News"]
    assert body["lastEditedBy"] == "bot"


def test_trigger_watch(client, mock_scheduler_service):
    mock_scheduler_service.trigger_watch_now = AsyncMock(return_value=WatchRunResult(
        trigger="manual",
        channels_checked=1,
        message="New upload on https://www.youtube.com/@News: Ijakadi",
    ))

    response = client.post("/scheduler/trigger/watch", headers=ADMIN_HEADERS)

    body = response.json()
    assert response.status_code == 200
    assert body["success"] is True
    assert body["result"]["channelsChecked"] == 1
