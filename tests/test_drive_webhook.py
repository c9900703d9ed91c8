"""End-to-end tests for the Drive notification webhook."""

import pytest
from sqlalchemy.exc import SQLAlchemyError

from fitlegal_api.drive.client import FileMetadata
from fitlegal_api.webhook.handler import get_processor, get_repository
from fitlegal_api.webhook.processor import DriveNotificationProcessor

from conftest import FakeDriveClient

URL = "/api/webhook/drive-notifications"
RESOURCE_URI = "https://www.googleapis.com/drive/v3/files/ABC123?alt=json"


def _payload(channel_id="chan-1", state="update", changed="children", uri=RESOURCE_URI):
    headers = {
        "x-goog-channel-id": channel_id,
        "x-goog-resource-state": state,
        "x-goog-resource-uri": uri,
        "x-goog-message-number": "42",
    }
    if changed is not None:
        headers["x-goog-changed"] = changed
    return {"headers": headers, "body": {"source": "n8n"}, "processedData": {"step": 3}}


@pytest.fixture
def drive():
    return FakeDriveClient(
        {"ABC123": FileMetadata(id="ABC123", name="rutina.xlsx", mime_type="text/csv")}
    )


@pytest.fixture
async def wired(app, repo, drive):
    processor = DriveNotificationProcessor(repo, drive)
    app.dependency_overrides[get_processor] = lambda: processor
    app.dependency_overrides[get_repository] = lambda: repo
    await repo.add_watch_channel("chan-1", "user-1", "folder-1")
    return processor


class TestValidation:
    async def test_preflight_without_cors_headers(self, http):
        resp = await http.options(URL)
        assert resp.status_code == 200
        assert resp.headers["access-control-allow-origin"] == "*"

    async def test_browser_preflight(self, http):
        resp = await http.options(
            URL,
            headers={
                "Origin": "https://app.example.com",
                "Access-Control-Request-Method": "POST",
                "Access-Control-Request-Headers": "Content-Type",
            },
        )
        assert resp.status_code == 200
        assert resp.headers["access-control-allow-origin"] == "*"
        assert "POST" in resp.headers["access-control-allow-methods"]

    async def test_preflight_with_unlisted_request_header(self, http):
        resp = await http.options(
            URL,
            headers={
                "Origin": "https://app.example.com",
                "Access-Control-Request-Method": "POST",
                "Access-Control-Request-Headers": "Authorization, Content-Type",
            },
        )
        assert resp.status_code == 200
        assert resp.headers["access-control-allow-origin"] == "*"
        assert resp.headers["access-control-allow-headers"].startswith("X-CSRF-Token")

    async def test_preflight_with_unlisted_request_method(self, http):
        resp = await http.options(
            URL,
            headers={
                "Origin": "https://app.example.com",
                "Access-Control-Request-Method": "PROPFIND",
            },
        )
        assert resp.status_code == 200
        assert resp.headers["access-control-allow-methods"] == "GET,OPTIONS,PATCH,DELETE,POST,PUT"

    async def test_get_not_allowed(self, http, wired):
        resp = await http.get(URL)
        assert resp.status_code == 405
        assert resp.json() == {"error": "Method Not Allowed"}
        assert resp.headers["access-control-allow-origin"] == "*"

    async def test_missing_headers(self, http, wired):
        resp = await http.post(URL, json={"body": {}})
        assert resp.status_code == 400
        assert resp.json()["success"] is False

    async def test_missing_channel_id_skips_lookup(self, app, http, drive):
        class NoLookupRepo:
            async def get_active_watch_channel(self, channel_id):
                raise AssertionError("lookup must not happen")

        processor = DriveNotificationProcessor(NoLookupRepo(), drive)
        app.dependency_overrides[get_processor] = lambda: processor

        payload = _payload()
        del payload["headers"]["x-goog-channel-id"]
        resp = await http.post(URL, json=payload)

        assert resp.status_code == 400
        assert resp.json() == {"success": False, "error": "Channel ID not found in headers"}

    async def test_unknown_channel_is_rejected(self, http, wired, repo):
        resp = await http.post(URL, json=_payload(channel_id="ghost"))
        assert resp.status_code == 404
        body = resp.json()
        assert body["success"] is False
        assert "ghost" in body["details"]
        assert await repo.count_notifications("ghost") == 0

    async def test_inactive_channel_is_rejected(self, http, wired, repo):
        await repo.add_watch_channel("chan-off", "user-1", "folder-1", is_active=False)
        resp = await http.post(URL, json=_payload(channel_id="chan-off"))
        assert resp.status_code == 404
        assert await repo.count_notifications("chan-off") == 0


class TestProcessing:
    async def test_children_update_with_credentials(self, http, wired, repo, drive):
        await repo.upsert_credentials("user-1", "token-1")

        resp = await http.post(URL, json=_payload())

        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is True
        data = body["data"]
        assert data["changeType"] == "file_added_or_removed"
        assert data["fileId"] == "ABC123"
        assert data["fileName"] == "rutina.xlsx"
        assert data["resourceState"] == "update"
        assert data["changed"] == "children"
        assert drive.calls == [("ABC123", "token-1")]

        stored = await repo.get_notification(data["notificationId"])
        assert stored is not None
        assert stored.channel_id == "chan-1"
        assert stored.user_id == "user-1"
        assert stored.changed_files == "children"
        assert stored.notification_data["fileId"] == "ABC123"
        assert stored.notification_data["changeType"] == "file_added_or_removed"
        assert stored.notification_data["fileDetails"]["name"] == "rutina.xlsx"
        assert stored.notification_data["processedData"] == {"step": 3}
        assert stored.notification_data["body"] == {"source": "n8n"}

    async def test_without_credentials_skips_metadata(self, http, wired, drive):
        resp = await http.post(URL, json=_payload())
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["fileId"] == "ABC123"
        assert data["fileName"] == "Unknown"
        assert drive.calls == []

    async def test_metadata_failure_is_not_fatal(self, app, http, wired, repo):
        await repo.upsert_credentials("user-1", "token-1")
        failing = DriveNotificationProcessor(repo, FakeDriveClient(error=RuntimeError("boom")))
        app.dependency_overrides[get_processor] = lambda: failing

        resp = await http.post(URL, json=_payload(state="trash", changed=None))
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["changeType"] == "file_trashed"
        assert data["fileName"] == "Unknown"

    async def test_unrecognized_state_is_stored_as_unknown(self, http, wired, repo):
        resp = await http.post(URL, json=_payload(state="exists", changed=None))
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["changeType"] == "unknown"
        stored = await repo.get_notification(data["notificationId"])
        assert stored.notification_data["changeType"] == "unknown"

    async def test_replay_creates_second_row(self, http, wired, repo):
        first = await http.post(URL, json=_payload())
        second = await http.post(URL, json=_payload())
        assert first.json()["data"]["notificationId"] != second.json()["data"]["notificationId"]
        assert await repo.count_notifications("chan-1") == 2

    async def test_cors_header_on_response(self, http, wired):
        resp = await http.post(URL, json=_payload(), headers={"Origin": "https://app.example.com"})
        assert resp.headers["access-control-allow-origin"] == "*"

    async def test_cors_header_without_origin(self, http, wired):
        resp = await http.post(URL, json=_payload())
        assert resp.status_code == 200
        assert resp.headers["access-control-allow-origin"] == "*"
        assert resp.headers["access-control-allow-credentials"] == "true"

    async def test_numeric_header_values_are_stringified(self, http, wired, repo):
        payload = _payload(state="update", changed=None)
        payload["headers"]["x-goog-changed"] = 7
        payload["headers"]["x-goog-message-number"] = 42
        resp = await http.post(URL, json=payload)
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["changed"] == "7"
        assert data["changeType"] == "unknown"
        assert await repo.count_notifications("chan-1") == 1
        stored = await repo.get_notification(data["notificationId"])
        assert stored.changed_files == "7"
        assert stored.notification_data["messageNumber"] == "42"


class TestFailures:
    async def test_persist_failure_returns_500(self, app, http, wired, repo, drive):
        class BrokenInsertRepo:
            async def get_active_watch_channel(self, channel_id):
                return await repo.get_active_watch_channel(channel_id)

            async def get_access_token(self, user_id):
                return await repo.get_access_token(user_id)

            async def insert_notification(self, *args, **kwargs):
                raise SQLAlchemyError("database is locked")

        processor = DriveNotificationProcessor(BrokenInsertRepo(), drive)
        app.dependency_overrides[get_processor] = lambda: processor

        resp = await http.post(URL, json=_payload())
        assert resp.status_code == 500
        body = resp.json()
        assert body["success"] is False
        assert "database is locked" in body["details"]

    async def test_credential_lookup_failure_is_not_fatal(self, app, http, wired, repo, drive):
        class BrokenCredentialsRepo:
            async def get_active_watch_channel(self, channel_id):
                return await repo.get_active_watch_channel(channel_id)

            async def insert_notification(self, *args, **kwargs):
                return await repo.insert_notification(*args, **kwargs)

            async def get_access_token(self, user_id):
                raise SQLAlchemyError("no such table: user_credentials")

        processor = DriveNotificationProcessor(BrokenCredentialsRepo(), drive)
        app.dependency_overrides[get_processor] = lambda: processor

        resp = await http.post(URL, json=_payload())
        assert resp.status_code == 200
        assert drive.calls == []

    async def test_unexpected_error_returns_500(self, app, http, drive):
        class BrokenLookupRepo:
            async def get_active_watch_channel(self, channel_id):
                raise RuntimeError("connection reset")

        processor = DriveNotificationProcessor(BrokenLookupRepo(), drive)
        app.dependency_overrides[get_processor] = lambda: processor

        resp = await http.post(URL, json=_payload())
        assert resp.status_code == 500
        assert resp.json() == {
            "success": False,
            "error": "Internal server error",
            "details": "connection reset",
        }

    async def test_unconfigured_processor(self, http):
        resp = await http.post(URL, json=_payload())
        assert resp.status_code == 503


class TestInbox:
    async def test_pending_then_mark_processed(self, http, wired):
        created = await http.post(URL, json=_payload())
        notification_id = created.json()["data"]["notificationId"]

        pending = await http.get("/api/drive-notifications/pending", params={"user_id": "user-1"})
        assert pending.status_code == 200
        assert [n["id"] for n in pending.json()["data"]] == [notification_id]

        marked = await http.post(
            "/api/drive-notifications/mark-processed",
            json={"notification_ids": [notification_id]},
        )
        assert marked.json() == {"success": True, "updated_count": 1}

        pending = await http.get("/api/drive-notifications/pending", params={"user_id": "user-1"})
        assert pending.json()["data"] == []

    async def test_mark_processed_requires_ids(self, http, wired):
        resp = await http.post("/api/drive-notifications/mark-processed", json={"notification_ids": []})
        assert resp.status_code == 422


async def test_liveness(http):
    resp = await http.get("/api/test")
    assert resp.status_code == 200
    assert resp.json()["success"] is True
    assert resp.headers["access-control-allow-origin"] == "*"

    resp = await http.get("/health")
    assert resp.json() == {"status": "ok"}
