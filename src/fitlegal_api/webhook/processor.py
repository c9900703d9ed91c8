"""Resolve, enrich, classify and store relayed Drive notifications."""

import logging
from dataclasses import dataclass

from sqlalchemy.exc import SQLAlchemyError

from fitlegal_api.db.models import WatchChannel
from fitlegal_api.db.repository import Repository
from fitlegal_api.drive.classifier import ChangeType, classify_change
from fitlegal_api.drive.client import DriveClient, FileMetadata
from fitlegal_api.utils.drive_uri import extract_file_id
from fitlegal_api.webhook.models import DriveWebhookPayload

logger = logging.getLogger(__name__)

UNKNOWN_FILE_NAME = "Unknown"


def _header(headers: dict, name: str) -> str | None:
    """Read a relayed header as a string; the relay may forward numbers."""
    value = headers.get(name)
    if value is None:
        return None
    return str(value)


class WebhookRejected(Exception):
    """The notification cannot be accepted; answered with a 4xx."""

    def __init__(self, status_code: int, error: str, details: str | None = None):
        self.status_code = status_code
        self.error = error
        self.details = details
        super().__init__(error)


class NotificationPersistError(Exception):
    """Raised when the notification row could not be inserted."""


@dataclass
class ProcessedNotification:
    notification_id: str
    change_type: ChangeType
    file_id: str | None
    file_name: str
    resource_state: str | None
    changed: str | None


class DriveNotificationProcessor:
    def __init__(
        self,
        repo: Repository,
        drive_client: DriveClient,
        *,
        properties_as_modified: bool = False,
    ) -> None:
        self._repo = repo
        self._drive = drive_client
        self._properties_as_modified = properties_as_modified

    async def process(self, payload: DriveWebhookPayload) -> ProcessedNotification:
        headers = payload.headers
        if headers is None:
            raise WebhookRejected(400, "Required headers not found in payload")

        channel_id = _header(headers, "x-goog-channel-id")
        resource_state = _header(headers, "x-goog-resource-state")
        resource_uri = _header(headers, "x-goog-resource-uri")
        changed = _header(headers, "x-goog-changed")
        message_number = _header(headers, "x-goog-message-number")

        logger.info(
            "Drive notification: channel=%s state=%s changed=%s message=%s",
            channel_id, resource_state, changed, message_number,
        )

        if not channel_id:
            raise WebhookRejected(400, "Channel ID not found in headers")

        channel = await self._repo.get_active_watch_channel(channel_id)
        if channel is None:
            logger.warning("No active watch channel for %s", channel_id)
            raise WebhookRejected(
                404,
                "Watch channel not found or inactive",
                f"No active watch channel registered for channel_id {channel_id}",
            )

        access_token = await self._lookup_access_token(channel.user_id)
        file_id = self._extract_file_id(resource_uri)

        metadata = None
        if file_id and access_token:
            metadata = await self._fetch_metadata(file_id, access_token)

        change_type = classify_change(
            resource_state,
            changed,
            properties_as_modified=self._properties_as_modified,
        )

        notification_data = {
            "headers": headers,
            "body": payload.body,
            "processedData": payload.processed_data,
            "fileDetails": metadata.to_json() if metadata else None,
            "changeType": change_type.value,
            "fileId": file_id,
            "messageNumber": message_number,
        }

        try:
            notification_id = await self._repo.insert_notification(
                channel_id,
                watch_channel_id=channel.id,
                user_id=channel.user_id,
                resource_state=resource_state,
                resource_uri=resource_uri,
                changed_files=changed,
                notification_data=notification_data,
            )
        except SQLAlchemyError as exc:
            raise NotificationPersistError(str(exc)) from exc

        logger.info(
            "Stored notification %s (%s) for channel %s",
            notification_id, change_type.value, channel_id,
        )
        self._log_change(change_type, metadata, channel)

        return ProcessedNotification(
            notification_id=notification_id,
            change_type=change_type,
            file_id=file_id,
            file_name=metadata.name if metadata and metadata.name else UNKNOWN_FILE_NAME,
            resource_state=resource_state,
            changed=changed,
        )

    async def _lookup_access_token(self, user_id: str) -> str | None:
        try:
            token = await self._repo.get_access_token(user_id)
        except Exception:
            logger.warning("Credential lookup failed for user %s", user_id, exc_info=True)
            return None
        if not token:
            logger.info("No Google credentials for user %s, skipping enrichment", user_id)
        return token

    def _extract_file_id(self, resource_uri: str | None) -> str | None:
        try:
            return extract_file_id(resource_uri)
        except Exception:
            logger.warning("Could not extract file id from %r", resource_uri, exc_info=True)
            return None

    async def _fetch_metadata(self, file_id: str, access_token: str) -> FileMetadata | None:
        try:
            return await self._drive.get_file_metadata(file_id, access_token)
        except Exception:
            logger.warning("Metadata fetch failed for file %s", file_id, exc_info=True)
            return None

    def _log_change(
        self,
        change_type: ChangeType,
        metadata: FileMetadata | None,
        channel: WatchChannel,
    ) -> None:
        name = metadata.name if metadata else "unknown file"
        if change_type == ChangeType.FILE_ADDED_OR_REMOVED:
            if metadata is None:
                logger.info("Children changed in folder %s, no file details", channel.folder_id)
            elif metadata.is_folder:
                logger.info("Folder detected for user %s: %s", channel.user_id, name)
            else:
                logger.info(
                    "New file for user %s: %s (%s, %s bytes) %s",
                    channel.user_id, name, metadata.mime_type, metadata.size,
                    metadata.web_view_link,
                )
        elif change_type == ChangeType.FILE_MODIFIED:
            logger.info("File modified for user %s: %s", channel.user_id, name)
        elif change_type == ChangeType.PERMISSIONS_CHANGED:
            logger.info("Permissions changed for user %s: %s", channel.user_id, name)
        elif change_type == ChangeType.FILE_TRASHED:
            logger.info("File trashed for user %s: %s", channel.user_id, name)
        else:
            logger.debug("No follow-up for change type %s", change_type.value)
