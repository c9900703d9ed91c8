"""Pydantic models for relayed Drive notifications and the inbox API."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class DriveWebhookPayload(BaseModel):
    """Payload forwarded by the relay tool.

    ``headers`` holds the x-goog-* headers Drive sent to the relay. It is
    optional here so a missing value can be answered with a 400 in the
    webhook's own error shape.
    """

    model_config = ConfigDict(populate_by_name=True)

    headers: dict[str, Any] | None = None
    body: Any = None
    processed_data: Any = Field(default=None, alias="processedData")


class NotificationData(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    notification_id: str = Field(alias="notificationId")
    change_type: str = Field(alias="changeType")
    file_id: str | None = Field(alias="fileId")
    file_name: str = Field(alias="fileName")
    resource_state: str | None = Field(alias="resourceState")
    changed: str | None


class NotificationResponse(BaseModel):
    success: bool = True
    message: str
    data: NotificationData


class StoredNotification(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    channel_id: str
    user_id: str | None
    resource_state: str | None
    resource_uri: str | None
    changed_files: str | None
    notification_data: dict
    processed: bool


class PendingNotificationsResponse(BaseModel):
    success: bool = True
    data: list[StoredNotification]


class MarkProcessedRequest(BaseModel):
    notification_ids: list[str] = Field(min_length=1)


class MarkProcessedResponse(BaseModel):
    success: bool = True
    updated_count: int
