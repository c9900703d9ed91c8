"""Webhook endpoint for Drive notifications relayed by the automation tool."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import JSONResponse

from fitlegal_api.db.repository import Repository
from fitlegal_api.webhook.models import (
    DriveWebhookPayload,
    MarkProcessedRequest,
    MarkProcessedResponse,
    NotificationData,
    NotificationResponse,
    PendingNotificationsResponse,
    StoredNotification,
)
from fitlegal_api.webhook.processor import (
    DriveNotificationProcessor,
    NotificationPersistError,
    WebhookRejected,
)

logger = logging.getLogger(__name__)

router = APIRouter()

DRIVE_WEBHOOK_PATH = "/api/webhook/drive-notifications"


def get_processor(request: Request) -> DriveNotificationProcessor:
    processor = getattr(request.app.state, "processor", None)
    if processor is None:
        raise HTTPException(status_code=503, detail="Notification processor not configured")
    return processor


def get_repository(request: Request) -> Repository:
    repo = getattr(request.app.state, "repo", None)
    if repo is None:
        raise HTTPException(status_code=503, detail="Database not configured")
    return repo


def _error(status_code: int, error: str, details: str | None = None) -> JSONResponse:
    content = {"success": False, "error": error}
    if details is not None:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=content)


@router.post(DRIVE_WEBHOOK_PATH, response_model=NotificationResponse)
async def handle_drive_notification(
    payload: DriveWebhookPayload,
    processor: Annotated[DriveNotificationProcessor, Depends(get_processor)],
):
    """Handle a Drive change notification forwarded by the relay."""
    try:
        result = await processor.process(payload)
        return NotificationResponse(
            message="Notification processed successfully",
            data=NotificationData(
                notification_id=result.notification_id,
                change_type=result.change_type.value,
                file_id=result.file_id,
                file_name=result.file_name,
                resource_state=result.resource_state,
                changed=result.changed,
            ),
        )
    except WebhookRejected as exc:
        return _error(exc.status_code, exc.error, exc.details)
    except NotificationPersistError as exc:
        logger.error("Could not store notification: %s", exc)
        return _error(500, "Error saving notification to the database", str(exc))
    except Exception as exc:
        logger.exception("Error processing Drive notification")
        return _error(500, "Internal server error", str(exc))


@router.get(
    "/api/drive-notifications/pending", response_model=PendingNotificationsResponse
)
async def list_pending_notifications(
    repo: Annotated[Repository, Depends(get_repository)],
    user_id: str,
    limit: Annotated[int, Query(ge=1, le=200)] = 50,
):
    """Unprocessed notifications for a user, newest first."""
    rows = await repo.get_pending_notifications(user_id, limit)
    return PendingNotificationsResponse(
        data=[StoredNotification.model_validate(row) for row in rows]
    )


@router.post(
    "/api/drive-notifications/mark-processed", response_model=MarkProcessedResponse
)
async def mark_notifications_processed(
    request: MarkProcessedRequest,
    repo: Annotated[Repository, Depends(get_repository)],
):
    updated = await repo.mark_notifications_processed(request.notification_ids)
    logger.info("Marked %d notifications as processed", updated)
    return MarkProcessedResponse(updated_count=updated)
