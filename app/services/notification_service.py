"""
Notification Service

One-way dispatch of user notifications to the messaging collaborator.

Callers invoke ``notify`` only after their transaction has committed.
Delivery problems are logged and never raised, so a failed notification
cannot undo a completed enrollment, payment or certificate.
"""

import logging
import uuid

import httpx

from app.core.config import settings
from app.core.http_client import post_with_retry
from app.models.enums import NotificationType


logger = logging.getLogger(__name__)


async def notify(
    user_id: uuid.UUID,
    type: NotificationType,
    title: str,
    message: str,
) -> bool:
    """
    Send a notification to a user.

    Args:
        user_id: Recipient.
        type: Notification category.
        title: Short title.
        message: Body text.

    Returns:
        bool: True if the collaborator accepted the notification (or no
        webhook is configured and it was logged), False otherwise.
    """
    if not settings.NOTIFICATION_WEBHOOK_URL:
        logger.info("Notification for %s [%s]: %s", user_id, type.value, title)
        return True

    payload = {
        "user_id": str(user_id),
        "type": type.value,
        "title": title,
        "message": message,
    }

    try:
        response = await post_with_retry(settings.NOTIFICATION_WEBHOOK_URL, json=payload)
    except httpx.HTTPError as e:
        logger.warning("Notification dispatch to %s failed: %s", user_id, e)
        return False

    if response.status_code >= 400:
        logger.warning(
            "Notification dispatch to %s rejected with status %s",
            user_id, response.status_code,
        )
        return False

    return True
