"""
Notification Service Unit Tests

Tests that dispatch failures are reported, never raised.
"""

import uuid
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from app.models.enums import NotificationType
from app.services import notification_service


WEBHOOK = "https://messaging.internal/notify"


class TestNotify:
    """Tests for notify."""

    @pytest.mark.asyncio
    async def test_logs_only_without_webhook(self):
        with patch.object(notification_service.settings, "NOTIFICATION_WEBHOOK_URL", ""), \
             patch("app.services.notification_service.post_with_retry", new=AsyncMock()) as post:
            delivered = await notification_service.notify(
                uuid.uuid4(), NotificationType.COURSE_UPDATE, "Title", "Body"
            )

        assert delivered is True
        post.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_posts_payload_to_webhook(self, mock_httpx_response):
        user_id = uuid.uuid4()

        with patch.object(notification_service.settings, "NOTIFICATION_WEBHOOK_URL", WEBHOOK), \
             patch(
                 "app.services.notification_service.post_with_retry",
                 new=AsyncMock(return_value=mock_httpx_response(202)),
             ) as post:
            delivered = await notification_service.notify(
                user_id, NotificationType.CERTIFICATE_ISSUED, "Certificate issued", "Ready"
            )

        assert delivered is True
        post.assert_awaited_once_with(
            WEBHOOK,
            json={
                "user_id": str(user_id),
                "type": "certificate_issued",
                "title": "Certificate issued",
                "message": "Ready",
            },
        )

    @pytest.mark.asyncio
    async def test_transport_error_is_swallowed_and_reported(self):
        with patch.object(notification_service.settings, "NOTIFICATION_WEBHOOK_URL", WEBHOOK), \
             patch(
                 "app.services.notification_service.post_with_retry",
                 new=AsyncMock(side_effect=httpx.ConnectError("down")),
             ):
            delivered = await notification_service.notify(
                uuid.uuid4(), NotificationType.PAYMENT_CONFIRMED, "Paid", "Thanks"
            )

        assert delivered is False

    @pytest.mark.asyncio
    async def test_rejected_status(self, mock_httpx_response):
        with patch.object(notification_service.settings, "NOTIFICATION_WEBHOOK_URL", WEBHOOK), \
             patch(
                 "app.services.notification_service.post_with_retry",
                 new=AsyncMock(return_value=mock_httpx_response(503)),
             ):
            delivered = await notification_service.notify(
                uuid.uuid4(), NotificationType.COURSE_UPDATE, "Done", "Done"
            )

        assert delivered is False
