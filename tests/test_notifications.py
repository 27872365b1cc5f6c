"""
Tests for the webhook notification channel.
"""

from unittest.mock import AsyncMock

import pytest

from monitoring.notifications import NotificationConfig, NotificationManager


class TestNotificationManager:

    @pytest.mark.asyncio
    async def test_disabled_without_webhook(self):
        manager = NotificationManager(NotificationConfig(webhook_url=""))
        manager._post_json = AsyncMock()

        assert await manager.emit("mail-queue", "sendUpdateEmail", {"filePath": "r.csv"}) is False
        manager._post_json.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_posts_channel_pattern_and_data(self):
        manager = NotificationManager(NotificationConfig(webhook_url="https://hooks.example/mail"))
        manager._post_json = AsyncMock(return_value=True)

        delivered = await manager.emit("mail-queue", "sendBatchDeletionEmail", {"store": "store-a"})

        assert delivered is True
        url, message = manager._post_json.await_args.args
        assert url == "https://hooks.example/mail"
        assert message["channel"] == "mail-queue"
        assert message["pattern"] == "sendBatchDeletionEmail"
        assert message["data"] == {"store": "store-a"}
        assert "timestamp" in message

    @pytest.mark.asyncio
    async def test_unreachable_webhook_returns_false(self):
        manager = NotificationManager(NotificationConfig(webhook_url="http://127.0.0.1:9/", timeout_seconds=0.5))
        assert await manager.emit("mail-queue", "sendUpdateEmail", {}) is False
