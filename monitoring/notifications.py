#!/usr/bin/env python3
"""
Notifications: downstream event channel over an HTTP webhook.

Design goals:
- Zero-config by default (no notifications if not configured).
- Best-effort: ``emit`` logs failures and never raises.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import aiohttp

logger = logging.getLogger(__name__)


@dataclass
class NotificationConfig:
    webhook_url: str = os.getenv("NOTIFY_WEBHOOK_URL", "")
    timeout_seconds: float = float(os.getenv("NOTIFY_TIMEOUT_SECONDS", "12"))


class NotificationManager:
    """
    Posts ``{channel, pattern, data, timestamp}`` to the configured webhook.

    Example:
        notifier = NotificationManager(NotificationConfig(webhook_url=url))
        await notifier.emit("mail-queue", "sendUpdateEmail", {"filePath": path})
    """

    def __init__(self, config: Optional[NotificationConfig] = None):
        self.config = config or NotificationConfig()

    def enabled(self) -> bool:
        return bool(self.config.webhook_url)

    async def _post_json(self, url: str, payload: dict) -> bool:
        if not url:
            return False
        try:
            timeout = aiohttp.ClientTimeout(total=self.config.timeout_seconds)
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.post(url, json=payload) as resp:
                    if 200 <= resp.status < 300:
                        return True
                    text = await resp.text()
                    logger.warning(f"Webhook failed ({resp.status}): {text[:200]}")
                    return False
        except Exception as e:
            logger.warning(f"Webhook error: {e}")
            return False

    async def emit(self, channel: str, event: str, payload: Dict[str, Any]) -> bool:
        """Send one event; returns whether it was delivered."""
        message = {
            "channel": channel,
            "pattern": event,
            "data": payload,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

        if not self.enabled():
            logger.info(f"Notification (not delivered, no webhook): {channel}/{event}")
            return False

        delivered = await self._post_json(self.config.webhook_url, message)
        logger.info(
            f"Notification {channel}/{event} delivered={delivered}: "
            f"{json.dumps(payload, ensure_ascii=False, default=str)[:800]}"
        )
        return delivered

