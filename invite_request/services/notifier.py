"""Slack incoming-webhook delivery.

``SlackNotifier.send`` is scheduled as a background task on the redirect that
answers ``POST /apply``; by the time it runs the visitor already has their
response. It never raises: non-2xx answers, timeouts and connection errors are
logged and dropped. There is no retry.
"""
from __future__ import annotations

import asyncio
import time
from typing import Optional

import aiohttp

from invite_request.models.schemas.notification import NotificationMessage
from invite_request.utils import get_logger, log_business_event

logger = get_logger(__name__)


class SlackNotifier:
    def __init__(self, webhook_url: str, *, timeout_seconds: float = 10.0):
        self.webhook_url = webhook_url
        self.timeout = aiohttp.ClientTimeout(total=timeout_seconds)

    async def send(self, message: NotificationMessage, *, request_id: Optional[str] = None) -> bool:
        """POST the message; returns whether Slack accepted it."""
        payload = message.to_payload()
        start = time.perf_counter()
        try:
            async with aiohttp.ClientSession(timeout=self.timeout) as session:
                async with session.post(self.webhook_url, json=payload) as resp:
                    body = await resp.text()
                    if not 200 <= resp.status < 300:
                        logger.error(
                            "Slack notification rejected",
                            status_code=resp.status,
                            response=body[:200],
                            request_id=request_id,
                        )
                        return False
        except asyncio.TimeoutError:
            logger.error(
                "Slack notification timed out",
                timeout_seconds=self.timeout.total,
                request_id=request_id,
            )
            return False
        except aiohttp.ClientError as e:
            logger.error(
                "Slack notification failed",
                error=str(e),
                error_type=type(e).__name__,
                request_id=request_id,
            )
            return False

        log_business_event(
            "notification_sent",
            {
                "channel": message.channel,
                "fields": sum(len(a.fields) for a in message.attachments),
                "duration_ms": round((time.perf_counter() - start) * 1000, 2),
            },
            request_id=request_id,
        )
        return True


__all__ = ["SlackNotifier"]
