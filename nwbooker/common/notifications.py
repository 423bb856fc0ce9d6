"""
Notification services for the Nordic Wellness booker
"""
import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Optional
import httpx

from .models import NotificationPayload, BookingRun
from .config import NotificationsConfig

logger = logging.getLogger(__name__)


class NotificationProvider(ABC):
    """Base class for notification providers"""

    @abstractmethod
    async def send(self, payload: NotificationPayload) -> bool:
        """Send notification, return True if successful"""
        pass

    async def close(self):
        """Release any resources held by the provider"""


class WebhookNotifier(NotificationProvider):
    """Generic webhook notifications (Slack, Discord, etc.)"""

    def __init__(self, webhook_url: str, client: Optional[httpx.AsyncClient] = None):
        self.webhook_url = webhook_url
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(timeout=10.0)

    async def send(self, payload: NotificationPayload) -> bool:
        try:
            # "text" for Slack, "content" for Discord
            response = await self.client.post(
                self.webhook_url,
                json={
                    "text": f"{payload.title}\n{payload.message}",
                    "content": f"**{payload.title}**\n{payload.message}",
                }
            )
            success = response.status_code in (200, 204)
            if not success:
                logger.error(f"Webhook send failed: {response.status_code} - {response.text}")
            return success
        except httpx.HTTPError as e:
            logger.error(f"Webhook send error: {e}")
            return False

    async def close(self):
        if self._owns_client:
            await self.client.aclose()


class NotificationManager:
    """Fans booking results out to the configured providers"""

    def __init__(self, config: NotificationsConfig, client: Optional[httpx.AsyncClient] = None):
        self.providers: list[NotificationProvider] = []

        if config.webhook.enabled and config.webhook.url:
            self.providers.append(WebhookNotifier(config.webhook.url, client))
            logger.info("Webhook notifications enabled")
        elif config.webhook.enabled:
            logger.warning("Webhook notifications enabled but missing URL")

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        await self.close()

    async def close(self):
        for provider in self.providers:
            await provider.close()

    async def notify_booked(self, run: BookingRun):
        """Send success notification"""
        activity = run.activity
        payload = NotificationPayload(
            title=f"Booked {run.outcome.slot_name if run.outcome else activity.name}",
            message=(
                f"User: {activity.user_name}\n"
                f"Attempts: {run.attempts_made}/{run.max_attempts}"
            ),
            urgency="normal",
            run=run
        )
        await self._send_all(payload)

    async def notify_exhausted(self, run: BookingRun):
        """Send failure notification"""
        activity = run.activity
        payload = NotificationPayload(
            title=f"Unable to book {activity.name}",
            message=(
                f"User: {activity.user_name}\n"
                f"Attempts: {run.attempts_made}/{run.max_attempts}\n"
                f"Last error: {run.outcome.describe() if run.outcome else 'Unknown'}"
            ),
            urgency="high",
            run=run
        )
        await self._send_all(payload)

    async def notify(self, run: BookingRun):
        if run.succeeded:
            await self.notify_booked(run)
        else:
            await self.notify_exhausted(run)

    async def _send_all(self, payload: NotificationPayload):
        """Send notification through all providers"""
        if not self.providers:
            return

        results = await asyncio.gather(
            *[p.send(payload) for p in self.providers],
            return_exceptions=True
        )

        success_count = sum(1 for r in results if r is True)
        logger.info(f"Notifications sent: {success_count}/{len(self.providers)} successful")
