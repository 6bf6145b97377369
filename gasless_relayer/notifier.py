"""
Webhook notification of relay outcomes.

Delivery is attempted once per event in a background task with a bounded
timeout. Failures are logged and swallowed: the notification channel must
never affect the relay result returned to the caller.
"""

import asyncio
from typing import Optional

import httpx
import structlog

from .outcome import NotificationEvent

logger = structlog.get_logger()


class NotificationDispatcher:
    """Fire-and-forget webhook dispatcher."""

    def __init__(
        self,
        webhook_url: Optional[str],
        timeout_seconds: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.webhook_url = webhook_url
        self.timeout_seconds = timeout_seconds
        self._client = client
        self._owns_client = client is None
        self._pending: set[asyncio.Task] = set()

    @property
    def enabled(self) -> bool:
        return bool(self.webhook_url)

    @property
    def pending(self) -> int:
        return len(self._pending)

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout_seconds)
        return self._client

    def notify(self, event: NotificationEvent) -> None:
        """Schedule delivery of an event and return immediately."""
        if not self.enabled:
            logger.debug("webhook_disabled", kind=event.kind, request_id=event.request_id)
            return

        task = asyncio.get_running_loop().create_task(self.deliver(event))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def deliver(self, event: NotificationEvent) -> bool:
        """
        POST one event to the webhook.

        Returns True on a 2xx response. Never raises.
        """
        try:
            response = await asyncio.wait_for(
                self._get_client().post(self.webhook_url, json=event.to_payload()),
                timeout=self.timeout_seconds,
            )
            response.raise_for_status()
        except Exception as e:
            logger.error(
                "webhook_failed",
                kind=event.kind,
                request_id=event.request_id,
                tx_hash=event.tx_hash,
                error=str(e) or type(e).__name__,
            )
            return False

        logger.info(
            "webhook_sent",
            kind=event.kind,
            request_id=event.request_id,
            tx_hash=event.tx_hash,
        )
        return True

    async def drain(self, timeout: Optional[float] = None) -> None:
        """Wait for in-flight deliveries (used at shutdown and in tests)."""
        if not self._pending:
            return
        await asyncio.wait(list(self._pending), timeout=timeout or self.timeout_seconds)

    async def close(self) -> None:
        await self.drain()
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None
