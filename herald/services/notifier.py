"""Webhook notifications (new visitor alerts).

Fire-and-forget: :meth:`Notifier.notify` schedules the HTTP call on the
running loop and returns immediately.  Delivery failures are logged and
dropped; nothing is retried and nothing propagates to the caller.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional
from typing import Set

import httpx

from herald.errors import NotificationError

logger = logging.getLogger(__name__)


class Notifier:
    """Best-effort relay of short text messages to a webhook."""

    def __init__(
        self,
        webhook_url: Optional[str],
        *,
        timeout: float = 5.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._webhook_url = webhook_url or None
        self._timeout = timeout
        self._transport = transport
        # Strong references so pending tasks are not garbage-collected.
        self._pending: Set[asyncio.Task] = set()

    @property
    def enabled(self) -> bool:
        return self._webhook_url is not None

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def notify(self, text: str) -> None:
        """Schedule delivery of *text*; never raises, never blocks."""

        if not self.enabled:
            logger.debug("Notification skipped (no webhook configured): %s", text)
            return

        try:
            task = asyncio.get_running_loop().create_task(self._deliver(text))
        except RuntimeError:
            logger.warning("Notification dropped, no running event loop: %s", text)
            return

        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _deliver(self, text: str) -> None:
        try:
            await self._post(text)
        except NotificationError as exc:
            logger.warning("Notification not delivered: %s", exc)
        except Exception as exc:  # noqa: BLE001 – a task must never die with an unlogged error
            logger.exception("Unexpected notification failure: %s", exc)

    async def _post(self, text: str) -> None:
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                resp = await client.post(self._webhook_url, json={"content": text})
        except httpx.HTTPError as exc:
            raise NotificationError(f"webhook error: {exc}") from exc

        if resp.status_code >= 300:
            raise NotificationError(f"webhook returned {resp.status_code}: {resp.text}")

    async def drain(self) -> None:
        """Wait for in-flight deliveries (used on shutdown and in tests)."""

        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)


__all__ = ["Notifier"]
