"""Notification pipeline: format, truncate, dispatch, record.

Publishing runs inline (the content producer waits for the outcome);
welcoming a new member runs in the background after Slack's event request
has already been acknowledged.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass

from ..errors import DispatchError
from ..state.delivery_log import DeliveryLogger
from ..state.webhook_config import WebhookConfigStore
from ..util.background import BackgroundTasks
from .content import ContentRecord, MemberJoined
from .dispatcher import SlackDispatcher
from .formatters import format_message

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DeliveryResult:
    status: str
    delivery_time_ms: int = 0
    payload_size: int = 0
    error: str | None = None
    response_code: int | None = None
    channel_name: str | None = None

    @property
    def ok(self) -> bool:
        return self.status != "failed"


class NotificationService:
    def __init__(
        self,
        dispatcher: SlackDispatcher,
        delivery_logger: DeliveryLogger,
        webhook_store: WebhookConfigStore,
        background: BackgroundTasks | None = None,
    ) -> None:
        self._dispatcher = dispatcher
        self._delivery_logger = delivery_logger
        self._webhook_store = webhook_store
        self._background = background or BackgroundTasks()

    @property
    def background(self) -> BackgroundTasks:
        return self._background

    @property
    def dispatcher(self) -> SlackDispatcher:
        return self._dispatcher

    @dispatcher.setter
    def dispatcher(self, dispatcher: SlackDispatcher) -> None:
        self._dispatcher = dispatcher

    async def publish(self, record: ContentRecord, *, content_id: str = "") -> DeliveryResult:
        """Announce *record* on the channel configured for its content type."""
        content_type = record.content_type
        content_id = content_id or record.id or ""
        target = self._webhook_store.enabled_target(content_type)
        if target is None:
            logger.info("[notify.publish] no enabled webhook for %s, skipping", content_type)
            self._delivery_logger.log(
                "webhook", "", "skipped",
                error_message=None,
                content_type=content_type,
                content_id=content_id,
            )
            return DeliveryResult(status="skipped")

        message = format_message(record).truncated()
        size = message.payload_size()
        started = time.monotonic()
        try:
            code = await self._dispatcher.post_to_webhook(target.webhook_url, message)
        except DispatchError as exc:
            elapsed = int((time.monotonic() - started) * 1000)
            logger.error("[notify.publish] %s %s failed: %s", content_type, content_id, exc)
            self._delivery_logger.log(
                "webhook", target.channel_name, "failed",
                error_message=str(exc),
                payload_size=size,
                content_type=content_type,
                content_id=content_id,
                channel_name=target.channel_name or None,
                response_code=exc.status_code,
            )
            return DeliveryResult(
                status="failed",
                delivery_time_ms=elapsed,
                payload_size=size,
                error=str(exc),
                response_code=exc.status_code,
                channel_name=target.channel_name or None,
            )

        elapsed = int((time.monotonic() - started) * 1000)
        self._delivery_logger.log(
            "webhook", target.channel_name, "success",
            payload_size=size,
            content_type=content_type,
            content_id=content_id,
            channel_name=target.channel_name or None,
            response_code=code,
        )
        logger.info(
            "[notify.publish] %s %s delivered in %dms", content_type, content_id, elapsed,
        )
        return DeliveryResult(
            status="success",
            delivery_time_ms=elapsed,
            payload_size=size,
            response_code=code,
            channel_name=target.channel_name or None,
        )

    async def welcome_member(self, user_id: str, display_name: str = "") -> None:
        """Send the welcome DM and record the outcome. Never raises."""
        message = format_message(MemberJoined()).truncated()
        size = message.payload_size()
        try:
            await self._dispatcher.send_direct_message(user_id, message)
        except Exception as exc:
            logger.error("[notify.welcome] failed for %s: %s", user_id, exc)
            self._delivery_logger.log(
                user_id, display_name, "failed",
                error_message=str(exc),
                payload_size=size,
                content_type="member_joined",
            )
            return
        self._delivery_logger.log(
            user_id, display_name, "success",
            payload_size=size,
            content_type="member_joined",
        )

    def schedule_welcome(self, user_id: str, display_name: str = "") -> asyncio.Task[None]:
        """Run :meth:`welcome_member` detached from the current request."""
        return self._background.spawn(
            self.welcome_member(user_id, display_name),
            name=f"welcome-{user_id}",
        )
