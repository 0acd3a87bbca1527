"""Outbound delivery to Slack.

Channel announcements go through incoming webhooks; welcome messages are
sent as direct messages with the bot token (``conversations.open`` then
``chat.postMessage``). Each call is a single attempt: failures surface as
:class:`~vibeflow_notify.errors.DispatchError` for the caller to record.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable

import aiohttp
from slack_sdk.errors import SlackApiError, SlackClientError
from slack_sdk.web.async_client import AsyncWebClient
from slack_sdk.webhook.async_client import AsyncWebhookClient

from ..errors import ConfigurationError, DispatchError
from .blocks import Message

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0

_TRANSPORT_ERRORS = (aiohttp.ClientError, asyncio.TimeoutError, OSError, SlackClientError)

WebhookClientFactory = Callable[[str], AsyncWebhookClient]


def _slack_error_code(exc: SlackApiError) -> str:
    response = exc.response
    error = response.get("error") if response is not None else None
    return str(error or exc)


class SlackDispatcher:
    """Sends formatted messages to Slack."""

    def __init__(
        self,
        bot_token: str = "",
        *,
        timeout: float = DEFAULT_TIMEOUT,
        session: aiohttp.ClientSession | None = None,
        web_client: AsyncWebClient | None = None,
        webhook_client_factory: WebhookClientFactory | None = None,
    ) -> None:
        self._timeout = timeout
        self._session = session
        if web_client is None and bot_token:
            web_client = AsyncWebClient(token=bot_token, timeout=int(timeout), session=session)
        self._web_client = web_client
        self._webhook_client_factory = webhook_client_factory or self._default_webhook_client

    def _default_webhook_client(self, url: str) -> AsyncWebhookClient:
        return AsyncWebhookClient(url, timeout=int(self._timeout), session=self._session)

    async def post_to_webhook(self, webhook_url: str, message: Message) -> int:
        """POST *message* to an incoming webhook and return the HTTP status."""
        client = self._webhook_client_factory(webhook_url)
        try:
            response = await client.send_dict(message.to_dict())
        except _TRANSPORT_ERRORS as exc:
            raise DispatchError(f"Webhook request failed: {exc}") from exc

        if response.status_code != 200:
            logger.warning("[dispatch.webhook] rejected: HTTP %s", response.status_code)
            raise DispatchError(
                f"HTTP {response.status_code}: {response.body}",
                status_code=response.status_code,
            )
        logger.info("[dispatch.webhook] delivered (%d bytes)", message.payload_size())
        return response.status_code

    async def send_direct_message(self, user_id: str, message: Message) -> str:
        """Open a DM with *user_id*, post *message*, and return the channel id."""
        if self._web_client is None:
            raise ConfigurationError("SLACK_BOT_TOKEN is required to send direct messages")

        try:
            opened = await self._web_client.conversations_open(users=user_id)
        except SlackApiError as exc:
            raise DispatchError(
                f"Failed to open DM channel: {_slack_error_code(exc)}",
            ) from exc
        except _TRANSPORT_ERRORS as exc:
            raise DispatchError(f"Failed to open DM channel: {exc}") from exc

        channel_id = (opened.get("channel") or {}).get("id")
        if not channel_id:
            raise DispatchError("Failed to open DM channel: missing channel id")

        payload = message.to_dict()
        try:
            await self._web_client.chat_postMessage(
                channel=channel_id,
                blocks=payload["blocks"],
                text=message.text,
            )
        except SlackApiError as exc:
            raise DispatchError(
                f"Failed to send message: {_slack_error_code(exc)}",
            ) from exc
        except _TRANSPORT_ERRORS as exc:
            raise DispatchError(f"Failed to send message: {exc}") from exc

        logger.info("[dispatch.dm] sent welcome to %s via %s", user_id, channel_id)
        return channel_id
