"""Slack Events API endpoint -- /api/slack/events."""

from __future__ import annotations

import json
import logging
from typing import Any

from aiohttp import web

from ...config.settings import SlackCredentials
from ...messaging.notifier import NotificationService
from ...services.signature import verify_slack_signature

logger = logging.getLogger(__name__)

TIMESTAMP_HEADER = "X-Slack-Request-Timestamp"
SIGNATURE_HEADER = "X-Slack-Signature"


def _member_display_name(user: dict[str, Any]) -> str:
    return user.get("real_name") or user.get("name") or ""


class SlackEventsRoutes:
    """Verifies Slack's signed event callbacks and reacts to them.

    Responses go back to Slack immediately; the welcome message for a
    ``team_join`` event is delivered in the background.
    """

    def __init__(
        self,
        credentials: SlackCredentials | None,
        notifier: NotificationService,
    ) -> None:
        self._credentials = credentials
        self._notifier = notifier

    def register(self, router: web.UrlDispatcher) -> None:
        router.add_post("/api/slack/events", self._handle)

    async def _handle(self, req: web.Request) -> web.Response:
        if self._credentials is None:
            logger.error("[slack.events] Slack credentials are not configured")
            return web.json_response({"error": "Server configuration error"}, status=500)

        raw_body = await req.read()
        ok = verify_slack_signature(
            raw_body,
            req.headers.get(TIMESTAMP_HEADER),
            req.headers.get(SIGNATURE_HEADER),
            self._credentials.signing_secret,
        )
        if not ok:
            return web.json_response({"error": "Invalid signature"}, status=401)

        try:
            payload = json.loads(raw_body)
        except (json.JSONDecodeError, UnicodeDecodeError):
            return web.json_response({"error": "Invalid JSON body"}, status=400)
        if not isinstance(payload, dict):
            return web.json_response({"error": "Invalid JSON body"}, status=400)

        kind = payload.get("type")
        if kind == "url_verification":
            logger.info("[slack.events] answering url_verification challenge")
            return web.json_response({"challenge": payload.get("challenge")})

        if kind == "event_callback":
            event = payload.get("event")
            if not isinstance(event, dict):
                logger.debug("[slack.events] event_callback without an event object")
            elif event.get("type") == "team_join":
                self._on_team_join(event)
            else:
                logger.debug("[slack.events] ignoring event %s", event.get("type"))

        return web.json_response({"ok": True})

    def _on_team_join(self, event: dict[str, Any]) -> None:
        user = event.get("user")
        if isinstance(user, str):
            user = {"id": user}
        if not isinstance(user, dict) or not user.get("id"):
            logger.warning("[slack.events] team_join without a user id")
            return
        user_id = user["id"]
        logger.info("[slack.events] team_join for %s, scheduling welcome", user_id)
        self._notifier.schedule_welcome(user_id, _member_display_name(user))
