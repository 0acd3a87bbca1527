"""Webhook target admin routes -- /api/slack/webhooks/*."""

from __future__ import annotations

import logging

from aiohttp import web
from pydantic import BaseModel, ValidationError

from ...state.webhook_config import WebhookConfigStore

logger = logging.getLogger(__name__)


class WebhookTargetUpdate(BaseModel):
    webhook_url: str
    channel_name: str = ""
    is_enabled: bool = True


class WebhookRoutes:
    """CRUD handler for per-content-type Slack webhook targets."""

    def __init__(self, store: WebhookConfigStore) -> None:
        self._store = store

    def register(self, router: web.UrlDispatcher) -> None:
        router.add_get("/api/slack/webhooks", self._list)
        router.add_get("/api/slack/webhooks/{content_type}", self._get)
        router.add_put("/api/slack/webhooks/{content_type}", self._put)
        router.add_delete("/api/slack/webhooks/{content_type}", self._delete)

    async def _list(self, _req: web.Request) -> web.Response:
        targets = [t.to_public_dict() for t in self._store.list_targets()]
        return web.json_response({"status": "ok", "targets": targets})

    async def _get(self, req: web.Request) -> web.Response:
        target = self._store.get(req.match_info["content_type"])
        if target is None:
            return web.json_response(
                {"status": "error", "message": "Webhook not configured"}, status=404,
            )
        return web.json_response({"status": "ok", "target": target.to_public_dict()})

    async def _put(self, req: web.Request) -> web.Response:
        content_type = req.match_info["content_type"]
        try:
            update = WebhookTargetUpdate.model_validate(await req.json())
        except ValueError as exc:
            # ValidationError is a ValueError; so is a JSON decode failure.
            message = "Invalid request" if isinstance(exc, ValidationError) else "Invalid JSON body"
            return web.json_response({"status": "error", "message": message}, status=400)

        try:
            target = self._store.upsert(
                content_type,
                update.webhook_url,
                channel_name=update.channel_name,
                is_enabled=update.is_enabled,
            )
        except ValueError as exc:
            return web.json_response({"status": "error", "message": str(exc)}, status=400)
        return web.json_response({"status": "ok", "target": target.to_public_dict()})

    async def _delete(self, req: web.Request) -> web.Response:
        if not self._store.disable(req.match_info["content_type"]):
            return web.json_response(
                {"status": "error", "message": "Webhook not configured"}, status=404,
            )
        return web.json_response({"status": "ok"})
