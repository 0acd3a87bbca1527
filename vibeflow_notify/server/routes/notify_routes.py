"""Publish trigger -- /api/notify.

Called by the content producer after a record is written. The request
waits for the Slack delivery so the caller learns the outcome.
"""

from __future__ import annotations

import logging
from typing import Any, Literal

from aiohttp import web
from pydantic import BaseModel, ValidationError, model_validator

from ...messaging.content import PUBLISH_CONTENT_TYPES, ContentRecord, parse_record
from ...messaging.notifier import NotificationService

logger = logging.getLogger(__name__)


class NotifyRequest(BaseModel):
    content_type: str
    content_id: str = ""
    action: Literal["published", "updated", "deleted"] = "published"
    record: dict[str, Any] | None = None
    records: list[dict[str, Any]] | None = None

    @model_validator(mode="after")
    def _check_payload(self) -> NotifyRequest:
        if self.content_type not in PUBLISH_CONTENT_TYPES:
            raise ValueError(f"content_type must be one of {list(PUBLISH_CONTENT_TYPES)}")
        if self.record is None and self.records is None:
            raise ValueError("record or records is required")
        if self.records is not None and self.content_type != "ide_news":
            raise ValueError("records is only accepted for ide_news")
        return self

    def to_record(self) -> ContentRecord:
        if self.content_type == "ide_news":
            if self.records is not None:
                items = self.records
            elif "items" in (self.record or {}):
                items = self.record["items"]
            else:
                items = [self.record]
            return parse_record({"content_type": "ide_news", "items": items})
        return parse_record({**(self.record or {}), "content_type": self.content_type})


def _validation_messages(exc: ValidationError) -> list[str]:
    return [
        f"{'.'.join(str(p) for p in err['loc']) or 'body'}: {err['msg']}"
        for err in exc.errors()
    ]


class NotifyRoutes:
    """REST handler for content publication notifications."""

    def __init__(self, notifier: NotificationService) -> None:
        self._notifier = notifier

    def register(self, router: web.UrlDispatcher) -> None:
        router.add_post("/api/notify", self._notify)

    async def _notify(self, req: web.Request) -> web.Response:
        try:
            body = await req.json()
        except ValueError:
            return web.json_response(
                {"success": False, "error": "Invalid JSON body"}, status=400,
            )

        try:
            request = NotifyRequest.model_validate(body)
            record = request.to_record()
        except ValidationError as exc:
            return web.json_response(
                {"success": False, "error": "Invalid request", "details": _validation_messages(exc)},
                status=400,
            )

        logger.info(
            "[notify] %s %s (%s)", request.content_type, request.content_id, request.action,
        )
        result = await self._notifier.publish(record, content_id=request.content_id)

        if result.status == "skipped":
            return web.json_response({"success": True, "status": "skipped"})
        if result.status == "failed":
            return web.json_response(
                {"success": False, "status": "failed", "error": result.error},
                status=502,
            )
        return web.json_response({
            "success": True,
            "status": "success",
            "delivery_time_ms": result.delivery_time_ms,
        })
