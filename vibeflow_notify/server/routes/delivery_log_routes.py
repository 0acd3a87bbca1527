"""Delivery log API routes -- /api/delivery-logs/*."""

from __future__ import annotations

import logging

from aiohttp import web

from ...state.delivery_log import DeliveryLogStore

logger = logging.getLogger(__name__)

_FILTER_KEYS = ("status", "content_type", "recipient", "since")


class DeliveryLogRoutes:
    """Read-only REST handler for the delivery audit log."""

    def __init__(self, store: DeliveryLogStore) -> None:
        self._store = store

    def register(self, router: web.UrlDispatcher) -> None:
        router.add_get("/api/delivery-logs", self._list)
        router.add_get("/api/delivery-logs/summary", self._summary)
        router.add_get("/api/delivery-logs/export", self._export)
        router.add_get("/api/delivery-logs/{entry_id}", self._get)

    @staticmethod
    def _filters(req: web.Request) -> dict[str, str]:
        return {k: req.query.get(k, "") for k in _FILTER_KEYS}

    async def _list(self, req: web.Request) -> web.Response:
        """List delivery attempts, newest first."""
        try:
            limit = max(min(int(req.query.get("limit", "100")), 1000), 0)
            offset = max(int(req.query.get("offset", "0")), 0)
            result = self._store.query(**self._filters(req), limit=limit, offset=offset)
        except ValueError as exc:
            return web.json_response({"status": "error", "message": str(exc)}, status=400)
        return web.json_response({"status": "ok", **result})

    async def _summary(self, _req: web.Request) -> web.Response:
        summary = self._store.get_summary()
        return web.json_response({"status": "ok", **summary})

    async def _get(self, req: web.Request) -> web.Response:
        entry = self._store.get_entry(req.match_info["entry_id"])
        if not entry:
            return web.json_response(
                {"status": "error", "message": "Entry not found"}, status=404,
            )
        return web.json_response({"status": "ok", "entry": entry})

    async def _export(self, req: web.Request) -> web.Response:
        """Export delivery attempts as CSV."""
        try:
            csv_data = self._store.export_csv(**self._filters(req))
        except ValueError as exc:
            return web.json_response({"status": "error", "message": str(exc)}, status=400)
        return web.Response(
            body=csv_data,
            content_type="text/csv",
            headers={"Content-Disposition": "attachment; filename=delivery-logs.csv"},
        )
